from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from stockdb.apps.accounts.models import ModuleKey, PermissionAction
from stockdb.apps.audit import schemas as audit_schemas
from stockdb.context import SessionContext
from stockdb.database import get_db
from stockdb.permissions import require_module_access

from . import schemas, services

router = APIRouter(tags=["inventory"])

INVENTORY_VIEW = require_module_access(ModuleKey.INVENTORY, PermissionAction.VIEW)
INVENTORY_CREATE = require_module_access(ModuleKey.INVENTORY, PermissionAction.CREATE)
INVENTORY_EDIT = require_module_access(ModuleKey.INVENTORY, PermissionAction.EDIT)
REPORTS_VIEW = require_module_access(ModuleKey.REPORTS, PermissionAction.VIEW)


def _csv_response(content: str, filename: str) -> StreamingResponse:
    headers = {"Content-Disposition": f"attachment; filename={filename}"}
    return StreamingResponse(iter([content]), media_type="text/csv", headers=headers)


# ---------------------------------------------------------------------------
# SKU CATALOG
# ---------------------------------------------------------------------------


@router.get("/skus", response_model=List[schemas.SkuRead])
def list_skus(
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_module_access(ModuleKey.SKU, PermissionAction.VIEW)),
):
    return services.list_skus(db, company_id=ctx.company_id, search=search, skip=skip, limit=limit)


@router.post("/skus", response_model=schemas.SkuRead, status_code=status.HTTP_201_CREATED)
def create_sku(
    payload: schemas.SkuCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_module_access(ModuleKey.SKU, PermissionAction.CREATE)),
):
    sku = services.create_sku(db, company_id=ctx.company_id, payload=payload)
    db.commit()
    db.refresh(sku)
    return sku


@router.get("/skus/{sku_id}", response_model=schemas.SkuRead)
def get_sku(
    sku_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_module_access(ModuleKey.SKU, PermissionAction.VIEW)),
):
    return services.get_sku(db, company_id=ctx.company_id, sku_id=sku_id)


@router.put("/skus/{sku_id}", response_model=schemas.SkuRead)
def update_sku(
    sku_id: int,
    payload: schemas.SkuUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_module_access(ModuleKey.SKU, PermissionAction.EDIT)),
):
    sku = services.update_sku(
        db, company_id=ctx.company_id, sku_id=sku_id, payload=payload, actor_user_id=ctx.user_id
    )
    db.commit()
    db.refresh(sku)
    return sku


# ---------------------------------------------------------------------------
# STOCK
# ---------------------------------------------------------------------------


@router.get("/inventory/stock", response_model=List[schemas.StockOnHandItem])
def list_stock(
    sku_id: Optional[int] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_VIEW),
):
    return services.list_on_hand(db, company_id=ctx.company_id, sku_id=sku_id)


@router.get("/inventory/movements", response_model=List[schemas.StockMovementRead])
def list_movements(
    sku_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_VIEW),
):
    return services.list_movements(db, company_id=ctx.company_id, sku_id=sku_id, skip=skip, limit=limit)


# ---------------------------------------------------------------------------
# INCOMING
# ---------------------------------------------------------------------------


@router.post(
    "/inventory/incoming",
    response_model=schemas.IncomingInventoryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_incoming(
    payload: schemas.IncomingInventoryCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_CREATE),
):
    record = services.create_incoming(db, company_id=ctx.company_id, payload=payload, actor_user_id=ctx.user_id)
    db.commit()
    db.refresh(record)
    return record


@router.get("/inventory/incoming", response_model=List[schemas.IncomingInventoryRead])
def list_incoming(
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_VIEW),
):
    return services.list_incoming(
        db,
        company_id=ctx.company_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        skip=skip,
        limit=limit,
    )


@router.get("/inventory/incoming/{incoming_id}", response_model=schemas.IncomingInventoryRead)
def get_incoming(
    incoming_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_VIEW),
):
    return services.get_incoming(db, company_id=ctx.company_id, incoming_id=incoming_id)


@router.put(
    "/inventory/incoming/{incoming_id}/update-short-item",
    response_model=schemas.IncomingItemRead,
)
def update_short_item(
    incoming_id: int,
    payload: schemas.ShortItemUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_EDIT),
):
    item = services.update_short_item(
        db,
        company_id=ctx.company_id,
        incoming_id=incoming_id,
        payload=payload,
        actor_user_id=ctx.user_id,
    )
    db.commit()
    db.refresh(item)
    return item


@router.put(
    "/inventory/incoming/{incoming_id}/update-record-level",
    response_model=schemas.IncomingInventoryRead,
)
def update_incoming_record(
    incoming_id: int,
    payload: schemas.IncomingRecordUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_EDIT),
):
    record = services.update_incoming_record(
        db,
        company_id=ctx.company_id,
        incoming_id=incoming_id,
        payload=payload,
        actor_user_id=ctx.user_id,
    )
    db.commit()
    db.refresh(record)
    return record


@router.put(
    "/inventory/incoming/{incoming_id}/update-item-rejected-short",
    response_model=schemas.IncomingItemRead,
)
def update_item_rejected_short(
    incoming_id: int,
    payload: schemas.ItemRejectedShortUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_EDIT),
):
    item = services.update_item_rejected_short(
        db,
        company_id=ctx.company_id,
        incoming_id=incoming_id,
        payload=payload,
        actor_user_id=ctx.user_id,
    )
    db.commit()
    db.refresh(item)
    return item


@router.post(
    "/inventory/incoming/{incoming_id}/move-to-rejected",
    response_model=schemas.RejectedItemReportRead,
    status_code=status.HTTP_201_CREATED,
)
def move_to_rejected(
    incoming_id: int,
    payload: schemas.MoveToRejectedRequest,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_EDIT),
):
    report = services.move_short_to_rejected(
        db,
        company_id=ctx.company_id,
        incoming_id=incoming_id,
        payload=payload,
        actor_user_id=ctx.user_id,
    )
    db.commit()
    db.refresh(report)
    return report


@router.post(
    "/inventory/incoming/{incoming_id}/move-received-to-rejected",
    response_model=schemas.RejectedItemReportRead,
    status_code=status.HTTP_201_CREATED,
)
def move_received_to_rejected(
    incoming_id: int,
    payload: schemas.MoveToRejectedRequest,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_EDIT),
):
    report = services.move_received_to_rejected(
        db,
        company_id=ctx.company_id,
        incoming_id=incoming_id,
        payload=payload,
        actor_user_id=ctx.user_id,
    )
    db.commit()
    db.refresh(report)
    return report


# ---------------------------------------------------------------------------
# OUTGOING
# ---------------------------------------------------------------------------


@router.post(
    "/inventory/outgoing",
    response_model=schemas.OutgoingInventoryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_outgoing(
    payload: schemas.OutgoingInventoryCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_CREATE),
):
    record = services.create_outgoing(db, company_id=ctx.company_id, payload=payload, actor_user_id=ctx.user_id)
    db.commit()
    db.refresh(record)
    return record


@router.get("/inventory/outgoing", response_model=List[schemas.OutgoingInventoryRead])
def list_outgoing(
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_VIEW),
):
    return services.list_outgoing(
        db,
        company_id=ctx.company_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        skip=skip,
        limit=limit,
    )


@router.get("/inventory/outgoing/{outgoing_id}", response_model=schemas.OutgoingInventoryRead)
def get_outgoing(
    outgoing_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_VIEW),
):
    return services.get_outgoing(db, company_id=ctx.company_id, outgoing_id=outgoing_id)


# ---------------------------------------------------------------------------
# REJECTED ITEM REPORTS
# ---------------------------------------------------------------------------


@router.get("/inventory/rejected-item-reports", response_model=List[schemas.RejectedItemReportRead])
def list_rejected_reports(
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_VIEW),
):
    return services.list_rejected_reports(
        db,
        company_id=ctx.company_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        status_filter=status_filter,
    )


@router.get("/inventory/rejected-item-reports/export")
def export_rejected_reports(
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(REPORTS_VIEW),
):
    reports = services.list_rejected_reports(
        db,
        company_id=ctx.company_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        status_filter=status_filter,
    )
    return _csv_response(services.export_rejected_reports_csv(reports), "rejected_item_reports.csv")


@router.post(
    "/inventory/rejected-item-reports",
    response_model=schemas.RejectedItemReportRead,
    status_code=status.HTTP_201_CREATED,
)
def create_rejected_report(
    payload: schemas.RejectedItemReportCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_CREATE),
):
    report = services.create_rejected_report(
        db, company_id=ctx.company_id, payload=payload, actor_user_id=ctx.user_id
    )
    db.commit()
    db.refresh(report)
    return report


@router.get("/inventory/rejected-item-reports/{report_id}", response_model=schemas.RejectedItemReportRead)
def get_rejected_report(
    report_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_VIEW),
):
    return services.get_rejected_report(db, company_id=ctx.company_id, report_id=report_id)


@router.put("/inventory/rejected-item-reports/{report_id}", response_model=schemas.RejectedItemReportRead)
def update_rejected_report(
    report_id: int,
    payload: schemas.RejectedItemReportUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_EDIT),
):
    report = services.update_rejected_report(
        db,
        company_id=ctx.company_id,
        report_id=report_id,
        payload=payload,
        actor_user_id=ctx.user_id,
    )
    db.commit()
    db.refresh(report)
    return report


@router.delete("/inventory/rejected-item-reports/{report_id}")
def delete_rejected_report(
    report_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_EDIT),
):
    services.get_rejected_report(db, company_id=ctx.company_id, report_id=report_id)
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Rejected item reports are part of the audit trail and cannot be deleted.",
    )


@router.get(
    "/inventory/rejected-item-reports/{report_id}/history",
    response_model=List[audit_schemas.AuditEventRead],
)
def rejected_report_history(
    report_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_VIEW),
):
    return services.rejected_report_history(db, company_id=ctx.company_id, report_id=report_id)


# ---------------------------------------------------------------------------
# SHORT ITEM REPORTS
# ---------------------------------------------------------------------------


@router.get("/inventory/short-item-reports", response_model=List[schemas.ShortItemReportRead])
def list_short_reports(
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_VIEW),
):
    return services.list_short_reports(
        db,
        company_id=ctx.company_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        status_filter=status_filter,
    )


@router.get("/inventory/short-item-reports/export")
def export_short_reports(
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(REPORTS_VIEW),
):
    rows = services.list_short_reports(
        db,
        company_id=ctx.company_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        status_filter=status_filter,
    )
    return _csv_response(services.export_short_reports_csv(rows), "short_item_reports.csv")


@router.get("/inventory/short-item-reports/{item_id}", response_model=schemas.ShortItemReportRead)
def get_short_report(
    item_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_VIEW),
):
    item = services.get_short_item(db, company_id=ctx.company_id, item_id=item_id)
    return services.short_report_row(item)


@router.post("/inventory/short-item-reports/{item_id}/close", response_model=schemas.ShortItemReportRead)
def close_short_report(
    item_id: int,
    payload: schemas.ShortItemCloseRequest,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(INVENTORY_EDIT),
):
    item = services.close_short_item(
        db,
        company_id=ctx.company_id,
        item_id=item_id,
        remarks=payload.remarks,
        actor_user_id=ctx.user_id,
    )
    db.commit()
    db.refresh(item)
    return services.short_report_row(item)
