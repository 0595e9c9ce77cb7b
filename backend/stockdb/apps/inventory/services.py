from __future__ import annotations

import csv
import enum
import io
import logging
from collections import defaultdict
from datetime import datetime, date
from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from stockdb.apps.audit import services as audit_services
from stockdb.apps.reconciliation.ledger import RejectedLedger
from stockdb.apps.reconciliation.status import humanize_status, short_status_for
from . import models, schemas

logger = logging.getLogger(__name__)

REJECTED_REPORT_ENTITY = "rejected_item_report"
INCOMING_ITEM_ENTITY = "incoming_inventory_item"
INCOMING_ENTITY = "incoming_inventory"
SKU_ENTITY = "sku"


# ---------------------------------------------------------------------------
# SKU CATALOG
# ---------------------------------------------------------------------------


def get_sku(db: Session, *, company_id: str, sku_id: int) -> models.Sku:
    sku = (
        db.query(models.Sku)
        .filter(models.Sku.company_id == company_id, models.Sku.id == sku_id)
        .first()
    )
    if not sku:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"SKU {sku_id} not found.")
    return sku


def create_sku(db: Session, *, company_id: str, payload: schemas.SkuCreate) -> models.Sku:
    existing = (
        db.query(models.Sku)
        .filter(models.Sku.company_id == company_id, models.Sku.sku_code == payload.sku_code)
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"SKU code '{payload.sku_code}' already exists.",
        )
    sku = models.Sku(company_id=company_id, **payload.model_dump())
    db.add(sku)
    db.flush()
    return sku


def update_sku(
    db: Session,
    *,
    company_id: str,
    sku_id: int,
    payload: schemas.SkuUpdate,
    actor_user_id: Optional[str] = None,
) -> models.Sku:
    sku = get_sku(db, company_id=company_id, sku_id=sku_id)
    values = payload.model_dump(exclude_unset=True)
    if values.get("sku_code") and values["sku_code"] != sku.sku_code:
        clash = (
            db.query(models.Sku.id)
            .filter(
                models.Sku.company_id == company_id,
                models.Sku.sku_code == values["sku_code"],
                models.Sku.id != sku.id,
            )
            .first()
        )
        if clash:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"SKU code '{values['sku_code']}' already exists.",
            )
    for key in ("sku_code", "item_name", "uom", "min_stock"):
        if key in values and values[key] is None:
            values.pop(key)

    before = {key: getattr(sku, key) for key in values}
    for key, value in values.items():
        setattr(sku, key, value)
    db.add(sku)
    db.flush()
    audit_services.log_event(
        db,
        company_id=company_id,
        actor_user_id=actor_user_id,
        entity_type=SKU_ENTITY,
        entity_id=str(sku.id),
        action="update",
        before=before,
        after=values,
    )
    return sku


def list_skus(
    db: Session,
    *,
    company_id: str,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.Sku]:
    query = db.query(models.Sku).filter(models.Sku.company_id == company_id, models.Sku.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(models.Sku.sku_code.ilike(like), models.Sku.item_name.ilike(like)))
    return query.order_by(models.Sku.sku_code.asc()).offset(skip).limit(limit).all()


# ---------------------------------------------------------------------------
# STOCK LEDGER
# ---------------------------------------------------------------------------


def _post_movement(
    db: Session,
    *,
    company_id: str,
    sku_id: int,
    movement_type: models.StockMovementTypeEnum,
    quantity: int,
    reference_type: str,
    reference_id,
    actor_user_id: Optional[str],
    notes: Optional[str] = None,
) -> Optional[models.StockMovement]:
    if quantity <= 0:
        return None
    movement = models.StockMovement(
        company_id=company_id,
        sku_id=sku_id,
        movement_type=movement_type,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=str(reference_id),
        notes=notes,
        created_by_user_id=actor_user_id,
    )
    db.add(movement)
    return movement


def _post_delta(db: Session, *, company_id: str, sku_id: int, delta: int, **kwargs) -> None:
    if delta > 0:
        _post_movement(
            db, company_id=company_id, sku_id=sku_id,
            movement_type=models.StockMovementTypeEnum.RECEIVE, quantity=delta, **kwargs
        )
    elif delta < 0:
        _post_movement(
            db, company_id=company_id, sku_id=sku_id,
            movement_type=models.StockMovementTypeEnum.ISSUE, quantity=-delta, **kwargs
        )


def _signed_quantity(movement: models.StockMovement) -> int:
    if movement.movement_type == models.StockMovementTypeEnum.ISSUE:
        return -movement.quantity
    return movement.quantity


def list_on_hand(
    db: Session,
    *,
    company_id: str,
    sku_id: Optional[int] = None,
) -> List[schemas.StockOnHandItem]:
    query = db.query(models.StockMovement).filter(models.StockMovement.company_id == company_id)
    if sku_id is not None:
        query = query.filter(models.StockMovement.sku_id == sku_id)

    totals: Dict[int, int] = defaultdict(int)
    skus: Dict[int, models.Sku] = {}
    for movement in query.all():
        totals[movement.sku_id] += _signed_quantity(movement)
        skus[movement.sku_id] = movement.sku

    results: List[schemas.StockOnHandItem] = []
    for key in sorted(totals):
        sku = skus[key]
        results.append(
            schemas.StockOnHandItem(
                sku_id=key,
                sku_code=sku.sku_code,
                item_name=sku.item_name,
                quantity=totals[key],
                min_stock=sku.min_stock or 0,
            )
        )
    return results


def list_movements(
    db: Session,
    *,
    company_id: str,
    sku_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.StockMovement]:
    query = db.query(models.StockMovement).filter(models.StockMovement.company_id == company_id)
    if sku_id is not None:
        query = query.filter(models.StockMovement.sku_id == sku_id)
    return (
        query.order_by(models.StockMovement.occurred_at.desc(), models.StockMovement.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


# ---------------------------------------------------------------------------
# REJECTED ITEM REPORTS
# ---------------------------------------------------------------------------


def _next_report_number(db: Session, *, company_id: str) -> str:
    count = (
        db.query(models.RejectedItemReport)
        .filter(models.RejectedItemReport.company_id == company_id)
        .count()
    )
    return f"REJ-{count + 1:05d}"


def _counter_snapshot(report: models.RejectedItemReport) -> dict:
    return {
        "sent_to_vendor": report.sent_to_vendor,
        "received_back": report.received_back,
        "scrapped": report.scrapped,
        "net_rejected": report.net_rejected,
        "status": report.status,
    }


def create_rejected_report(
    db: Session,
    *,
    company_id: str,
    payload: schemas.RejectedItemReportCreate,
    actor_user_id: Optional[str] = None,
) -> models.RejectedItemReport:
    sku = get_sku(db, company_id=company_id, sku_id=payload.sku_id)
    report = models.RejectedItemReport(
        company_id=company_id,
        report_number=_next_report_number(db, company_id=company_id),
        incoming_inventory_id=payload.incoming_inventory_id,
        incoming_inventory_item_id=payload.incoming_inventory_item_id,
        original_invoice_number=payload.original_invoice_number,
        inspection_date=payload.inspection_date,
        sku_id=sku.id,
        item_name=payload.item_name or sku.item_name,
        quantity=payload.quantity,
        sent_to_vendor=0,
        received_back=0,
        scrapped=0,
        net_rejected=payload.quantity,
        vendor_id=payload.vendor_id,
        brand_id=payload.brand_id,
        remarks=payload.remarks,
        created_by_user_id=actor_user_id,
    )
    db.add(report)
    db.flush()
    audit_services.log_event(
        db,
        company_id=company_id,
        actor_user_id=actor_user_id,
        entity_type=REJECTED_REPORT_ENTITY,
        entity_id=str(report.id),
        action="create",
        after={"report_number": report.report_number, "quantity": report.quantity},
    )
    return report


def get_rejected_report(db: Session, *, company_id: str, report_id: int) -> models.RejectedItemReport:
    report = (
        db.query(models.RejectedItemReport)
        .filter(
            models.RejectedItemReport.company_id == company_id,
            models.RejectedItemReport.id == report_id,
        )
        .first()
    )
    if not report:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rejected item report not found.")
    return report


def list_rejected_reports(
    db: Session,
    *,
    company_id: str,
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    status_filter: Optional[str] = None,
) -> List[models.RejectedItemReport]:
    query = (
        db.query(models.RejectedItemReport)
        .outerjoin(models.Sku, models.Sku.id == models.RejectedItemReport.sku_id)
        .filter(models.RejectedItemReport.company_id == company_id)
    )
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            or_(
                models.RejectedItemReport.report_number.ilike(like),
                models.RejectedItemReport.item_name.ilike(like),
                models.RejectedItemReport.original_invoice_number.ilike(like),
                models.Sku.sku_code.ilike(like),
            )
        )
    if date_from:
        query = query.filter(models.RejectedItemReport.inspection_date >= date_from)
    if date_to:
        query = query.filter(models.RejectedItemReport.inspection_date <= date_to)
    reports = query.order_by(
        models.RejectedItemReport.inspection_date.desc(),
        models.RejectedItemReport.id.desc(),
    ).all()
    if status_filter:
        wanted = status_filter.strip().lower()
        reports = [r for r in reports if r.status.lower() == wanted]
    return reports


def update_rejected_report(
    db: Session,
    *,
    company_id: str,
    report_id: int,
    payload: schemas.RejectedItemReportUpdate,
    actor_user_id: Optional[str] = None,
) -> models.RejectedItemReport:
    """
    Overwrite the disposition counters of a report.

    Only non-negativity is checked here; capacity rules are enforced by the
    reconciliation actions before they call this. Any client-sent
    net_rejected is discarded.
    """
    report = get_rejected_report(db, company_id=company_id, report_id=report_id)
    before = _counter_snapshot(report)

    if payload.sent_to_vendor is not None:
        report.sent_to_vendor = payload.sent_to_vendor
    if payload.received_back is not None:
        report.received_back = payload.received_back
    if payload.scrapped is not None:
        report.scrapped = payload.scrapped
    if payload.remarks is not None:
        report.remarks = payload.remarks
    report.net_rejected = RejectedLedger.from_record(report).net_rejected

    db.add(report)
    db.flush()

    metadata = {"details": payload.details} if payload.details else None
    audit_services.log_event(
        db,
        company_id=company_id,
        actor_user_id=actor_user_id,
        entity_type=REJECTED_REPORT_ENTITY,
        entity_id=str(report.id),
        action=payload.action or "update",
        before=before,
        after=_counter_snapshot(report),
        metadata=metadata,
    )
    return report


def rejected_report_history(db: Session, *, company_id: str, report_id: int):
    get_rejected_report(db, company_id=company_id, report_id=report_id)
    events = audit_services.list_audit_events(
        db,
        company_id=company_id,
        entity_type=REJECTED_REPORT_ENTITY,
        entity_id=str(report_id),
    )
    return list(reversed(events))


REJECTED_CSV_COLUMNS = [
    "Report Number",
    "Original Invoice",
    "Inspection Date",
    "SKU Code",
    "Item Name",
    "Quantity",
    "Sent to Vendor",
    "Received Back",
    "Scrapped",
    "Net Rejected",
    "Status",
]


def export_rejected_reports_csv(reports: Iterable[models.RejectedItemReport]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(REJECTED_CSV_COLUMNS)
    for report in reports:
        writer.writerow(
            [
                report.report_number,
                report.original_invoice_number or "",
                report.inspection_date.isoformat() if report.inspection_date else "",
                report.sku_code or "",
                report.item_name,
                report.quantity,
                report.sent_to_vendor,
                report.received_back,
                report.scrapped,
                report.net_rejected,
                report.status,
            ]
        )
    return output.getvalue()


# ---------------------------------------------------------------------------
# INCOMING
# ---------------------------------------------------------------------------


def _load_skus(db: Session, *, company_id: str, sku_ids: Iterable[int]) -> Dict[int, models.Sku]:
    wanted = set(sku_ids)
    found = {
        sku.id: sku
        for sku in db.query(models.Sku)
        .filter(models.Sku.company_id == company_id, models.Sku.id.in_(wanted))
        .all()
    }
    missing = sorted(wanted - set(found))
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown SKU id(s): {', '.join(str(m) for m in missing)}",
        )
    return found


def create_incoming(
    db: Session,
    *,
    company_id: str,
    payload: schemas.IncomingInventoryCreate,
    actor_user_id: Optional[str] = None,
) -> models.IncomingInventory:
    skus = _load_skus(db, company_id=company_id, sku_ids=[item.sku_id for item in payload.items])

    record = models.IncomingInventory(
        company_id=company_id,
        created_by_user_id=actor_user_id,
        **payload.model_dump(exclude={"items"}),
    )
    for item in payload.items:
        record.items.append(models.IncomingInventoryItem(**item.model_dump(), short_received=0))
    db.add(record)
    db.flush()

    completed = record.status == models.RecordStatusEnum.COMPLETED
    for item in record.items:
        if completed:
            _post_movement(
                db,
                company_id=company_id,
                sku_id=item.sku_id,
                movement_type=models.StockMovementTypeEnum.RECEIVE,
                quantity=item.received,
                reference_type="incoming_inventory",
                reference_id=record.id,
                actor_user_id=actor_user_id,
            )
        if item.rejected > 0:
            create_rejected_report(
                db,
                company_id=company_id,
                payload=schemas.RejectedItemReportCreate(
                    sku_id=item.sku_id,
                    item_name=skus[item.sku_id].item_name,
                    quantity=item.rejected,
                    inspection_date=record.receiving_date,
                    original_invoice_number=record.invoice_number,
                    incoming_inventory_id=record.id,
                    incoming_inventory_item_id=item.id,
                    vendor_id=record.vendor_id,
                    brand_id=record.brand_id,
                ),
                actor_user_id=actor_user_id,
            )
    db.flush()
    logger.info(
        "Incoming inventory recorded",
        extra={
            "company_id": company_id,
            "incoming_inventory_id": record.id,
            "invoice_number": record.invoice_number,
            "status": record.status.value,
        },
    )
    return record


def get_incoming(db: Session, *, company_id: str, incoming_id: int) -> models.IncomingInventory:
    record = (
        db.query(models.IncomingInventory)
        .filter(models.IncomingInventory.company_id == company_id, models.IncomingInventory.id == incoming_id)
        .first()
    )
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Incoming inventory record not found.")
    return record


def list_incoming(
    db: Session,
    *,
    company_id: str,
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.IncomingInventory]:
    query = db.query(models.IncomingInventory).filter(models.IncomingInventory.company_id == company_id)
    if search:
        query = query.filter(models.IncomingInventory.invoice_number.ilike(f"%{search.strip()}%"))
    if date_from:
        query = query.filter(models.IncomingInventory.receiving_date >= date_from)
    if date_to:
        query = query.filter(models.IncomingInventory.receiving_date <= date_to)
    return (
        query.order_by(models.IncomingInventory.receiving_date.desc(), models.IncomingInventory.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def _get_item(record: models.IncomingInventory, item_id: int) -> models.IncomingInventoryItem:
    for item in record.items:
        if item.id == item_id:
            return item
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Item {item_id} not found on incoming record {record.id}.",
    )


def _item_snapshot(item: models.IncomingInventoryItem) -> dict:
    return {
        "received": item.received,
        "short": item.short,
        "rejected": item.rejected,
        "short_received": item.short_received,
    }


def update_short_item(
    db: Session,
    *,
    company_id: str,
    incoming_id: int,
    payload: schemas.ShortItemUpdate,
    actor_user_id: Optional[str] = None,
) -> models.IncomingInventoryItem:
    """
    Adjust received/short on one incoming item.

    Lowering `short` moves the difference into `short_received`; changing
    `received` on a completed record posts the stock delta.
    """
    record = get_incoming(db, company_id=company_id, incoming_id=incoming_id)
    item = _get_item(record, payload.item_id)
    before = _item_snapshot(item)

    if payload.short is not None and payload.short != item.short:
        if item.short_closed_at is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Short quantity on this item has been closed.",
            )
        if payload.short < item.short:
            item.short_received = (item.short_received or 0) + (item.short - payload.short)
        item.short = payload.short

    if payload.received is not None and payload.received != item.received:
        delta = payload.received - item.received
        item.received = payload.received
        if record.status == models.RecordStatusEnum.COMPLETED:
            _post_delta(
                db,
                company_id=company_id,
                sku_id=item.sku_id,
                delta=delta,
                reference_type="incoming_inventory_item",
                reference_id=item.id,
                actor_user_id=actor_user_id,
                notes="received quantity corrected",
            )

    if payload.challan_number is not None:
        item.challan_number = payload.challan_number
    if payload.challan_date is not None:
        item.challan_date = payload.challan_date

    db.add(item)
    db.flush()
    audit_services.log_event(
        db,
        company_id=company_id,
        actor_user_id=actor_user_id,
        entity_type=INCOMING_ITEM_ENTITY,
        entity_id=str(item.id),
        action="update_short_item",
        before=before,
        after=_item_snapshot(item),
    )
    return item


def _plain(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _post_item_receipts(
    db: Session,
    *,
    company_id: str,
    record: models.IncomingInventory,
    actor_user_id: Optional[str],
) -> None:
    for item in record.items:
        _post_movement(
            db,
            company_id=company_id,
            sku_id=item.sku_id,
            movement_type=models.StockMovementTypeEnum.RECEIVE,
            quantity=item.received,
            reference_type="incoming_inventory",
            reference_id=record.id,
            actor_user_id=actor_user_id,
        )


def update_incoming_record(
    db: Session,
    *,
    company_id: str,
    incoming_id: int,
    payload: schemas.IncomingRecordUpdate,
    actor_user_id: Optional[str] = None,
) -> models.IncomingInventory:
    """
    Edit the header of an incoming record.

    A draft may be completed, which posts its received quantities to stock.
    A completed record cannot go back to draft.
    """
    record = get_incoming(db, company_id=company_id, incoming_id=incoming_id)
    values = payload.model_dump(exclude_unset=True)
    for key in ("invoice_number", "receiving_date", "status"):
        if key in values and values[key] is None:
            values.pop(key)

    new_status = values.get("status")
    completing = False
    if new_status is not None and new_status != record.status:
        if record.status == models.RecordStatusEnum.COMPLETED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A completed incoming record cannot be moved back to draft.",
            )
        completing = True

    before = {key: _plain(getattr(record, key)) for key in values}
    for key, value in values.items():
        setattr(record, key, value)
    if completing:
        _post_item_receipts(db, company_id=company_id, record=record, actor_user_id=actor_user_id)
    db.add(record)
    db.flush()
    audit_services.log_event(
        db,
        company_id=company_id,
        actor_user_id=actor_user_id,
        entity_type=INCOMING_ENTITY,
        entity_id=str(record.id),
        action="update",
        before=before,
        after={key: _plain(value) for key, value in values.items()},
    )
    return record


def update_item_rejected_short(
    db: Session,
    *,
    company_id: str,
    incoming_id: int,
    payload: schemas.ItemRejectedShortUpdate,
    actor_user_id: Optional[str] = None,
) -> models.IncomingInventoryItem:
    """
    Re-split one item between received, short and rejected.

    The item total is fixed, so `received` absorbs the change. Rejected units
    already carried by a report cannot be taken back; extra rejected units
    open a new report.
    """
    record = get_incoming(db, company_id=company_id, incoming_id=incoming_id)
    item = _get_item(record, payload.item_id)
    before = _item_snapshot(item)

    new_rejected = item.rejected if payload.rejected is None else payload.rejected
    new_short = item.short if payload.short is None else payload.short
    if new_short != item.short and item.short_closed_at is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Short quantity on this item has been closed.",
        )
    new_received = item.total_quantity - new_short - new_rejected
    if new_received < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Rejected and short quantities exceed the item total.",
        )
    reported = sum(
        quantity
        for (quantity,) in db.query(models.RejectedItemReport.quantity).filter(
            models.RejectedItemReport.company_id == company_id,
            models.RejectedItemReport.incoming_inventory_item_id == item.id,
        )
    )
    if new_rejected < reported:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{reported} rejected unit(s) are already on rejected item reports.",
        )

    added_rejected = new_rejected - item.rejected
    received_delta = new_received - item.received
    item.rejected = new_rejected
    item.short = new_short
    item.received = new_received
    db.add(item)
    if record.status == models.RecordStatusEnum.COMPLETED:
        _post_delta(
            db,
            company_id=company_id,
            sku_id=item.sku_id,
            delta=received_delta,
            reference_type="incoming_inventory_item",
            reference_id=item.id,
            actor_user_id=actor_user_id,
            notes="rejected/short quantities corrected",
        )
    db.flush()

    if added_rejected > 0:
        _report_from_item(
            db,
            company_id=company_id,
            record=record,
            item=item,
            quantity=added_rejected,
            payload=schemas.MoveToRejectedRequest(
                item_id=item.id, quantity=added_rejected, inspection_date=payload.inspection_date
            ),
            actor_user_id=actor_user_id,
        )
    audit_services.log_event(
        db,
        company_id=company_id,
        actor_user_id=actor_user_id,
        entity_type=INCOMING_ITEM_ENTITY,
        entity_id=str(item.id),
        action="update_rejected_short",
        before=before,
        after=_item_snapshot(item),
    )
    return item


def _report_from_item(
    db: Session,
    *,
    company_id: str,
    record: models.IncomingInventory,
    item: models.IncomingInventoryItem,
    quantity: int,
    payload: schemas.MoveToRejectedRequest,
    actor_user_id: Optional[str],
) -> models.RejectedItemReport:
    return create_rejected_report(
        db,
        company_id=company_id,
        payload=schemas.RejectedItemReportCreate(
            sku_id=item.sku_id,
            quantity=quantity,
            inspection_date=payload.inspection_date or date.today(),
            original_invoice_number=record.invoice_number,
            incoming_inventory_id=record.id,
            incoming_inventory_item_id=item.id,
            vendor_id=record.vendor_id,
            brand_id=record.brand_id,
            remarks=payload.remarks,
        ),
        actor_user_id=actor_user_id,
    )


def move_short_to_rejected(
    db: Session,
    *,
    company_id: str,
    incoming_id: int,
    payload: schemas.MoveToRejectedRequest,
    actor_user_id: Optional[str] = None,
) -> models.RejectedItemReport:
    record = get_incoming(db, company_id=company_id, incoming_id=incoming_id)
    item = _get_item(record, payload.item_id)
    if payload.quantity > item.short:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Quantity exceeds outstanding short quantity.",
        )
    item.short -= payload.quantity
    item.rejected += payload.quantity
    db.add(item)
    db.flush()
    return _report_from_item(
        db,
        company_id=company_id,
        record=record,
        item=item,
        quantity=payload.quantity,
        payload=payload,
        actor_user_id=actor_user_id,
    )


def move_received_to_rejected(
    db: Session,
    *,
    company_id: str,
    incoming_id: int,
    payload: schemas.MoveToRejectedRequest,
    actor_user_id: Optional[str] = None,
) -> models.RejectedItemReport:
    record = get_incoming(db, company_id=company_id, incoming_id=incoming_id)
    item = _get_item(record, payload.item_id)
    if payload.quantity > item.received:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Quantity exceeds received quantity.",
        )
    item.received -= payload.quantity
    item.rejected += payload.quantity
    db.add(item)
    if record.status == models.RecordStatusEnum.COMPLETED:
        _post_movement(
            db,
            company_id=company_id,
            sku_id=item.sku_id,
            movement_type=models.StockMovementTypeEnum.ISSUE,
            quantity=payload.quantity,
            reference_type="incoming_inventory_item",
            reference_id=item.id,
            actor_user_id=actor_user_id,
            notes="moved to rejected",
        )
    db.flush()
    return _report_from_item(
        db,
        company_id=company_id,
        record=record,
        item=item,
        quantity=payload.quantity,
        payload=payload,
        actor_user_id=actor_user_id,
    )


# ---------------------------------------------------------------------------
# OUTGOING
# ---------------------------------------------------------------------------


def create_outgoing(
    db: Session,
    *,
    company_id: str,
    payload: schemas.OutgoingInventoryCreate,
    actor_user_id: Optional[str] = None,
) -> models.OutgoingInventory:
    _load_skus(db, company_id=company_id, sku_ids=[item.sku_id for item in payload.items])

    record = models.OutgoingInventory(
        company_id=company_id,
        created_by_user_id=actor_user_id,
        **payload.model_dump(exclude={"items"}),
    )
    for item in payload.items:
        record.items.append(models.OutgoingInventoryItem(**item.model_dump()))
    db.add(record)
    db.flush()

    if record.status == models.RecordStatusEnum.COMPLETED:
        for item in record.items:
            _post_movement(
                db,
                company_id=company_id,
                sku_id=item.sku_id,
                movement_type=models.StockMovementTypeEnum.ISSUE,
                quantity=item.outgoing_quantity,
                reference_type="outgoing_inventory",
                reference_id=record.id,
                actor_user_id=actor_user_id,
            )
    db.flush()
    logger.info(
        "Outgoing inventory recorded",
        extra={
            "company_id": company_id,
            "outgoing_inventory_id": record.id,
            "document_number": record.invoice_challan_number,
            "destination_type": record.destination_type.value,
        },
    )
    return record


def get_outgoing(db: Session, *, company_id: str, outgoing_id: int) -> models.OutgoingInventory:
    record = (
        db.query(models.OutgoingInventory)
        .filter(models.OutgoingInventory.company_id == company_id, models.OutgoingInventory.id == outgoing_id)
        .first()
    )
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Outgoing inventory record not found.")
    return record


def list_outgoing(
    db: Session,
    *,
    company_id: str,
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.OutgoingInventory]:
    query = db.query(models.OutgoingInventory).filter(models.OutgoingInventory.company_id == company_id)
    if search:
        query = query.filter(models.OutgoingInventory.invoice_challan_number.ilike(f"%{search.strip()}%"))
    if date_from:
        query = query.filter(models.OutgoingInventory.invoice_challan_date >= date_from)
    if date_to:
        query = query.filter(models.OutgoingInventory.invoice_challan_date <= date_to)
    return (
        query.order_by(models.OutgoingInventory.invoice_challan_date.desc(), models.OutgoingInventory.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


# ---------------------------------------------------------------------------
# SHORT ITEM REPORTS
# ---------------------------------------------------------------------------


def short_report_row(item: models.IncomingInventoryItem) -> schemas.ShortItemReportRead:
    record = item.incoming
    short_quantity = (item.short or 0) + (item.short_received or 0)
    received_back = item.short_received or 0
    code = short_status_for(short_quantity, received_back, closed=item.short_closed_at is not None)
    return schemas.ShortItemReportRead(
        id=item.id,
        incoming_inventory_id=record.id,
        incoming_inventory_item_id=item.id,
        invoice_number=record.invoice_number,
        invoice_received_date=record.receiving_date,
        sku_id=item.sku_id,
        sku_code=item.sku.sku_code if item.sku else None,
        item_name=item.sku.item_name if item.sku else None,
        short_quantity=short_quantity,
        received_back=received_back,
        net_rejected=item.short or 0,
        status=code.value,
        status_label=humanize_status(code),
        vendor_id=record.vendor_id,
        brand_id=record.brand_id,
        created_at=item.created_at,
    )


def list_short_reports(
    db: Session,
    *,
    company_id: str,
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    status_filter: Optional[str] = None,
) -> List[schemas.ShortItemReportRead]:
    query = (
        db.query(models.IncomingInventoryItem)
        .join(models.IncomingInventory, models.IncomingInventory.id == models.IncomingInventoryItem.incoming_inventory_id)
        .join(models.Sku, models.Sku.id == models.IncomingInventoryItem.sku_id)
        .filter(
            models.IncomingInventory.company_id == company_id,
            or_(models.IncomingInventoryItem.short > 0, models.IncomingInventoryItem.short_received > 0),
        )
    )
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            or_(
                models.IncomingInventory.invoice_number.ilike(like),
                models.Sku.sku_code.ilike(like),
                models.Sku.item_name.ilike(like),
            )
        )
    if date_from:
        query = query.filter(models.IncomingInventory.receiving_date >= date_from)
    if date_to:
        query = query.filter(models.IncomingInventory.receiving_date <= date_to)
    items = query.order_by(
        models.IncomingInventory.receiving_date.desc(),
        models.IncomingInventoryItem.id.desc(),
    ).all()
    rows = [short_report_row(item) for item in items]
    if status_filter:
        rows = [row for row in rows if row.status == status_filter.strip().lower()]
    return rows


def get_short_item(db: Session, *, company_id: str, item_id: int) -> models.IncomingInventoryItem:
    item = (
        db.query(models.IncomingInventoryItem)
        .join(models.IncomingInventory, models.IncomingInventory.id == models.IncomingInventoryItem.incoming_inventory_id)
        .filter(models.IncomingInventory.company_id == company_id, models.IncomingInventoryItem.id == item_id)
        .first()
    )
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Short item not found.")
    return item


def close_short_item(
    db: Session,
    *,
    company_id: str,
    item_id: int,
    remarks: Optional[str] = None,
    actor_user_id: Optional[str] = None,
) -> models.IncomingInventoryItem:
    """Write off whatever is still short; the row then reads 'closed'."""
    item = get_short_item(db, company_id=company_id, item_id=item_id)
    if item.short_closed_at is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Short item is already closed.")
    if (item.short or 0) <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing outstanding to close.")
    item.short_closed_at = datetime.utcnow()
    db.add(item)
    db.flush()
    audit_services.log_event(
        db,
        company_id=company_id,
        actor_user_id=actor_user_id,
        entity_type=INCOMING_ITEM_ENTITY,
        entity_id=str(item.id),
        action="close_short",
        after={"written_off": item.short},
        metadata={"remarks": remarks} if remarks else None,
    )
    return item


SHORT_CSV_COLUMNS = [
    "Invoice Number",
    "Received Date",
    "SKU Code",
    "Item Name",
    "Short Quantity",
    "Received Back",
    "Net Short",
    "Status",
]


def export_short_reports_csv(rows: Iterable[schemas.ShortItemReportRead]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(SHORT_CSV_COLUMNS)
    for row in rows:
        writer.writerow(
            [
                row.invoice_number,
                row.invoice_received_date.isoformat(),
                row.sku_code or "",
                row.item_name or "",
                row.short_quantity,
                row.received_back,
                row.net_rejected,
                row.status_label,
            ]
        )
    return output.getvalue()
