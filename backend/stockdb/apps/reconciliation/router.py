from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from stockdb.apps.accounts.models import ModuleKey, PermissionAction
from stockdb.context import SessionContext
from stockdb.database import get_db
from stockdb.permissions import require_module_access
from stockdb.security import oauth2_scheme

from . import actions, gateway as gateway_module, schemas
from .gateway import GatewayError, InventoryGateway, LocalInventoryGateway, RestInventoryGateway
from .guards import ActionValidationError

router = APIRouter(prefix="/inventory", tags=["reconciliation"])

INVENTORY_EDIT = require_module_access(ModuleKey.INVENTORY, PermissionAction.EDIT)


def get_inventory_gateway(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme),
    ctx: SessionContext = Depends(INVENTORY_EDIT),
) -> InventoryGateway:
    """In-process gateway unless INVENTORY_API_URL points at another stockdb API."""
    if gateway_module.INVENTORY_API_URL:
        return RestInventoryGateway(gateway_module.INVENTORY_API_URL, token=token)
    return LocalInventoryGateway(db, ctx)


def _run_action(fn: Callable[[], schemas.ActionResult]) -> schemas.ActionResult:
    try:
        return fn()
    except ActionValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.detail)
    except GatewayError as exc:
        raise HTTPException(
            status_code=exc.status_code or status.HTTP_502_BAD_GATEWAY,
            detail=exc.message,
        )


@router.post("/rejected-item-reports/{report_id}/send-to-vendor", response_model=schemas.ActionResult)
def send_to_vendor(
    report_id: int,
    payload: schemas.SendToVendorRequest,
    gateway: InventoryGateway = Depends(get_inventory_gateway),
):
    return _run_action(
        lambda: actions.send_to_vendor(gateway, gateway.get_rejected_item_report(report_id), payload)
    )


@router.post("/rejected-item-reports/{report_id}/receive-from-vendor", response_model=schemas.ActionResult)
def receive_from_vendor(
    report_id: int,
    payload: schemas.ReceiveFromVendorRequest,
    gateway: InventoryGateway = Depends(get_inventory_gateway),
):
    return _run_action(
        lambda: actions.receive_from_vendor(gateway, gateway.get_rejected_item_report(report_id), payload)
    )


@router.post("/rejected-item-reports/{report_id}/scrap", response_model=schemas.ActionResult)
def scrap(
    report_id: int,
    payload: schemas.ScrapRequest,
    gateway: InventoryGateway = Depends(get_inventory_gateway),
):
    return _run_action(lambda: actions.scrap(gateway, gateway.get_rejected_item_report(report_id), payload))


@router.post("/short-item-reports/{item_id}/receive-back", response_model=schemas.ActionResult)
def receive_short_back(
    item_id: int,
    payload: schemas.ShortReceiveBackRequest,
    gateway: InventoryGateway = Depends(get_inventory_gateway),
):
    return _run_action(
        lambda: actions.receive_short_back(gateway, gateway.get_short_item_report(item_id), payload)
    )
