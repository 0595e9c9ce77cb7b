"""
Reconciliation actions on rejected and short lots.

Each action validates its form against the current ledger, then calls the
inventory gateway in a fixed order. Two writes are never wrapped in one
transaction: if the second fails, the first stays applied and the failure is
logged at ERROR so it can be fixed by hand.
"""

from __future__ import annotations

import logging
import os
from datetime import date
from typing import Any, Dict, Optional

from stockdb.utils.identifiers import millis_suffix

from . import guards
from .gateway import GatewayError, InventoryGateway
from .ledger import RejectedLedger, ShortLedger, remaining_short
from .schemas import (
    ActionResult,
    ReceiveFromVendorRequest,
    ScrapReason,
    ScrapRequest,
    SendToVendorRequest,
    ShortReceiveBackRequest,
)
from .status import classify, humanize_status, short_status_for

logger = logging.getLogger(__name__)

try:
    MIN_UNIT_PRICE = float(os.getenv("MIN_UNIT_PRICE", "0.01"))
except ValueError:
    MIN_UNIT_PRICE = 0.01

SEND_TO_VENDOR = "send_to_vendor"
RECEIVE_FROM_VENDOR = "receive_from_vendor"
SCRAP = "scrap"
RECEIVE_SHORT_BACK = "receive_short_back"


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _ledger_dict(ledger: RejectedLedger) -> Dict[str, int]:
    return {
        "quantity": ledger.quantity,
        "sent_to_vendor": ledger.sent_to_vendor,
        "received_back": ledger.received_back,
        "scrapped": ledger.scrapped,
        "net_rejected": ledger.net_rejected,
    }


def _rejected_result(action: str, source: Dict[str, Any], qty: int, ledger: RejectedLedger, message: str, **extra):
    info = classify(ledger)
    return ActionResult(
        action=action,
        report_id=source["id"],
        quantity=qty,
        ledger=_ledger_dict(ledger),
        status=info.status.value,
        status_color=info.color,
        message=message,
        **extra,
    )


def _catalog_unit_price(gateway: InventoryGateway, sku_id: int) -> float:
    """Catalog price for `sku_id`, or MIN_UNIT_PRICE when it is missing or unusable."""
    try:
        sku = gateway.get_sku(sku_id)
    except GatewayError as exc:
        logger.warning(
            "SKU price lookup failed; using minimum unit price",
            extra={"sku_id": sku_id, "error": exc.message, "fallback": MIN_UNIT_PRICE},
        )
        return MIN_UNIT_PRICE
    price = sku.get("unit_price") if isinstance(sku, dict) else None
    try:
        price = float(price) if price is not None else None
    except (TypeError, ValueError):
        price = None
    if price is None or price <= 0:
        logger.warning(
            "SKU has no usable unit price; using minimum unit price",
            extra={"sku_id": sku_id, "fallback": MIN_UNIT_PRICE},
        )
        return MIN_UNIT_PRICE
    return price


def _log_half_applied(action: str, first_write: str, reference: Any, exc: GatewayError) -> None:
    logger.error(
        "Reconciliation left half applied",
        extra={
            "action": action,
            "applied": first_write,
            "reference": reference,
            "status_code": exc.status_code,
            "error": exc.message,
        },
    )


# ---------------------------------------------------------------------------
# REJECTED ITEMS
# ---------------------------------------------------------------------------


def send_to_vendor(gateway: InventoryGateway, report: Dict[str, Any], form: SendToVendorRequest) -> ActionResult:
    """
    Ship `form.quantity` rejected units back to the vendor.

    Creates the outgoing delivery challan first; the report's sent_to_vendor
    only moves once that record exists.
    """
    ledger = RejectedLedger.from_record(report)
    guards.ensure_valid(guards.guard_send_to_vendor(ledger, form))

    qty = form.quantity
    unit_price = form.unit_price if form.unit_price and form.unit_price > 0 else MIN_UNIT_PRICE
    document_number = report.get("report_number") or (
        f"REJ-{report.get('original_invoice_number')}-{millis_suffix()}"
    )
    outgoing = gateway.add_outgoing(
        {
            "document_type": "delivery_challan",
            "document_sub_type": "replacement",
            "delivery_challan_sub_type": "to_vendor",
            "invoice_challan_number": document_number,
            "invoice_challan_date": _iso(form.action_date),
            "docket_number": form.docket_tracking,
            "transporter_name": form.transporter,
            "destination_type": "vendor",
            "destination_id": form.vendor_id,
            "status": "completed",
            "reason": form.reason,
            "remarks": form.remarks or f"Rejected items sent to vendor. Reason: {form.reason}",
            "items": [
                {
                    "sku_id": report["sku_id"],
                    "outgoing_quantity": qty,
                    "unit_price": unit_price,
                    "total_value": round(qty * unit_price, 2),
                }
            ],
        }
    )

    next_ledger = ledger.after_send(qty)
    try:
        updated = gateway.update_rejected_item_report(
            report["id"],
            {
                **next_ledger.as_update(),
                "action": SEND_TO_VENDOR,
                "details": {
                    "quantity": qty,
                    "vendor_id": form.vendor_id,
                    "brand_id": form.brand_id,
                    "reason": form.reason,
                    "date": _iso(form.action_date),
                    "unit_price": unit_price,
                    "outgoing_inventory_id": outgoing.get("id"),
                },
            },
        )
    except GatewayError as exc:
        _log_half_applied(SEND_TO_VENDOR, "outgoing_inventory", outgoing.get("id"), exc)
        raise

    logger.info(
        "Rejected items sent to vendor",
        extra={"report_id": report["id"], "quantity": qty, "vendor_id": form.vendor_id},
    )
    return _rejected_result(
        SEND_TO_VENDOR,
        report,
        qty,
        next_ledger,
        f"{qty} item(s) sent to vendor.",
        created_record=outgoing,
        report=updated,
    )


def receive_from_vendor(
    gateway: InventoryGateway, report: Dict[str, Any], form: ReceiveFromVendorRequest
) -> ActionResult:
    """
    Take units back from the vendor.

    The report is updated first. An incoming record follows when the goods go
    to stock or part of the return is short.
    """
    ledger = RejectedLedger.from_record(report)
    guards.ensure_valid(guards.guard_receive_from_vendor(ledger, form))

    qty = form.quantity
    short_item = form.short_item or 0
    next_ledger = ledger.after_receive(qty)
    updated = gateway.update_rejected_item_report(
        report["id"],
        {
            **next_ledger.as_update(),
            "action": RECEIVE_FROM_VENDOR,
            "details": {
                "quantity": qty,
                "vendor_id": form.vendor_id,
                "brand_id": form.brand_id,
                "date": _iso(form.action_date),
                "condition": form.condition.value,
                "add_to_stock": form.add_to_stock,
                "short_item": short_item,
            },
        },
    )

    incoming = None
    if form.add_to_stock or short_item > 0:
        received = qty if form.add_to_stock else 0
        total = received + short_item
        unit_price = _catalog_unit_price(gateway, report["sku_id"])
        try:
            incoming = gateway.add_incoming(
                {
                    "invoice_number": form.invoice_challan
                    or f"RECV-{report.get('report_number')}-{millis_suffix()}",
                    "invoice_date": _iso(form.action_date),
                    "receiving_date": _iso(form.action_date),
                    "vendor_id": form.vendor_id,
                    "brand_id": form.brand_id,
                    "received_by": form.received_by,
                    "document_type": "bill",
                    "status": "completed",
                    "remarks": form.remarks
                    or (
                        f"Items received from vendor. Condition: {form.condition.value}. "
                        f"Report: {report.get('report_number')}"
                    ),
                    "items": [
                        {
                            "sku_id": report["sku_id"],
                            "total_quantity": total,
                            "received": received,
                            "short": short_item,
                            "rejected": 0,
                            "unit_price": unit_price,
                            "total_value": round(total * unit_price, 2),
                        }
                    ],
                }
            )
        except GatewayError as exc:
            _log_half_applied(RECEIVE_FROM_VENDOR, "rejected_item_report", report["id"], exc)
            raise

    logger.info(
        "Rejected items received from vendor",
        extra={"report_id": report["id"], "quantity": qty, "add_to_stock": form.add_to_stock},
    )
    return _rejected_result(
        RECEIVE_FROM_VENDOR,
        report,
        qty,
        next_ledger,
        f"{qty} item(s) received from vendor.",
        created_record=incoming,
        report=updated,
    )


def scrap(gateway: InventoryGateway, report: Dict[str, Any], form: ScrapRequest) -> ActionResult:
    """Write units off. There is no way back from this."""
    ledger = RejectedLedger.from_record(report)
    guards.ensure_valid(guards.guard_scrap(ledger, form))

    qty = form.quantity
    reason = form.scrap_reason_other if form.scrap_reason == ScrapReason.OTHER else form.scrap_reason.value
    next_ledger = ledger.after_scrap(qty)
    updated = gateway.update_rejected_item_report(
        report["id"],
        {
            **next_ledger.as_update(),
            "action": SCRAP,
            "details": {
                "quantity": qty,
                "date": _iso(form.action_date),
                "scrap_reason": reason,
                "approved_by": form.approved_by,
                "remarks": form.remarks,
            },
        },
    )
    logger.info(
        "Rejected items scrapped",
        extra={"report_id": report["id"], "quantity": qty, "scrap_reason": reason},
    )
    return _rejected_result(SCRAP, report, qty, next_ledger, f"{qty} item(s) scrapped.", report=updated)


# ---------------------------------------------------------------------------
# SHORT ITEMS
# ---------------------------------------------------------------------------


def receive_short_back(
    gateway: InventoryGateway, row: Dict[str, Any], form: ShortReceiveBackRequest
) -> ActionResult:
    """
    Book units that arrived late against a short item.

    The stock credit goes in first as a new incoming record, then the
    originating item's short counter is lowered by the same amount.
    """
    ledger = ShortLedger.from_record(row)
    guards.ensure_valid(guards.guard_short_receive_back(ledger, form, status=row.get("status")))

    qty = form.quantity
    unit_price = _catalog_unit_price(gateway, row["sku_id"])
    incoming = gateway.add_incoming(
        {
            "invoice_number": form.invoice_challan,
            "invoice_date": _iso(form.action_date),
            "receiving_date": _iso(form.action_date),
            "vendor_id": form.vendor_id,
            "brand_id": form.brand_id,
            "received_by": form.received_by,
            "document_type": "bill",
            "status": "completed",
            "remarks": form.remarks
            or f"Short items received back. Original invoice: {row.get('invoice_number')}",
            "items": [
                {
                    "sku_id": row["sku_id"],
                    "total_quantity": qty,
                    "received": qty,
                    "short": 0,
                    "rejected": 0,
                    "unit_price": unit_price,
                    "total_value": round(qty * unit_price, 2),
                }
            ],
        }
    )

    item_id = row.get("incoming_inventory_item_id") or row["id"]
    try:
        gateway.update_short_item(
            row["incoming_inventory_id"],
            {"item_id": item_id, "short": remaining_short(ledger.outstanding, qty)},
        )
    except GatewayError as exc:
        _log_half_applied(RECEIVE_SHORT_BACK, "incoming_inventory", incoming.get("id"), exc)
        raise

    next_ledger = ledger.after_receive(qty)
    code = short_status_for(next_ledger.short_quantity, next_ledger.received_back)
    logger.info(
        "Short items received back",
        extra={"incoming_inventory_item_id": item_id, "quantity": qty},
    )
    return ActionResult(
        action=RECEIVE_SHORT_BACK,
        report_id=item_id,
        quantity=qty,
        ledger={
            "short_quantity": next_ledger.short_quantity,
            "received_back": next_ledger.received_back,
            "net_short": next_ledger.net_short,
        },
        status=humanize_status(code),
        message=f"{qty} short item(s) received back.",
        created_record=incoming,
    )
