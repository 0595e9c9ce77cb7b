from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .ledger import RejectedLedger, ShortLedger
from .schemas import ScrapReason
from .status import ShortItemStatus

GuardResult = List[Dict[str, str]]


@dataclass
class ActionValidationError(Exception):
    code: str
    detail: List[Dict[str, str]]


def _get_value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _check_quantity(failures: GuardResult, quantity: int, limit: int, reason: str) -> None:
    if quantity is None or quantity <= 0:
        failures.append({"field": "quantity", "reason": "Quantity must be greater than 0"})
    elif quantity > limit:
        failures.append({"field": "quantity", "reason": reason})


def guard_send_to_vendor(ledger: RejectedLedger, form: Any) -> GuardResult:
    failures: GuardResult = []
    if _blank(_get_value(form, "vendor_id")):
        failures.append({"field": "vendor_id", "reason": "Please select a vendor"})
    if _blank(_get_value(form, "brand_id")):
        failures.append({"field": "brand_id", "reason": "Please select a brand"})
    if _blank(_get_value(form, "reason")):
        failures.append({"field": "reason", "reason": "Please enter a reason"})
    if _blank(_get_value(form, "action_date")):
        failures.append({"field": "action_date", "reason": "Please select a date"})
    _check_quantity(
        failures,
        _get_value(form, "quantity"),
        ledger.available,
        "Quantity exceeds available rejected quantity",
    )
    unit_price = _get_value(form, "unit_price")
    if unit_price is None or unit_price < 0:
        failures.append(
            {"field": "unit_price", "reason": "Please enter a valid unit price (must be 0 or greater)"}
        )
    return failures


def guard_receive_from_vendor(ledger: RejectedLedger, form: Any) -> GuardResult:
    failures: GuardResult = []
    if _blank(_get_value(form, "vendor_id")):
        failures.append({"field": "vendor_id", "reason": "Please select a vendor"})
    if _blank(_get_value(form, "brand_id")):
        failures.append({"field": "brand_id", "reason": "Please select a brand"})
    if _blank(_get_value(form, "action_date")):
        failures.append({"field": "action_date", "reason": "Please select a date"})
    quantity = _get_value(form, "quantity")
    _check_quantity(failures, quantity, ledger.sent_to_vendor, "Quantity exceeds sent to vendor quantity")

    short_item = _get_value(form, "short_item") or 0
    if short_item < 0:
        failures.append({"field": "short_item", "reason": "Short quantity cannot be negative"})
    elif quantity is not None and short_item > quantity:
        failures.append({"field": "short_item", "reason": "Short quantity cannot exceed received quantity"})
    return failures


def guard_scrap(ledger: RejectedLedger, form: Any) -> GuardResult:
    failures: GuardResult = []
    if _blank(_get_value(form, "action_date")):
        failures.append({"field": "action_date", "reason": "Please select a date"})
    _check_quantity(
        failures,
        _get_value(form, "quantity"),
        ledger.available,
        "Quantity exceeds available rejected quantity",
    )
    reason = _get_value(form, "scrap_reason")
    if reason is not None and ScrapReason(reason) == ScrapReason.OTHER and _blank(
        _get_value(form, "scrap_reason_other")
    ):
        failures.append({"field": "scrap_reason_other", "reason": "Please specify the reason for scrapping"})
    if _blank(_get_value(form, "approved_by")):
        failures.append({"field": "approved_by", "reason": "Please select who approved this scrap action"})
    return failures


def guard_short_receive_back(ledger: ShortLedger, form: Any, *, status: Any = None) -> GuardResult:
    failures: GuardResult = []
    if status is not None:
        try:
            if ShortItemStatus(status) == ShortItemStatus.CLOSED:
                failures.append({"field": "status", "reason": "Short item has been closed"})
        except ValueError:
            failures.append({"field": "status", "reason": f"Unknown short item status '{status}'"})
    if _blank(_get_value(form, "vendor_id")):
        failures.append({"field": "vendor_id", "reason": "Please select a vendor"})
    if _blank(_get_value(form, "brand_id")):
        failures.append({"field": "brand_id", "reason": "Please select a brand"})
    if _blank(_get_value(form, "action_date")):
        failures.append({"field": "action_date", "reason": "Please select a date"})
    if _blank(_get_value(form, "invoice_challan")):
        failures.append({"field": "invoice_challan", "reason": "Please enter invoice number"})
    if _blank(_get_value(form, "received_by")):
        failures.append({"field": "received_by", "reason": "Please select received by"})
    _check_quantity(
        failures,
        _get_value(form, "quantity"),
        ledger.outstanding,
        "Quantity exceeds available short quantity",
    )
    return failures


def ensure_valid(failures: GuardResult) -> None:
    if failures:
        raise ActionValidationError(code="validation_failed", detail=failures)
