from __future__ import annotations

import enum
from datetime import date
from typing import Any, Dict, Optional

from pydantic import BaseModel


class ScrapReason(str, enum.Enum):
    BEYOND_REPAIR = "beyond-repair"
    NOT_WORTH_RETURN = "not-worth-return"
    EXPIRED_OBSOLETE = "expired-obsolete"
    OTHER = "other"


class ReceiveCondition(str, enum.Enum):
    REPLACED = "replaced"
    REPAIRED = "repaired"
    AS_IS = "as-is"


# Required fields stay Optional here; missing ones are reported by guards.py.


class SendToVendorRequest(BaseModel):
    quantity: int = 0
    vendor_id: Optional[int] = None
    brand_id: Optional[int] = None
    reason: Optional[str] = None
    action_date: Optional[date] = None
    unit_price: Optional[float] = None
    docket_tracking: Optional[str] = None
    transporter: Optional[str] = None
    remarks: Optional[str] = None


class ReceiveFromVendorRequest(BaseModel):
    quantity: int = 0
    vendor_id: Optional[int] = None
    brand_id: Optional[int] = None
    action_date: Optional[date] = None
    condition: ReceiveCondition = ReceiveCondition.REPLACED
    invoice_challan: Optional[str] = None
    add_to_stock: bool = True
    short_item: Optional[int] = None
    received_by: Optional[int] = None
    docket_tracking: Optional[str] = None
    transporter: Optional[str] = None
    remarks: Optional[str] = None


class ScrapRequest(BaseModel):
    quantity: int = 0
    action_date: Optional[date] = None
    scrap_reason: ScrapReason = ScrapReason.BEYOND_REPAIR
    scrap_reason_other: Optional[str] = None
    approved_by: Optional[str] = None
    remarks: Optional[str] = None


class ShortReceiveBackRequest(BaseModel):
    quantity: int = 0
    vendor_id: Optional[int] = None
    brand_id: Optional[int] = None
    action_date: Optional[date] = None
    invoice_challan: Optional[str] = None
    received_by: Optional[int] = None
    condition: ReceiveCondition = ReceiveCondition.REPLACED
    docket_tracking: Optional[str] = None
    transporter: Optional[str] = None
    remarks: Optional[str] = None


class ActionResult(BaseModel):
    action: str
    report_id: int
    quantity: int
    ledger: Dict[str, int]
    status: str
    status_color: Optional[str] = None
    message: str
    created_record: Optional[Dict[str, Any]] = None
    report: Optional[Dict[str, Any]] = None
