from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional, Union

from .ledger import RejectedLedger


class ReportStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    SENT_TO_VENDOR = "Sent to Vendor"
    PARTIALLY_RETURNED = "Partially Returned"
    COMPLETED = "Completed"
    RECEIVED = "Received"
    SCRAPPED = "Scrapped"


STATUS_COLORS = {
    ReportStatus.PENDING: "yellow",
    ReportStatus.IN_PROGRESS: "blue",
    ReportStatus.SENT_TO_VENDOR: "purple",
    ReportStatus.PARTIALLY_RETURNED: "orange",
    ReportStatus.COMPLETED: "green",
    ReportStatus.RECEIVED: "green",
    ReportStatus.SCRAPPED: "gray",
}

STATUS_DESCRIPTIONS = {
    ReportStatus.PENDING: "No action taken yet on rejected items",
    ReportStatus.IN_PROGRESS: "Some items sent to vendor or scrapped, but not all",
    ReportStatus.SENT_TO_VENDOR: "All rejected items have been sent back to vendor, awaiting return",
    ReportStatus.PARTIALLY_RETURNED: "Some (but not all) sent items have been received back from vendor",
    ReportStatus.COMPLETED: "All sent items received back and added to stock",
    ReportStatus.RECEIVED: "All rejected items received back and added to stock",
    ReportStatus.SCRAPPED: "All rejected items have been scrapped/written off",
}

DEFAULT_COLOR = "gray"


@dataclass(frozen=True)
class StatusInfo:
    status: ReportStatus
    color: str
    description: str


def _info(status: ReportStatus) -> StatusInfo:
    return StatusInfo(status=status, color=STATUS_COLORS[status], description=STATUS_DESCRIPTIONS[status])


def _derive(ledger: RejectedLedger) -> ReportStatus:
    quantity = ledger.quantity
    sent = ledger.sent_to_vendor
    received = ledger.received_back
    scrapped = ledger.scrapped

    if quantity == 0:
        return ReportStatus.PENDING
    if scrapped == quantity and sent == 0 and received == 0:
        return ReportStatus.SCRAPPED
    if sent == quantity and received == 0 and scrapped == 0:
        return ReportStatus.SENT_TO_VENDOR
    # Must stay ahead of COMPLETED: a fully received lot reads "Received".
    if received == quantity and scrapped == 0:
        return ReportStatus.RECEIVED
    if sent > 0 and received == sent and scrapped == 0:
        return ReportStatus.COMPLETED
    if sent > 0 and 0 < received < sent:
        return ReportStatus.PARTIALLY_RETURNED
    if 0 < ledger.processed < quantity:
        return ReportStatus.IN_PROGRESS
    return ReportStatus.PENDING


def classify(ledger: Union[RejectedLedger, Any]) -> StatusInfo:
    """
    Map a rejected-item ledger to its display status.

    Accepts a RejectedLedger or anything RejectedLedger.from_record accepts.
    Rules are checked in priority order and the first match wins.
    """
    if not isinstance(ledger, RejectedLedger):
        ledger = RejectedLedger.from_record(ledger)
    return _info(_derive(ledger))


def status_color(status: Optional[str]) -> str:
    """Case-insensitive label lookup; unknown labels get the default color."""
    wanted = (status or "").strip().lower()
    for known, color in STATUS_COLORS.items():
        if known.value.lower() == wanted:
            return color
    return DEFAULT_COLOR


# ---------------------------------------------------------------------------
# SHORT ITEMS
# ---------------------------------------------------------------------------


class ShortItemStatus(str, enum.Enum):
    PENDING = "pending"
    RECEIVED_BACK = "received-back"
    PARTIALLY_RECEIVED = "partially-received"
    CLOSED = "closed"


def short_status_for(short_quantity: int, received_back: int, closed: bool = False) -> ShortItemStatus:
    if closed:
        return ShortItemStatus.CLOSED
    if short_quantity > 0 and received_back >= short_quantity:
        return ShortItemStatus.RECEIVED_BACK
    if received_back > 0:
        return ShortItemStatus.PARTIALLY_RECEIVED
    return ShortItemStatus.PENDING


def humanize_status(code: Optional[str]) -> str:
    """'partially-received' -> 'Partially Received'."""
    if code is None:
        return ""
    raw = code.value if isinstance(code, enum.Enum) else str(code)
    return " ".join(word.capitalize() for word in raw.replace("-", " ").split())
