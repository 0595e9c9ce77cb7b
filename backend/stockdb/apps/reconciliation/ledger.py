"""
Quantity ledgers for rejected and short lots.

A ledger is an immutable snapshot of the counters kept on a report. Actions
never mutate a ledger in place; they compute the next one with `after_*`
and hand its `as_update()` to the inventory gateway.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional


def _get_value(obj: Any, *keys: str) -> Any:
    for key in keys:
        if isinstance(obj, dict):
            if key in obj:
                return obj[key]
        elif hasattr(obj, key):
            return getattr(obj, key)
    return None


def _counter(value: Any) -> int:
    if value is None or value == "":
        return 0
    return int(value)


@dataclass(frozen=True)
class RejectedLedger:
    quantity: int = 0
    sent_to_vendor: int = 0
    received_back: int = 0
    scrapped: int = 0

    @classmethod
    def from_record(cls, record: Any) -> "RejectedLedger":
        """Build from an ORM row, a read schema or a camelCase/snake_case dict."""
        return cls(
            quantity=_counter(_get_value(record, "quantity")),
            sent_to_vendor=_counter(_get_value(record, "sent_to_vendor", "sentToVendor")),
            received_back=_counter(_get_value(record, "received_back", "receivedBack")),
            scrapped=_counter(_get_value(record, "scrapped")),
        )

    @property
    def processed(self) -> int:
        return self.sent_to_vendor + self.received_back + self.scrapped

    @property
    def available(self) -> int:
        """Units not yet sent, received back or scrapped."""
        return self.quantity - self.processed

    @property
    def net_rejected(self) -> int:
        return max(0, self.available)

    def after_send(self, qty: int) -> "RejectedLedger":
        return replace(self, sent_to_vendor=self.sent_to_vendor + qty)

    def after_receive(self, qty: int) -> "RejectedLedger":
        # Goods come back out of the vendor's hands.
        return replace(
            self,
            received_back=self.received_back + qty,
            sent_to_vendor=max(0, self.sent_to_vendor - qty),
        )

    def after_scrap(self, qty: int) -> "RejectedLedger":
        return replace(self, scrapped=self.scrapped + qty)

    def as_update(self) -> Dict[str, int]:
        """Counter payload for updateRejectedItemReport; net_rejected is server-derived."""
        return {
            "sent_to_vendor": self.sent_to_vendor,
            "received_back": self.received_back,
            "scrapped": self.scrapped,
        }


@dataclass(frozen=True)
class ShortLedger:
    short_quantity: int = 0
    received_back: int = 0

    @classmethod
    def from_record(cls, record: Any) -> "ShortLedger":
        return cls(
            short_quantity=_counter(_get_value(record, "short_quantity", "shortQuantity")),
            received_back=_counter(_get_value(record, "received_back", "receivedBack")),
        )

    @property
    def outstanding(self) -> int:
        return self.short_quantity - self.received_back

    @property
    def net_short(self) -> int:
        return max(0, self.outstanding)

    def after_receive(self, qty: int) -> "ShortLedger":
        return replace(self, received_back=self.received_back + qty)


def remaining_short(current_short: Optional[int], qty: int) -> int:
    """Item-level short counter after `qty` units came back, clamped at 0."""
    return max(0, _counter(current_short) - qty)
