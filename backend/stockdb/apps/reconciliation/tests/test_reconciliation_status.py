from __future__ import annotations

import pytest

from stockdb.apps.reconciliation.ledger import RejectedLedger, ShortLedger, remaining_short
from stockdb.apps.reconciliation.status import (
    ReportStatus,
    ShortItemStatus,
    classify,
    humanize_status,
    short_status_for,
    status_color,
)


@pytest.mark.parametrize(
    "counters, expected",
    [
        ((10, 0, 0, 0), ReportStatus.PENDING),
        ((10, 10, 0, 0), ReportStatus.SENT_TO_VENDOR),
        ((10, 10, 10, 0), ReportStatus.RECEIVED),
        ((10, 6, 4, 0), ReportStatus.PARTIALLY_RETURNED),
        ((10, 4, 0, 3), ReportStatus.IN_PROGRESS),
        ((10, 0, 0, 10), ReportStatus.SCRAPPED),
        ((0, 0, 0, 0), ReportStatus.PENDING),
        ((10, 0, 10, 0), ReportStatus.RECEIVED),
        ((10, 4, 4, 0), ReportStatus.COMPLETED),
        ((10, 3, 3, 2), ReportStatus.IN_PROGRESS),
    ],
)
def test_classify_boundaries(counters, expected):
    quantity, sent, received, scrapped = counters
    ledger = RejectedLedger(quantity=quantity, sent_to_vendor=sent, received_back=received, scrapped=scrapped)
    assert classify(ledger).status == expected


def test_classify_is_deterministic_and_accepts_records():
    record = {"quantity": 10, "sentToVendor": 6, "receivedBack": 4, "scrapped": 0}
    first = classify(record)
    second = classify(RejectedLedger.from_record(record))
    assert first == second
    assert first.color == "orange"
    assert "received back" in first.description


def test_net_rejected_never_negative():
    ledger = RejectedLedger(quantity=5, sent_to_vendor=3, received_back=3, scrapped=1)
    assert ledger.available == -2
    assert ledger.net_rejected == 0


def test_after_receive_moves_units_out_of_sent():
    ledger = RejectedLedger(quantity=10, sent_to_vendor=6).after_receive(4)
    assert ledger.sent_to_vendor == 2
    assert ledger.received_back == 4
    assert ledger.as_update() == {"sent_to_vendor": 2, "received_back": 4, "scrapped": 0}


def test_missing_counters_read_as_zero():
    ledger = RejectedLedger.from_record({"quantity": "7", "sent_to_vendor": None})
    assert ledger == RejectedLedger(quantity=7)


def test_status_color_lookup_is_case_insensitive():
    assert status_color("sent to vendor") == "purple"
    assert status_color("RECEIVED") == "green"
    assert status_color("Unknown") == "gray"
    assert status_color(None) == "gray"


def test_short_status_and_label():
    assert short_status_for(5, 0) == ShortItemStatus.PENDING
    assert short_status_for(5, 2) == ShortItemStatus.PARTIALLY_RECEIVED
    assert short_status_for(5, 5) == ShortItemStatus.RECEIVED_BACK
    assert short_status_for(5, 2, closed=True) == ShortItemStatus.CLOSED
    assert humanize_status(ShortItemStatus.PARTIALLY_RECEIVED) == "Partially Received"
    assert humanize_status("received-back") == "Received Back"


def test_short_ledger_outstanding():
    ledger = ShortLedger.from_record({"shortQuantity": 8, "receivedBack": 3})
    assert ledger.outstanding == 5
    assert ledger.after_receive(5).net_short == 0
    assert remaining_short(2, 5) == 0
