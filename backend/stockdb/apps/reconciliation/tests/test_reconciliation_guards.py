from __future__ import annotations

from datetime import date

import pytest

from stockdb.apps.reconciliation import guards
from stockdb.apps.reconciliation.ledger import RejectedLedger, ShortLedger
from stockdb.apps.reconciliation.schemas import (
    ReceiveFromVendorRequest,
    ScrapReason,
    ScrapRequest,
    SendToVendorRequest,
    ShortReceiveBackRequest,
)


def _fields(failures):
    return {failure["field"] for failure in failures}


def _send_form(**overrides):
    data = dict(
        quantity=2,
        vendor_id=1,
        brand_id=1,
        reason="Damaged",
        action_date=date(2024, 5, 1),
        unit_price=0,
    )
    data.update(overrides)
    return SendToVendorRequest(**data)


def test_send_within_available_passes():
    ledger = RejectedLedger(quantity=10, sent_to_vendor=4, received_back=2, scrapped=1)
    assert guards.guard_send_to_vendor(ledger, _send_form(quantity=3)) == []


def test_send_more_than_available_is_rejected():
    ledger = RejectedLedger(quantity=10, sent_to_vendor=4, received_back=2, scrapped=1)
    failures = guards.guard_send_to_vendor(ledger, _send_form(quantity=4))
    assert failures == [{"field": "quantity", "reason": "Quantity exceeds available rejected quantity"}]


def test_send_collects_every_missing_field():
    ledger = RejectedLedger(quantity=10)
    form = SendToVendorRequest(quantity=0, reason="  ", unit_price=-1)
    assert _fields(guards.guard_send_to_vendor(ledger, form)) == {
        "vendor_id",
        "brand_id",
        "reason",
        "action_date",
        "quantity",
        "unit_price",
    }


def test_receive_limited_by_sent_quantity():
    ledger = RejectedLedger(quantity=10, sent_to_vendor=3)
    form = ReceiveFromVendorRequest(quantity=4, vendor_id=1, brand_id=1, action_date=date(2024, 5, 2))
    assert guards.guard_receive_from_vendor(ledger, form) == [
        {"field": "quantity", "reason": "Quantity exceeds sent to vendor quantity"}
    ]


def test_receive_short_item_cannot_exceed_quantity():
    ledger = RejectedLedger(quantity=10, sent_to_vendor=5)
    form = ReceiveFromVendorRequest(
        quantity=2,
        short_item=3,
        vendor_id=1,
        brand_id=1,
        action_date=date(2024, 5, 2),
    )
    assert _fields(guards.guard_receive_from_vendor(ledger, form)) == {"short_item"}


def test_scrap_needs_capacity_and_approver():
    ledger = RejectedLedger(quantity=5, scrapped=4)
    form = ScrapRequest(quantity=2, action_date=date(2024, 5, 3))
    assert _fields(guards.guard_scrap(ledger, form)) == {"quantity", "approved_by"}


def test_scrap_other_reason_requires_text():
    ledger = RejectedLedger(quantity=5)
    form = ScrapRequest(
        quantity=1,
        action_date=date(2024, 5, 3),
        scrap_reason=ScrapReason.OTHER,
        approved_by="Store Manager",
    )
    assert _fields(guards.guard_scrap(ledger, form)) == {"scrap_reason_other"}


@pytest.mark.parametrize("quantity, ok", [(3, True), (4, False), (0, False)])
def test_short_receive_back_limit(quantity, ok):
    ledger = ShortLedger(short_quantity=5, received_back=2)
    form = ShortReceiveBackRequest(
        quantity=quantity,
        vendor_id=1,
        brand_id=1,
        action_date=date(2024, 5, 4),
        invoice_challan="INV-9",
        received_by=1,
    )
    assert (guards.guard_short_receive_back(ledger, form) == []) is ok


def test_closed_short_item_is_rejected():
    ledger = ShortLedger(short_quantity=5)
    form = ShortReceiveBackRequest(
        quantity=1,
        vendor_id=1,
        brand_id=1,
        action_date=date(2024, 5, 4),
        invoice_challan="INV-9",
        received_by=1,
    )
    assert _fields(guards.guard_short_receive_back(ledger, form, status="closed")) == {"status"}


def test_unknown_short_status_is_a_guard_failure():
    ledger = ShortLedger(short_quantity=5)
    form = ShortReceiveBackRequest(
        quantity=1,
        vendor_id=1,
        brand_id=1,
        action_date=date(2024, 5, 4),
        invoice_challan="INV-9",
        received_by=1,
    )
    failures = guards.guard_short_receive_back(ledger, form, status="Partially Received")
    assert failures == [{"field": "status", "reason": "Unknown short item status 'Partially Received'"}]


def test_ensure_valid_raises_with_failures():
    with pytest.raises(guards.ActionValidationError) as excinfo:
        guards.ensure_valid([{"field": "quantity", "reason": "bad"}])
    assert excinfo.value.code == "validation_failed"
    assert excinfo.value.detail[0]["field"] == "quantity"
