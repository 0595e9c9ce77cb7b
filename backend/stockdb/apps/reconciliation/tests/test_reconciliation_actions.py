from __future__ import annotations

import logging
import random
from datetime import date

import pytest

from stockdb.apps.reconciliation import actions
from stockdb.apps.reconciliation.gateway import GatewayError, InventoryGateway
from stockdb.apps.reconciliation.guards import ActionValidationError
from stockdb.apps.reconciliation.ledger import RejectedLedger
from stockdb.apps.reconciliation.schemas import (
    ReceiveFromVendorRequest,
    ScrapRequest,
    SendToVendorRequest,
    ShortReceiveBackRequest,
)


class FakeGateway(InventoryGateway):
    """Records every call; `fail` maps a method name to the error it raises."""

    def __init__(self, *, sku_price=None, fail=None):
        self.calls = []
        self.sku_price = sku_price
        self.fail = fail or {}

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail:
            raise self.fail[name]

    def get_rejected_item_report(self, report_id):
        self._record("get_rejected_item_report", report_id)
        return {}

    def get_short_item_report(self, item_id):
        self._record("get_short_item_report", item_id)
        return {}

    def update_rejected_item_report(self, report_id, changes):
        self._record("update_rejected_item_report", report_id, changes)
        return {"id": report_id, **changes}

    def update_short_item(self, incoming_inventory_id, changes):
        self._record("update_short_item", incoming_inventory_id, changes)
        return {"id": changes["item_id"]}

    def add_incoming(self, payload):
        self._record("add_incoming", payload)
        return {"id": 501, **payload}

    def add_outgoing(self, payload):
        self._record("add_outgoing", payload)
        return {"id": 601, **payload}

    def get_sku(self, sku_id):
        self._record("get_sku", sku_id)
        return {"id": sku_id, "unit_price": self.sku_price}

    def names(self):
        return [call[0] for call in self.calls]


def _report(**counters):
    report = {
        "id": 7,
        "report_number": "REJ-00007",
        "original_invoice_number": "INV-100",
        "sku_id": 3,
        "quantity": 10,
        "sent_to_vendor": 0,
        "received_back": 0,
        "scrapped": 0,
    }
    report.update(counters)
    return report


def _send_form(**overrides):
    data = dict(
        quantity=4,
        vendor_id=11,
        brand_id=12,
        reason="Cracked casing",
        action_date=date(2024, 6, 1),
        unit_price=25.0,
    )
    data.update(overrides)
    return SendToVendorRequest(**data)


def test_send_to_vendor_creates_outgoing_then_updates_report():
    gateway = FakeGateway()

    result = actions.send_to_vendor(gateway, _report(), _send_form())

    assert gateway.names() == ["add_outgoing", "update_rejected_item_report"]
    outgoing = gateway.calls[0][1]
    assert outgoing["document_type"] == "delivery_challan"
    assert outgoing["document_sub_type"] == "replacement"
    assert outgoing["delivery_challan_sub_type"] == "to_vendor"
    assert outgoing["destination_type"] == "vendor"
    assert outgoing["destination_id"] == 11
    assert outgoing["status"] == "completed"
    assert outgoing["invoice_challan_number"] == "REJ-00007"
    assert outgoing["invoice_challan_date"] == "2024-06-01"
    assert outgoing["remarks"] == "Rejected items sent to vendor. Reason: Cracked casing"
    assert outgoing["items"] == [{"sku_id": 3, "outgoing_quantity": 4, "unit_price": 25.0, "total_value": 100.0}]

    changes = gateway.calls[1][2]
    assert "net_rejected" not in changes
    assert changes["sent_to_vendor"] == 4
    assert changes["action"] == "send_to_vendor"
    assert changes["details"]["outgoing_inventory_id"] == 601

    assert result.status == "In Progress"
    assert result.ledger["net_rejected"] == 6
    assert result.created_record["id"] == 601


def test_send_to_vendor_zero_price_uses_minimum_and_generated_number():
    gateway = FakeGateway()
    report = _report(report_number=None)

    actions.send_to_vendor(gateway, report, _send_form(quantity=10, unit_price=0))

    outgoing = gateway.calls[0][1]
    assert outgoing["items"][0]["unit_price"] == actions.MIN_UNIT_PRICE
    assert outgoing["invoice_challan_number"].startswith("REJ-INV-100-")


def test_send_over_capacity_makes_no_gateway_call():
    gateway = FakeGateway()
    report = _report(sent_to_vendor=5, received_back=2, scrapped=1)

    with pytest.raises(ActionValidationError):
        actions.send_to_vendor(gateway, report, _send_form(quantity=3))
    assert gateway.calls == []


def test_send_ledger_failure_after_outgoing_is_logged(caplog):
    gateway = FakeGateway(fail={"update_rejected_item_report": GatewayError(500, "boom")})

    with caplog.at_level(logging.ERROR, logger="stockdb.apps.reconciliation.actions"):
        with pytest.raises(GatewayError):
            actions.send_to_vendor(gateway, _report(), _send_form())

    assert gateway.names() == ["add_outgoing", "update_rejected_item_report"]
    assert any(record.levelno == logging.ERROR for record in caplog.records)


def test_outgoing_rejection_leaves_report_untouched():
    gateway = FakeGateway(fail={"add_outgoing": GatewayError(400, "unit_price must be greater than 0")})

    with pytest.raises(GatewayError) as excinfo:
        actions.send_to_vendor(gateway, _report(), _send_form())

    assert excinfo.value.message == "unit_price must be greater than 0"
    assert gateway.names() == ["add_outgoing"]


def test_receive_from_vendor_updates_report_then_books_stock():
    gateway = FakeGateway(sku_price=40.0)
    form = ReceiveFromVendorRequest(
        quantity=3,
        short_item=1,
        vendor_id=11,
        brand_id=12,
        action_date=date(2024, 6, 9),
        received_by=2,
    )

    result = actions.receive_from_vendor(gateway, _report(sent_to_vendor=5), form)

    assert gateway.names() == ["update_rejected_item_report", "get_sku", "add_incoming"]
    changes = gateway.calls[0][2]
    assert changes["sent_to_vendor"] == 2
    assert changes["received_back"] == 3
    incoming = gateway.calls[2][1]
    assert incoming["invoice_number"].startswith("RECV-REJ-00007-")
    assert incoming["remarks"] == "Items received from vendor. Condition: replaced. Report: REJ-00007"
    assert incoming["items"][0] == {
        "sku_id": 3,
        "total_quantity": 4,
        "received": 3,
        "short": 1,
        "rejected": 0,
        "unit_price": 40.0,
        "total_value": 160.0,
    }
    assert result.status == "In Progress"


def test_receive_without_stock_or_short_creates_no_record():
    gateway = FakeGateway()
    form = ReceiveFromVendorRequest(
        quantity=2,
        add_to_stock=False,
        vendor_id=11,
        brand_id=12,
        action_date=date(2024, 6, 9),
    )

    result = actions.receive_from_vendor(gateway, _report(sent_to_vendor=2), form)

    assert gateway.names() == ["update_rejected_item_report"]
    assert result.created_record is None


def test_receive_price_lookup_failure_falls_back(caplog):
    gateway = FakeGateway(fail={"get_sku": GatewayError(None, "offline")})
    form = ReceiveFromVendorRequest(
        quantity=1,
        vendor_id=11,
        brand_id=12,
        action_date=date(2024, 6, 9),
        invoice_challan="BILL-77",
    )

    with caplog.at_level(logging.WARNING, logger="stockdb.apps.reconciliation.actions"):
        actions.receive_from_vendor(gateway, _report(sent_to_vendor=1), form)

    incoming = gateway.calls[-1][1]
    assert incoming["invoice_number"] == "BILL-77"
    assert incoming["items"][0]["unit_price"] == actions.MIN_UNIT_PRICE
    assert any("minimum unit price" in record.getMessage() for record in caplog.records)


def test_scrap_only_touches_the_report():
    gateway = FakeGateway()
    form = ScrapRequest(quantity=10, action_date=date(2024, 6, 10), approved_by="Plant Head")

    result = actions.scrap(gateway, _report(), form)

    assert gateway.names() == ["update_rejected_item_report"]
    changes = gateway.calls[0][2]
    assert changes["scrapped"] == 10
    assert changes["details"]["scrap_reason"] == "beyond-repair"
    assert changes["details"]["approved_by"] == "Plant Head"
    assert result.status == "Scrapped"


@pytest.mark.parametrize(
    "run",
    [
        lambda gw: actions.send_to_vendor(gw, _report(), _send_form(quantity=2)),
        lambda gw: actions.receive_from_vendor(
            gw,
            _report(sent_to_vendor=4),
            ReceiveFromVendorRequest(quantity=2, vendor_id=11, brand_id=12, action_date=date(2024, 6, 2)),
        ),
        lambda gw: actions.scrap(
            gw, _report(), ScrapRequest(quantity=3, action_date=date(2024, 6, 3), approved_by="Plant Head")
        ),
    ],
    ids=["send", "receive", "scrap"],
)
def test_rejected_actions_return_the_updated_report(run):
    gateway = FakeGateway(sku_price=5.0)

    result = run(gateway)

    assert result.report_id == 7
    assert result.report["id"] == 7
    assert result.report["action"] == result.action
    assert result.report["sent_to_vendor"] == result.ledger["sent_to_vendor"]


def test_receive_short_back_books_incoming_then_lowers_short():
    gateway = FakeGateway(sku_price=0)
    row = {
        "id": 21,
        "incoming_inventory_id": 9,
        "incoming_inventory_item_id": 21,
        "invoice_number": "INV-200",
        "sku_id": 3,
        "short_quantity": 6,
        "received_back": 1,
        "status": "partially-received",
    }
    form = ShortReceiveBackRequest(
        quantity=3,
        vendor_id=11,
        brand_id=12,
        action_date=date(2024, 6, 12),
        invoice_challan="INV-201",
        received_by=2,
    )

    result = actions.receive_short_back(gateway, row, form)

    assert gateway.names() == ["get_sku", "add_incoming", "update_short_item"]
    incoming = gateway.calls[1][1]
    assert incoming["invoice_number"] == "INV-201"
    assert incoming["remarks"] == "Short items received back. Original invoice: INV-200"
    assert incoming["items"][0]["received"] == 3
    assert incoming["items"][0]["unit_price"] == actions.MIN_UNIT_PRICE
    assert gateway.calls[2][1:] == (9, {"item_id": 21, "short": 2})
    assert result.ledger == {"short_quantity": 6, "received_back": 4, "net_short": 2}
    assert result.status == "Partially Received"


def test_receive_short_back_over_outstanding_is_rejected():
    gateway = FakeGateway()
    row = {"id": 21, "incoming_inventory_id": 9, "sku_id": 3, "short_quantity": 4, "received_back": 3}
    form = ShortReceiveBackRequest(
        quantity=2,
        vendor_id=11,
        brand_id=12,
        action_date=date(2024, 6, 12),
        invoice_challan="INV-201",
        received_by=2,
    )

    with pytest.raises(ActionValidationError):
        actions.receive_short_back(gateway, row, form)
    assert gateway.calls == []


def test_random_valid_actions_keep_ledger_within_quantity():
    rng = random.Random(20240601)
    for _ in range(50):
        report = _report(quantity=rng.randint(1, 30))
        gateway = FakeGateway(sku_price=5.0)
        for _ in range(20):
            ledger = RejectedLedger.from_record(report)
            choice = rng.choice(["send", "receive", "scrap"])
            try:
                if choice == "send" and ledger.available > 0:
                    result = actions.send_to_vendor(
                        gateway, report, _send_form(quantity=rng.randint(1, ledger.available))
                    )
                elif choice == "receive" and ledger.sent_to_vendor > 0:
                    result = actions.receive_from_vendor(
                        gateway,
                        report,
                        ReceiveFromVendorRequest(
                            quantity=rng.randint(1, ledger.sent_to_vendor),
                            vendor_id=11,
                            brand_id=12,
                            action_date=date(2024, 6, 2),
                        ),
                    )
                elif choice == "scrap" and ledger.available > 0:
                    result = actions.scrap(
                        gateway,
                        report,
                        ScrapRequest(
                            quantity=rng.randint(1, ledger.available),
                            action_date=date(2024, 6, 3),
                            approved_by="QA",
                        ),
                    )
                else:
                    continue
            except ActionValidationError:
                pytest.fail("a valid action was rejected")
            report.update({k: result.ledger[k] for k in ("sent_to_vendor", "received_back", "scrapped")})
            after = RejectedLedger.from_record(report)
            assert after.processed <= after.quantity
            assert result.ledger["net_rejected"] == max(0, after.quantity - after.processed)
