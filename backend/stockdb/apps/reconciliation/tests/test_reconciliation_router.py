from __future__ import annotations

from datetime import date

import pytest
from fastapi import HTTPException

from stockdb.apps.reconciliation import gateway as gateway_module
from stockdb.apps.reconciliation import router as reconciliation_router
from stockdb.apps.reconciliation.gateway import GatewayError, LocalInventoryGateway, RestInventoryGateway
from stockdb.apps.reconciliation.schemas import ScrapRequest, SendToVendorRequest


class _StubGateway(LocalInventoryGateway):
    """Serves one fixed report and fails every write with `write_error`."""

    def __init__(self, report, write_error=None):
        self.report = report
        self.write_error = write_error

    def get_rejected_item_report(self, report_id):
        return dict(self.report, id=report_id)

    def update_rejected_item_report(self, report_id, changes):
        if self.write_error:
            raise self.write_error
        return {"id": report_id, **changes}


REPORT = {"report_number": "REJ-00001", "sku_id": 1, "quantity": 4, "sent_to_vendor": 0, "received_back": 0, "scrapped": 0}


def test_gateway_choice_follows_configured_url(monkeypatch, db_session, admin_ctx):
    monkeypatch.setattr(gateway_module, "INVENTORY_API_URL", None)
    assert isinstance(
        reconciliation_router.get_inventory_gateway(db=db_session, token="t", ctx=admin_ctx),
        LocalInventoryGateway,
    )

    monkeypatch.setattr(gateway_module, "INVENTORY_API_URL", "http://inventory.test")
    remote = reconciliation_router.get_inventory_gateway(db=db_session, token="t", ctx=admin_ctx)
    assert isinstance(remote, RestInventoryGateway)
    assert remote.token == "t"


def test_validation_failure_maps_to_400_with_field_list():
    form = SendToVendorRequest(quantity=9, vendor_id=1, brand_id=1, reason="Bent", action_date=date(2024, 8, 1))

    with pytest.raises(HTTPException) as excinfo:
        reconciliation_router.send_to_vendor(1, form, gateway=_StubGateway(REPORT))

    assert excinfo.value.status_code == 400
    assert excinfo.value.detail[0]["field"] == "quantity"


def test_backend_rejection_keeps_status_and_message():
    form = ScrapRequest(quantity=1, action_date=date(2024, 8, 1), approved_by="QA")
    gateway = _StubGateway(REPORT, write_error=GatewayError(409, "Report locked"))

    with pytest.raises(HTTPException) as excinfo:
        reconciliation_router.scrap(1, form, gateway=gateway)

    assert excinfo.value.status_code == 409
    assert excinfo.value.detail == "Report locked"


def test_network_failure_maps_to_bad_gateway():
    form = ScrapRequest(quantity=1, action_date=date(2024, 8, 1), approved_by="QA")
    gateway = _StubGateway(REPORT, write_error=GatewayError(None, gateway_module.NETWORK_FAILURE_MESSAGE))

    with pytest.raises(HTTPException) as excinfo:
        reconciliation_router.scrap(1, form, gateway=gateway)

    assert excinfo.value.status_code == 502


def test_successful_scrap_returns_action_result():
    form = ScrapRequest(quantity=4, action_date=date(2024, 8, 1), approved_by="QA")

    result = reconciliation_router.scrap(1, form, gateway=_StubGateway(REPORT))

    assert result.status == "Scrapped"
    assert result.ledger["net_rejected"] == 0
