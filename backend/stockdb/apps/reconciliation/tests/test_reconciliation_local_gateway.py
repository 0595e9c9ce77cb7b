from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.inventory import schemas as inventory_schemas
from stockdb.apps.inventory import services as inventory_services
from stockdb.apps.library import models as library_models
from stockdb.apps.library import schemas as library_schemas
from stockdb.apps.library import services as library_services
from stockdb.apps.reconciliation import actions
from stockdb.apps.reconciliation.gateway import GatewayError, LocalInventoryGateway
from stockdb.apps.reconciliation.schemas import (
    ReceiveFromVendorRequest,
    ScrapRequest,
    SendToVendorRequest,
    ShortReceiveBackRequest,
)


@pytest.fixture()
def catalog(db_session, company):
    vendor = library_services.create_vendor(
        db_session,
        company_id=company.id,
        payload=library_schemas.VendorCreate(name="Bolt Supplies", brands=["Boltex"]),
    )
    brand = db_session.query(library_models.Brand).filter_by(name="Boltex").one()
    sku = inventory_services.create_sku(
        db_session,
        company_id=company.id,
        payload=inventory_schemas.SkuCreate(sku_code="BLT-10", item_name="Hex bolt M10", unit_price=12.5),
    )
    db_session.commit()
    return {"vendor": vendor, "brand": brand, "sku": sku}


def _receive(db_session, company, catalog, *, received, short=0, rejected=0, invoice="INV-500"):
    record = inventory_services.create_incoming(
        db_session,
        company_id=company.id,
        payload=inventory_schemas.IncomingInventoryCreate(
            invoice_number=invoice,
            receiving_date=date(2024, 7, 1),
            vendor_id=catalog["vendor"].id,
            brand_id=catalog["brand"].id,
            status=inventory_models.RecordStatusEnum.COMPLETED,
            items=[
                inventory_schemas.IncomingItemCreate(
                    sku_id=catalog["sku"].id,
                    received=received,
                    short=short,
                    rejected=rejected,
                    unit_price=12.5,
                )
            ],
        ),
    )
    db_session.commit()
    return record


def _on_hand(db_session, company, sku_id):
    rows = inventory_services.list_on_hand(db_session, company_id=company.id, sku_id=sku_id)
    return rows[0].quantity if rows else 0


def test_rejected_report_lifecycle_through_local_gateway(db_session, company, admin_ctx, catalog):
    record = _receive(db_session, company, catalog, received=8, rejected=2)
    report = db_session.query(inventory_models.RejectedItemReport).one()
    assert report.incoming_inventory_id == record.id
    assert _on_hand(db_session, company, catalog["sku"].id) == 8

    gateway = LocalInventoryGateway(db_session, admin_ctx)
    ids = {"vendor_id": catalog["vendor"].id, "brand_id": catalog["brand"].id}

    sent = actions.send_to_vendor(
        gateway,
        gateway.get_rejected_item_report(report.id),
        SendToVendorRequest(quantity=2, reason="Stripped thread", action_date=date(2024, 7, 2), unit_price=12.5, **ids),
    )
    assert sent.status == "Sent to Vendor"
    assert _on_hand(db_session, company, catalog["sku"].id) == 6

    received = actions.receive_from_vendor(
        gateway,
        gateway.get_rejected_item_report(report.id),
        ReceiveFromVendorRequest(quantity=2, action_date=date(2024, 7, 9), **ids),
    )
    assert received.status == "Received"
    assert received.created_record["items"][0]["unit_price"] == 12.5
    assert _on_hand(db_session, company, catalog["sku"].id) == 8

    stored = gateway.get_rejected_item_report(report.id)
    assert (stored["sent_to_vendor"], stored["received_back"], stored["scrapped"]) == (0, 2, 0)
    assert stored["net_rejected"] == 0
    assert stored["status"] == "Received"

    history = inventory_services.rejected_report_history(db_session, company_id=company.id, report_id=report.id)
    assert {event.action for event in history} == {"create", "send_to_vendor", "receive_from_vendor"}
    assert history[0].action == "create"


def test_scrap_through_local_gateway_leaves_stock_alone(db_session, company, admin_ctx, catalog):
    _receive(db_session, company, catalog, received=5, rejected=3)
    report = db_session.query(inventory_models.RejectedItemReport).one()
    gateway = LocalInventoryGateway(db_session, admin_ctx)

    result = actions.scrap(
        gateway,
        gateway.get_rejected_item_report(report.id),
        ScrapRequest(quantity=3, action_date=date(2024, 7, 3), approved_by="Plant Head"),
    )

    assert result.status == "Scrapped"
    assert gateway.get_rejected_item_report(report.id)["net_rejected"] == 0
    assert _on_hand(db_session, company, catalog["sku"].id) == 5


def test_short_receive_back_through_local_gateway(db_session, company, admin_ctx, catalog):
    record = _receive(db_session, company, catalog, received=5, short=3, invoice="INV-600")
    item = record.items[0]
    gateway = LocalInventoryGateway(db_session, admin_ctx)

    row = gateway.get_short_item_report(item.id)
    assert row["short_quantity"] == 3
    assert row["status"] == "pending"

    result = actions.receive_short_back(
        gateway,
        row,
        ShortReceiveBackRequest(
            quantity=2,
            vendor_id=catalog["vendor"].id,
            brand_id=catalog["brand"].id,
            action_date=date(2024, 7, 5),
            invoice_challan="INV-601",
            received_by=1,
        ),
    )

    assert result.status == "Partially Received"
    row = gateway.get_short_item_report(item.id)
    assert (row["short_quantity"], row["received_back"], row["net_rejected"]) == (3, 2, 1)
    assert _on_hand(db_session, company, catalog["sku"].id) == 7


def test_local_gateway_maps_missing_records_to_gateway_error(db_session, admin_ctx, catalog):
    gateway = LocalInventoryGateway(db_session, admin_ctx)

    with pytest.raises(GatewayError) as excinfo:
        gateway.get_rejected_item_report(999)
    assert excinfo.value.status_code == 404

    with pytest.raises(GatewayError) as excinfo:
        gateway.update_rejected_item_report(999, {"scrapped": 1})
    assert excinfo.value.status_code == 404


def test_local_gateway_rejects_invalid_payload(db_session, admin_ctx, catalog):
    gateway = LocalInventoryGateway(db_session, admin_ctx)

    with pytest.raises(GatewayError) as excinfo:
        gateway.add_outgoing(
            {
                "document_type": "delivery_challan",
                "invoice_challan_number": "DC-1",
                "invoice_challan_date": "2024-07-01",
                "destination_type": "vendor",
                "items": [{"sku_id": catalog["sku"].id, "outgoing_quantity": 1, "unit_price": 0}],
            }
        )
    assert excinfo.value.status_code == 422
    assert db_session.query(inventory_models.OutgoingInventory).count() == 0


def test_local_gateway_rolls_back_database_errors(db_session, company, admin_ctx, catalog, monkeypatch):
    gateway = LocalInventoryGateway(db_session, admin_ctx)
    pending = inventory_models.Sku(company_id=company.id, sku_code="TMP-1", item_name="Temporary")

    def conflicting_write(db, **kwargs):
        db.add(pending)
        raise IntegrityError("INSERT INTO outgoing_inventory", {}, Exception("duplicate key"))

    monkeypatch.setattr(inventory_services, "create_outgoing", conflicting_write)

    with pytest.raises(GatewayError) as excinfo:
        gateway.add_outgoing(
            {
                "document_type": "delivery_challan",
                "invoice_challan_number": "DC-2",
                "invoice_challan_date": "2024-07-01",
                "destination_type": "vendor",
                "items": [{"sku_id": catalog["sku"].id, "outgoing_quantity": 1, "unit_price": 1.0}],
            }
        )
    assert excinfo.value.status_code == 409
    assert pending not in db_session
    assert db_session.query(inventory_models.Sku).filter_by(sku_code="TMP-1").count() == 0
