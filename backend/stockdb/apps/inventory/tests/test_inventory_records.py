from __future__ import annotations

import csv
import io
from datetime import date

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from stockdb.apps.inventory import models, schemas, services
from stockdb.apps.inventory import router as inventory_router


@pytest.fixture()
def sku(db_session, company):
    sku = services.create_sku(
        db_session,
        company_id=company.id,
        payload=schemas.SkuCreate(sku_code="NUT-8", item_name="Hex nut M8", unit_price=2.0),
    )
    db_session.commit()
    return sku


def _incoming(db_session, company, sku, *, received=10, short=0, rejected=0, completed=True, invoice="INV-900"):
    record = services.create_incoming(
        db_session,
        company_id=company.id,
        payload=schemas.IncomingInventoryCreate(
            invoice_number=invoice,
            receiving_date=date(2024, 5, 20),
            status=models.RecordStatusEnum.COMPLETED if completed else models.RecordStatusEnum.DRAFT,
            items=[
                schemas.IncomingItemCreate(
                    sku_id=sku.id, received=received, short=short, rejected=rejected, unit_price=2.0
                )
            ],
        ),
    )
    db_session.commit()
    return record


def _outgoing(db_session, company, sku, quantity):
    record = services.create_outgoing(
        db_session,
        company_id=company.id,
        payload=schemas.OutgoingInventoryCreate(
            document_type=models.OutgoingDocumentTypeEnum.SALES_INVOICE,
            invoice_challan_number="SI-1",
            invoice_challan_date=date(2024, 5, 21),
            destination_type=models.DestinationTypeEnum.CUSTOMER,
            status=models.RecordStatusEnum.COMPLETED,
            items=[schemas.OutgoingItemCreate(sku_id=sku.id, outgoing_quantity=quantity, unit_price=3.0)],
        ),
    )
    db_session.commit()
    return record


def _on_hand(db_session, company, sku):
    rows = services.list_on_hand(db_session, company_id=company.id, sku_id=sku.id)
    return rows[0].quantity if rows else 0


def test_incoming_item_totals_must_add_up():
    item = schemas.IncomingItemCreate(sku_id=1, received=6, short=3, rejected=1, unit_price=1.5)
    assert item.total_quantity == 10
    assert item.total_value == 15.0

    with pytest.raises(ValidationError):
        schemas.IncomingItemCreate(sku_id=1, total_quantity=9, received=6, short=3, rejected=1, unit_price=1.5)
    with pytest.raises(ValidationError):
        schemas.IncomingItemCreate(sku_id=1, received=0, unit_price=1.5)
    with pytest.raises(ValidationError):
        schemas.IncomingItemCreate(sku_id=1, received=1, unit_price=0)


def test_completed_records_move_stock_and_drafts_do_not(db_session, company, sku):
    _incoming(db_session, company, sku, received=10)
    _incoming(db_session, company, sku, received=50, completed=False, invoice="INV-901")
    _outgoing(db_session, company, sku, 4)

    assert _on_hand(db_session, company, sku) == 6
    movements = services.list_movements(db_session, company_id=company.id, sku_id=sku.id)
    assert sorted(m.movement_type for m in movements) == [
        models.StockMovementTypeEnum.ISSUE,
        models.StockMovementTypeEnum.RECEIVE,
    ]


def test_unknown_sku_is_rejected(db_session, company, sku):
    with pytest.raises(HTTPException) as excinfo:
        services.create_outgoing(
            db_session,
            company_id=company.id,
            payload=schemas.OutgoingInventoryCreate(
                document_type=models.OutgoingDocumentTypeEnum.TRANSFER_NOTE,
                invoice_challan_number="TN-1",
                invoice_challan_date=date(2024, 5, 21),
                destination_type=models.DestinationTypeEnum.TEAM,
                items=[schemas.OutgoingItemCreate(sku_id=404, outgoing_quantity=1, unit_price=1.0)],
            ),
        )
    assert excinfo.value.status_code == 400


def test_duplicate_sku_code_conflicts(db_session, company, sku):
    with pytest.raises(HTTPException) as excinfo:
        services.create_sku(
            db_session, company_id=company.id, payload=schemas.SkuCreate(sku_code="NUT-8", item_name="Again")
        )
    assert excinfo.value.status_code == 409


def test_rejected_units_open_a_numbered_report(db_session, company, sku):
    _incoming(db_session, company, sku, received=7, rejected=3)
    _incoming(db_session, company, sku, received=1, rejected=1, invoice="INV-902")

    reports = services.list_rejected_reports(db_session, company_id=company.id)
    assert sorted(r.report_number for r in reports) == ["REJ-00001", "REJ-00002"]
    first = next(r for r in reports if r.report_number == "REJ-00001")
    assert first.quantity == 3
    assert first.net_rejected == 3
    assert first.status == "Pending"
    assert first.original_invoice_number == "INV-900"


def test_report_update_recomputes_net_and_ignores_client_value(db_session, company, sku):
    _incoming(db_session, company, sku, received=7, rejected=5)
    report = db_session.query(models.RejectedItemReport).one()

    services.update_rejected_report(
        db_session,
        company_id=company.id,
        report_id=report.id,
        payload=schemas.RejectedItemReportUpdate(sent_to_vendor=2, scrapped=1, net_rejected=99, action="manual"),
    )
    db_session.commit()

    assert report.net_rejected == 2
    assert report.quantity == 5
    assert report.status == "In Progress"
    history = services.rejected_report_history(db_session, company_id=company.id, report_id=report.id)
    assert history[-1].action == "manual"
    assert history[-1].before["sent_to_vendor"] == 0
    assert history[-1].after["net_rejected"] == 2


def test_report_counters_must_be_non_negative():
    with pytest.raises(ValidationError):
        schemas.RejectedItemReportUpdate(scrapped=-1)


def test_report_status_filter_and_csv(db_session, company, sku):
    _incoming(db_session, company, sku, received=7, rejected=2)
    _incoming(db_session, company, sku, received=1, rejected=4, invoice="INV-902")
    report = services.list_rejected_reports(db_session, company_id=company.id, search="INV-902")[0]
    services.update_rejected_report(
        db_session,
        company_id=company.id,
        report_id=report.id,
        payload=schemas.RejectedItemReportUpdate(scrapped=4),
    )
    db_session.commit()

    scrapped = services.list_rejected_reports(db_session, company_id=company.id, status_filter="scrapped")
    assert [r.id for r in scrapped] == [report.id]

    rows = list(csv.reader(io.StringIO(services.export_rejected_reports_csv(scrapped))))
    assert rows[0] == services.REJECTED_CSV_COLUMNS
    assert rows[1][0] == report.report_number
    assert rows[1][3] == "NUT-8"
    assert rows[1][-1] == "Scrapped"


def test_rejected_report_cannot_be_deleted(db_session, company, sku, admin_ctx):
    _incoming(db_session, company, sku, received=1, rejected=1)
    report = db_session.query(models.RejectedItemReport).one()

    with pytest.raises(HTTPException) as excinfo:
        inventory_router.delete_rejected_report(report.id, db=db_session, ctx=admin_ctx)
    assert excinfo.value.status_code == 409
    assert db_session.query(models.RejectedItemReport).count() == 1


def test_move_received_to_rejected_issues_stock(db_session, company, sku):
    record = _incoming(db_session, company, sku, received=10)
    item = record.items[0]

    report = services.move_received_to_rejected(
        db_session,
        company_id=company.id,
        incoming_id=record.id,
        payload=schemas.MoveToRejectedRequest(item_id=item.id, quantity=3, inspection_date=date(2024, 5, 22)),
    )
    db_session.commit()

    assert (item.received, item.rejected) == (7, 3)
    assert report.quantity == 3
    assert report.incoming_inventory_item_id == item.id
    assert _on_hand(db_session, company, sku) == 7

    with pytest.raises(HTTPException) as excinfo:
        services.move_received_to_rejected(
            db_session,
            company_id=company.id,
            incoming_id=record.id,
            payload=schemas.MoveToRejectedRequest(item_id=item.id, quantity=8),
        )
    assert excinfo.value.status_code == 400


def test_move_short_to_rejected(db_session, company, sku):
    record = _incoming(db_session, company, sku, received=5, short=4)
    item = record.items[0]

    services.move_short_to_rejected(
        db_session,
        company_id=company.id,
        incoming_id=record.id,
        payload=schemas.MoveToRejectedRequest(item_id=item.id, quantity=1),
    )
    db_session.commit()

    assert (item.short, item.rejected) == (3, 1)
    assert _on_hand(db_session, company, sku) == 5


def test_update_short_item_tracks_received_back(db_session, company, sku):
    record = _incoming(db_session, company, sku, received=5, short=4)
    item = record.items[0]

    services.update_short_item(
        db_session,
        company_id=company.id,
        incoming_id=record.id,
        payload=schemas.ShortItemUpdate(item_id=item.id, short=1, received=6, challan_number="DC-77"),
    )
    db_session.commit()

    assert (item.short, item.short_received, item.received) == (1, 3, 6)
    assert item.challan_number == "DC-77"
    assert _on_hand(db_session, company, sku) == 6

    row = services.short_report_row(item)
    assert (row.short_quantity, row.received_back, row.net_rejected) == (4, 3, 1)
    assert row.status == "partially-received"
    assert row.status_label == "Partially Received"


def test_update_short_item_unknown_item_is_404(db_session, company, sku):
    record = _incoming(db_session, company, sku, received=5, short=1)

    with pytest.raises(HTTPException) as excinfo:
        services.update_short_item(
            db_session,
            company_id=company.id,
            incoming_id=record.id,
            payload=schemas.ShortItemUpdate(item_id=12345, short=0),
        )
    assert excinfo.value.status_code == 404


def test_short_reports_list_close_and_export(db_session, company, sku):
    _incoming(db_session, company, sku, received=10)
    record = _incoming(db_session, company, sku, received=5, short=2, invoice="INV-950")
    item = record.items[0]

    rows = services.list_short_reports(db_session, company_id=company.id)
    assert [row.id for row in rows] == [item.id]
    assert rows[0].status == "pending"

    services.close_short_item(db_session, company_id=company.id, item_id=item.id, remarks="Vendor wrote off")
    db_session.commit()

    closed = services.list_short_reports(db_session, company_id=company.id, status_filter="closed")
    assert [row.id for row in closed] == [item.id]
    with pytest.raises(HTTPException) as excinfo:
        services.close_short_item(db_session, company_id=company.id, item_id=item.id)
    assert excinfo.value.status_code == 409
    with pytest.raises(HTTPException) as excinfo:
        services.update_short_item(
            db_session,
            company_id=company.id,
            incoming_id=record.id,
            payload=schemas.ShortItemUpdate(item_id=item.id, short=0),
        )
    assert excinfo.value.status_code == 409

    exported = list(csv.reader(io.StringIO(services.export_short_reports_csv(closed))))
    assert exported[1][0] == "INV-950"
    assert exported[1][-1] == "Closed"


def test_export_endpoint_streams_csv(db_session, company, sku, admin_ctx):
    _incoming(db_session, company, sku, received=5, short=2)

    response = inventory_router.export_short_reports(
        search=None, date_from=None, date_to=None, status_filter=None, db=db_session, ctx=admin_ctx
    )

    assert response.media_type == "text/csv"
    assert "short_item_reports.csv" in response.headers["content-disposition"]
