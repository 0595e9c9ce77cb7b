from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest

from stockdb.apps.audit import router as audit_router
from stockdb.apps.audit import schemas, services


def _log(db_session, company, action, *, entity_id="7", occurred_at=None, actor=None):
    return services.create_audit_event(
        db_session,
        company_id=company.id,
        data=schemas.AuditEventCreate(
            entity_type="rejected_item_report",
            entity_id=entity_id,
            action=action,
            actor_user_id=actor,
            occurred_at=occurred_at,
            after={"action": action},
        ),
    )


def test_log_event_records_before_after_and_metadata(db_session, company, admin_user):
    event = services.log_event(
        db_session,
        company_id=company.id,
        actor_user_id=admin_user.id,
        entity_type="rejected_item_report",
        entity_id=12,
        action="scrap",
        before={"scrapped": 0},
        after={"scrapped": 2},
        metadata={"details": {"approved_by": "QA"}},
    )
    db_session.commit()

    read = schemas.AuditEventRead.model_validate(event)
    assert read.entity_id == "12"
    assert read.before == {"scrapped": 0}
    assert read.after == {"scrapped": 2}
    assert read.metadata == {"details": {"approved_by": "QA"}}


def test_list_filters_and_orders_newest_first(db_session, company):
    base = datetime(2024, 6, 1, tzinfo=timezone.utc)
    _log(db_session, company, "create", occurred_at=base)
    _log(db_session, company, "send_to_vendor", occurred_at=base + timedelta(days=1))
    _log(db_session, company, "scrap", occurred_at=base + timedelta(days=2))
    _log(db_session, company, "create", entity_id="8", occurred_at=base + timedelta(days=3))
    db_session.commit()

    events = services.list_audit_events(db_session, company_id=company.id, entity_id="7")
    assert [event.action for event in events] == ["scrap", "send_to_vendor", "create"]

    windowed = services.list_audit_events(
        db_session,
        company_id=company.id,
        start=base + timedelta(hours=12),
        end=base + timedelta(days=2, hours=12),
    )
    assert [event.action for event in windowed] == ["scrap", "send_to_vendor"]

    creates = services.list_audit_events(db_session, company_id=company.id, action="create")
    assert [event.entity_id for event in creates] == ["8", "7"]


def test_non_critical_failure_is_swallowed(db_session, company, monkeypatch, caplog):
    def broken(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(services, "create_audit_event", broken)

    with caplog.at_level(logging.WARNING, logger="stockdb.apps.audit.services"):
        result = services.log_event(
            db_session,
            company_id=company.id,
            actor_user_id=None,
            entity_type="user",
            entity_id="USR-1",
            action="update",
        )

    assert result is None
    assert any("Failed to log audit event" in record.getMessage() for record in caplog.records)


def test_critical_failure_propagates(db_session, company, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(services, "create_audit_event", broken)

    with pytest.raises(RuntimeError):
        services.log_event(
            db_session,
            company_id=company.id,
            actor_user_id=None,
            entity_type="user",
            entity_id="USR-1",
            action="set_access",
            critical=True,
        )


def test_audit_endpoint_is_scoped_to_caller_company(db_session, company, admin_ctx):
    _log(db_session, company, "create")
    db_session.commit()

    events = audit_router.list_audit_logs(
        entity_type="rejected_item_report",
        entity_id=None,
        action=None,
        actor_user_id=None,
        start=None,
        end=None,
        skip=0,
        limit=50,
        db=db_session,
        ctx=admin_ctx,
    )
    assert [event.company_id for event in events] == [company.id]
