from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ.pop("INVENTORY_API_URL", None)

from stockdb.database import Base  # noqa: E402
from stockdb.apps.accounts import models as account_models  # noqa: E402
from stockdb.apps.accounts.models import AccountRole  # noqa: E402
from stockdb.apps.library import models as library_models  # noqa: F401, E402
from stockdb.apps.inventory import models as inventory_models  # noqa: F401, E402
from stockdb.apps.audit import models as audit_models  # noqa: F401, E402
from stockdb.context import build_session_context  # noqa: E402


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def company(db_session):
    company = account_models.Company(code="ACME", name="Acme Stores", login_slug="acme")
    db_session.add(company)
    db_session.commit()
    db_session.refresh(company)
    return company


@pytest.fixture()
def admin_user(db_session, company):
    user = account_models.User(
        company_id=company.id,
        email="admin@acme.example.com",
        first_name="Asha",
        last_name="Admin",
        full_name="Asha Admin",
        role=AccountRole.ADMIN,
        hashed_password="x",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def admin_ctx(admin_user):
    return build_session_context(admin_user)
