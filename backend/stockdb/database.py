# backend/stockdb/database.py
"""
Database configuration for stockdb.

Key goals:
- Separate read and write engines (ready for replicas later).
- Sensible connection pooling for server databases.
- SQLite (local runs and tests) works without pool arguments.
"""

import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

# -------------------------------------------------------------------
# CONFIG FROM ENV
# -------------------------------------------------------------------
#
# WRITE:
#   DATABASE_WRITE_URL  (preferred)
#   DATABASE_URL        (fallback)
#
# READ:
#   DATABASE_READ_URL   (if you add a replica)
#   otherwise defaults to WRITE URL
#
# Example value:
#   postgresql+psycopg2://<user>:<password>@<host>:5432/stockdb
# -------------------------------------------------------------------

WRITE_DB_URL = os.getenv("DATABASE_WRITE_URL") or os.getenv("DATABASE_URL")
READ_DB_URL = os.getenv("DATABASE_READ_URL") or WRITE_DB_URL

if not WRITE_DB_URL:
    raise RuntimeError(
        "DATABASE_URL or DATABASE_WRITE_URL is not set. Example:\n"
        "postgresql+psycopg2://<user>:<password>@<host>:5432/stockdb"
    )

POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))          # seconds
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE_SEC", "1800"))    # 30 minutes

POOLED_ENGINE_KWARGS = {
    "pool_pre_ping": True,                # detect dead connections
    "pool_size": POOL_SIZE,
    "max_overflow": MAX_OVERFLOW,
    "pool_timeout": POOL_TIMEOUT,
    "pool_recycle": POOL_RECYCLE,
    "future": True,
}

SQLITE_ENGINE_KWARGS = {
    "future": True,
    "connect_args": {"check_same_thread": False},
}


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return SQLITE_ENGINE_KWARGS
    return POOLED_ENGINE_KWARGS


# -------------------------------------------------------------------
# ENGINES
# -------------------------------------------------------------------

write_engine = create_engine(WRITE_DB_URL, **_engine_kwargs(WRITE_DB_URL))

# Read engine: today this can be the same as write, later a replica
read_engine = create_engine(READ_DB_URL, **_engine_kwargs(READ_DB_URL))

# -------------------------------------------------------------------
# SESSIONS
# -------------------------------------------------------------------

WriteSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=write_engine,
    future=True,
)

ReadSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=read_engine,
    future=True,
)

# Declarative base for all models
Base = declarative_base()

# -------------------------------------------------------------------
# DEPENDENCIES (for FastAPI)
# -------------------------------------------------------------------

def get_write_db():
    """
    Dependency for endpoints that perform INSERT / UPDATE / DELETE.
    """
    db = WriteSessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_read_db():
    """
    Dependency for read-only endpoints.

    Points at DATABASE_READ_URL when a replica is configured.
    """
    db = ReadSessionLocal()
    try:
        yield db
    finally:
        db.close()


engine = write_engine
SessionLocal = WriteSessionLocal
get_db = get_write_db
