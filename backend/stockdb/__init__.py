# backend/stockdb/__init__.py
"""
Import ORM models from each app so that:

- Alembic and Base.metadata.create_all() see all tables.
- The package exposes a clear surface.

The actual model classes are kept in stockdb/apps/*/models.py.
"""

from .apps.accounts import models as accounts_models    # companies / users / access
from .apps.library import models as library_models      # vendors, brands, categories
from .apps.inventory import models as inventory_models  # SKUs, incoming/outgoing, reports
from .apps.audit import models as audit_models          # audit trail

__all__ = [
    "accounts_models",
    "library_models",
    "inventory_models",
    "audit_models",
]
