from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockdb.apps.accounts.models import ModuleKey, PermissionAction
from stockdb.context import SessionContext
from stockdb.database import get_read_db
from stockdb.permissions import require_module_access

from . import schemas, services


router = APIRouter(
    prefix="/access-control",
    tags=["audit"],
)


@router.get("/audit-logs", response_model=List[schemas.AuditEventRead])
def list_audit_logs(
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    actor_user_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 200,
    db: Session = Depends(get_read_db),
    ctx: SessionContext = Depends(
        require_module_access(ModuleKey.ACCESS_CONTROL, PermissionAction.VIEW)
    ),
):
    return services.list_audit_events(
        db,
        company_id=ctx.company_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor_user_id=actor_user_id,
        start=start,
        end=end,
        skip=skip,
        limit=limit,
    )
