# backend/stockdb/context.py

"""
Per-request session context.

Routers resolve the caller once and hand a `SessionContext` to services and
reconciliation actions instead of looking the user up again deeper down.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from fastapi import Depends

from stockdb.apps.accounts import models as account_models
from stockdb.apps.accounts.models import AccountRole, ModuleKey, PermissionAction
from .security import get_current_active_user


@dataclass(frozen=True)
class ModulePermissions:
    view: bool = False
    create: bool = False
    edit: bool = False
    delete: bool = False

    @classmethod
    def full(cls) -> "ModulePermissions":
        return cls(view=True, create=True, edit=True, delete=True)

    @classmethod
    def from_row(cls, row: account_models.UserModuleAccess) -> "ModulePermissions":
        return cls(
            view=bool(row.can_view),
            create=bool(row.can_create),
            edit=bool(row.can_edit),
            delete=bool(row.can_delete),
        )

    def allows(self, action: Union[PermissionAction, str]) -> bool:
        return bool(getattr(self, PermissionAction(action).value))


@dataclass(frozen=True)
class SessionContext:
    user_id: str
    company_id: str
    role: AccountRole
    is_superuser: bool = False
    full_name: Optional[str] = None
    modules: Dict[ModuleKey, ModulePermissions] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.is_superuser or self.role in {AccountRole.SUPERUSER, AccountRole.ADMIN}

    def permissions_for(self, module: Union[ModuleKey, str]) -> ModulePermissions:
        if self.is_admin:
            return ModulePermissions.full()
        return self.modules.get(ModuleKey(module), ModulePermissions())

    def can(self, module: Union[ModuleKey, str], action: Union[PermissionAction, str]) -> bool:
        return self.permissions_for(module).allows(action)


def build_session_context(user: account_models.User) -> SessionContext:
    modules = {
        ModuleKey(row.module_key): ModulePermissions.from_row(row)
        for row in (user.module_access or [])
    }
    return SessionContext(
        user_id=user.id,
        company_id=user.company_id,
        role=AccountRole(user.role),
        is_superuser=bool(user.is_superuser),
        full_name=user.full_name,
        modules=modules,
    )


def get_session_context(
    current_user: account_models.User = Depends(get_current_active_user),
) -> SessionContext:
    return build_session_context(current_user)
