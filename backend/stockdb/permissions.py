"""
Module access helpers.

These helpers centralise the check of whether the caller may perform an
action (view/create/edit/delete) on a module (inventory, library, reports,
etc.) based on the user's stored module access rows.
"""

from __future__ import annotations

from typing import Callable, Union

from fastapi import Depends, HTTPException, status

from stockdb.apps.accounts.models import ModuleKey, PermissionAction

from .context import SessionContext, get_session_context


def require_module_access(
    module: Union[ModuleKey, str],
    action: Union[PermissionAction, str] = PermissionAction.VIEW,
) -> Callable[[SessionContext], SessionContext]:
    """
    FastAPI dependency that blocks the request when the caller lacks the right.

    Usage:
        @router.post(
            "/library/vendors",
            dependencies=[Depends(require_module_access(ModuleKey.LIBRARY, "create"))],
        )
    """
    module_key = ModuleKey(module)
    action_key = PermissionAction(action)

    def dependency(
        ctx: SessionContext = Depends(get_session_context),
    ) -> SessionContext:
        if ctx.can(module_key, action_key):
            return ctx
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"No '{action_key.value}' access to module '{module_key.value}'.",
        )

    return dependency
