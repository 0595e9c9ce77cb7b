from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from stockdb.apps.audit import services as audit_services
from stockdb.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    get_password_hash,
    verify_password,
)
from . import models, schemas
from .models import AccountRole, ModuleKey

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
USER_ENTITY = "user"

# Rights a freshly invited user starts with when no module list is given.
DEFAULT_MODULE_ACCESS: Dict[ModuleKey, Tuple[bool, bool, bool, bool]] = {
    ModuleKey.DASHBOARD: (True, False, False, False),
    ModuleKey.SKU: (True, True, True, True),
    ModuleKey.INVENTORY: (True, True, True, True),
    ModuleKey.REPORTS: (True, False, False, False),
    ModuleKey.ACCESS_CONTROL: (False, False, False, False),
    ModuleKey.LIBRARY: (True, True, True, True),
    ModuleKey.PRODUCT_CATEGORY: (True, True, True, True),
    ModuleKey.ITEM_CATEGORY: (True, True, True, True),
    ModuleKey.SUB_CATEGORY: (True, True, True, True),
}


class AuthenticationError(Exception):
    """Raised when login credentials are invalid or the account is suspended."""


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


def _normalise_email(value: str) -> str:
    return value.strip().lower()


def _validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.",
        )
    if not (any(ch.isalpha() for ch in password) and any(ch.isdigit() for ch in password)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password must include letters and numbers.",
        )


def _check_role_grant(role: AccountRole, actor: Optional[models.User]) -> None:
    """`actor` None means a bootstrap path (registration or the initial admin script)."""
    if actor is None:
        return
    if role == AccountRole.SUPERUSER and not actor.is_superuser:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only a platform superuser can grant the superuser role.",
        )
    if role == AccountRole.ADMIN and not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only an admin can grant the admin role.",
        )


def default_module_access() -> List[schemas.ModuleAccessEntry]:
    return [
        schemas.ModuleAccessEntry(
            module_key=key,
            can_view=view,
            can_create=create,
            can_edit=edit,
            can_delete=delete,
        )
        for key, (view, create, edit, delete) in DEFAULT_MODULE_ACCESS.items()
    ]


def _access_snapshot(user: models.User) -> dict:
    return {
        "role": user.role.value if user.role else None,
        "is_active": user.is_active,
        "modules": {
            ModuleKey(row.module_key).value: [row.can_view, row.can_create, row.can_edit, row.can_delete]
            for row in user.module_access
        },
        "categories": [
            [row.product_category_id, row.item_category_id, row.sub_category_id, row.can_view]
            for row in user.category_access
        ],
    }


def _set_module_rows(user: models.User, entries: Iterable[schemas.ModuleAccessEntry]) -> None:
    # Rows kept for a module are updated in place; uq_user_module_access forbids insert-then-delete.
    existing = {ModuleKey(row.module_key): row for row in user.module_access or []}
    rows = []
    for entry in entries:
        row = existing.get(entry.module_key) or models.UserModuleAccess(module_key=entry.module_key)
        row.can_view = entry.can_view
        row.can_create = entry.can_create
        row.can_edit = entry.can_edit
        row.can_delete = entry.can_delete
        rows.append(row)
    user.module_access = rows


def _set_category_rows(user: models.User, entries: Iterable[schemas.CategoryAccessEntry]) -> None:
    user.category_access = [models.UserCategoryAccess(**entry.model_dump()) for entry in entries]


# ---------------------------------------------------------------------------
# Company onboarding
# ---------------------------------------------------------------------------


def get_company_by_slug(db: Session, slug: str) -> Optional[models.Company]:
    slug_norm = (slug or "").strip().lower()
    if not slug_norm:
        return None
    return (
        db.query(models.Company)
        .filter(
            or_(
                func.lower(models.Company.login_slug) == slug_norm,
                func.lower(models.Company.code) == slug_norm,
            ),
            models.Company.is_active.is_(True),
        )
        .first()
    )


def register_company(db: Session, payload: schemas.RegisterRequest) -> Tuple[models.Company, models.User]:
    """Create a company together with its first ADMIN user."""
    data = payload.company
    clash = (
        db.query(models.Company)
        .filter(
            or_(
                func.lower(models.Company.code) == data.code.lower(),
                func.lower(models.Company.login_slug) == data.login_slug.lower(),
            )
        )
        .first()
    )
    if clash:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A company with this code or login slug already exists.",
        )

    company = models.Company(**data.model_dump())
    db.add(company)
    db.flush()

    admin = payload.admin.model_copy(update={"role": AccountRole.ADMIN})
    user = create_user(
        db,
        company_id=company.id,
        payload=schemas.UserCreate(**admin.model_dump(), password=payload.password),
    )
    logger.info(
        "Company registered",
        extra={"company_id": company.id, "company_code": company.code, "admin_user_id": user.id},
    )
    return company, user


# ---------------------------------------------------------------------------
# User lifecycle
# ---------------------------------------------------------------------------


def get_user(db: Session, *, company_id: str, user_id: str) -> models.User:
    user = (
        db.query(models.User)
        .filter(models.User.company_id == company_id, models.User.id == user_id)
        .first()
    )
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return user


def list_users(
    db: Session,
    *,
    company_id: str,
    role: Optional[AccountRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 200,
) -> List[models.User]:
    query = db.query(models.User).filter(models.User.company_id == company_id)
    if role is not None:
        query = query.filter(models.User.role == role)
    if is_active is not None:
        query = query.filter(models.User.is_active.is_(is_active))
    if search and search.strip():
        like = f"%{search.strip()}%"
        query = query.filter(or_(models.User.full_name.ilike(like), models.User.email.ilike(like)))
    return query.order_by(models.User.full_name.asc()).offset(skip).limit(limit).all()


def create_user(
    db: Session,
    *,
    company_id: str,
    payload: schemas.UserCreate,
    invited_by: Optional[models.User] = None,
) -> models.User:
    email = _normalise_email(payload.email)
    _check_role_grant(payload.role, invited_by)

    dup = (
        db.query(models.User)
        .filter(models.User.company_id == company_id, func.lower(models.User.email) == email)
        .first()
    )
    if dup:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists in this company.",
        )

    _validate_password_strength(payload.password)

    first_name = payload.first_name.strip()
    last_name = payload.last_name.strip()
    user = models.User(
        company_id=company_id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        full_name=(payload.full_name or "").strip() or f"{first_name} {last_name}".strip(),
        department=payload.department,
        phone=payload.phone,
        role=payload.role,
        is_active=True,
        is_superuser=payload.role == AccountRole.SUPERUSER,
        hashed_password=get_password_hash(payload.password),
        invited_by_user_id=invited_by.id if invited_by is not None else None,
    )
    _set_module_rows(user, payload.module_access if payload.module_access is not None else default_module_access())
    _set_category_rows(user, payload.category_access)
    db.add(user)
    db.flush()

    audit_services.log_event(
        db,
        company_id=company_id,
        actor_user_id=invited_by.id if invited_by is not None else None,
        entity_type=USER_ENTITY,
        entity_id=user.id,
        action="invite" if invited_by is not None else "create",
        after=_access_snapshot(user),
    )
    return user


def update_user(
    db: Session,
    user: models.User,
    payload: schemas.UserUpdate,
    *,
    actor: models.User,
) -> models.User:
    before = _access_snapshot(user)
    data = payload.model_dump(exclude_unset=True)

    name_changed = False
    for field in ("first_name", "last_name"):
        if data.get(field):
            setattr(user, field, data[field].strip())
            name_changed = True
    if data.get("full_name"):
        user.full_name = data["full_name"].strip()
    elif name_changed:
        user.full_name = f"{user.first_name} {user.last_name}".strip()

    if "department" in data:
        user.department = data["department"]
    if "phone" in data:
        user.phone = data["phone"]
    if data.get("role") is not None and data["role"] != user.role:
        if user.id == actor.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role.")
        _check_role_grant(data["role"], actor)
        if user.role in {AccountRole.ADMIN, AccountRole.SUPERUSER}:
            _check_role_grant(user.role, actor)
        user.role = data["role"]
        user.is_superuser = data["role"] == AccountRole.SUPERUSER

    db.add(user)
    db.flush()
    audit_services.log_event(
        db,
        company_id=user.company_id,
        actor_user_id=actor.id,
        entity_type=USER_ENTITY,
        entity_id=user.id,
        action="update",
        before=before,
        after=_access_snapshot(user),
    )
    return user


def set_access(
    db: Session,
    user: models.User,
    payload: schemas.AccessUpdate,
    *,
    actor: models.User,
) -> models.User:
    before = _access_snapshot(user)
    if payload.module_access is not None:
        _set_module_rows(user, payload.module_access)
    if payload.category_access is not None:
        _set_category_rows(user, payload.category_access)
    db.add(user)
    db.flush()
    audit_services.log_event(
        db,
        company_id=user.company_id,
        actor_user_id=actor.id,
        entity_type=USER_ENTITY,
        entity_id=user.id,
        action="set_access",
        before=before,
        after=_access_snapshot(user),
        critical=True,
    )
    return user


def set_suspended(db: Session, user: models.User, *, suspended: bool, actor: models.User) -> models.User:
    if user.id == actor.id and suspended:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot suspend yourself.")
    before = _access_snapshot(user)
    user.is_active = not suspended
    user.suspended_at = datetime.now(timezone.utc) if suspended else None
    db.add(user)
    db.flush()
    audit_services.log_event(
        db,
        company_id=user.company_id,
        actor_user_id=actor.id,
        entity_type=USER_ENTITY,
        entity_id=user.id,
        action="suspend" if suspended else "reactivate",
        before=before,
        after=_access_snapshot(user),
    )
    return user


# ---------------------------------------------------------------------------
# Authentication and access tokens
# ---------------------------------------------------------------------------


def authenticate_user(db: Session, *, company_slug: str, email: str, password: str) -> models.User:
    company = get_company_by_slug(db, company_slug)
    if not company:
        raise AuthenticationError("Incorrect email, password or company.")

    user = (
        db.query(models.User)
        .filter(models.User.company_id == company.id, models.User.email == _normalise_email(email))
        .first()
    )
    if not user or not verify_password(password, user.hashed_password):
        logger.info("Login failed", extra={"company_id": company.id, "email": _normalise_email(email)})
        raise AuthenticationError("Incorrect email, password or company.")
    if not user.is_active:
        raise AuthenticationError("This account has been suspended.")

    user.last_login_at = datetime.now(timezone.utc)
    db.add(user)
    return user


def issue_access_token_for_user(user: models.User) -> Tuple[str, int]:
    """Returns (token_string, expires_in_seconds)."""
    payload = {
        "sub": str(user.id),
        "company_id": user.company_id,
        "role": user.role.value if hasattr(user.role, "value") else str(user.role),
        "is_superuser": bool(user.is_superuser),
    }
    token = create_access_token(
        data=payload,
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return token, int(ACCESS_TOKEN_EXPIRE_MINUTES * 60)
