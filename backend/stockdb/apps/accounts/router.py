# backend/stockdb/apps/accounts/router.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from stockdb.context import SessionContext
from stockdb.database import get_db
from stockdb.permissions import require_module_access
from stockdb.security import get_current_active_user
from . import models, schemas, services
from .models import AccountRole, ModuleKey, PermissionAction

auth_router = APIRouter(prefix="/auth", tags=["auth"])
router = APIRouter(prefix="/access-control", tags=["access-control"])


def _token_response(db: Session, user: models.User) -> schemas.Token:
    db.commit()
    db.refresh(user)
    token, expires_in = services.issue_access_token_for_user(user)
    return schemas.Token(access_token=token, expires_in=expires_in, user=user, company=user.company)


def _login(db: Session, *, company_slug: str, email: str, password: str) -> schemas.Token:
    try:
        user = services.authenticate_user(db, company_slug=company_slug, email=email, password=password)
    except services.AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _token_response(db, user)


# ---------------------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------------------


@auth_router.post(
    "/register",
    response_model=schemas.Token,
    status_code=status.HTTP_201_CREATED,
    summary="Register a company and its first admin",
)
def register(payload: schemas.RegisterRequest, db: Session = Depends(get_db)):
    _company, user = services.register_company(db, payload)
    return _token_response(db, user)


@auth_router.post("/login", response_model=schemas.Token, summary="Login with company slug, email and password")
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    return _login(db, company_slug=payload.company_slug, email=payload.email, password=payload.password)


@auth_router.post("/token", response_model=schemas.Token, summary="OAuth2 password form login")
def login_form(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """
    Form variant used by the interactive docs.

    `client_id` carries the company slug; `username` is the e-mail address.
    """
    return _login(db, company_slug=form.client_id or "", email=form.username, password=form.password)


@auth_router.get("/me", response_model=schemas.UserRead)
def me(current_user: models.User = Depends(get_current_active_user)):
    return current_user


# ---------------------------------------------------------------------------
# USER ADMINISTRATION
# ---------------------------------------------------------------------------


ACCESS_VIEW = require_module_access(ModuleKey.ACCESS_CONTROL, PermissionAction.VIEW)
ACCESS_CREATE = require_module_access(ModuleKey.ACCESS_CONTROL, PermissionAction.CREATE)
ACCESS_EDIT = require_module_access(ModuleKey.ACCESS_CONTROL, PermissionAction.EDIT)


@router.get("/users", response_model=List[schemas.UserRead])
def list_users(
    role: Optional[AccountRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 200,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(ACCESS_VIEW),
):
    return services.list_users(
        db,
        company_id=ctx.company_id,
        role=role,
        is_active=is_active,
        search=search,
        skip=skip,
        limit=limit,
    )


@router.post("/users", response_model=schemas.UserRead, status_code=status.HTTP_201_CREATED)
def invite_user(
    payload: schemas.UserCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(ACCESS_CREATE),
    current_user: models.User = Depends(get_current_active_user),
):
    user = services.create_user(db, company_id=ctx.company_id, payload=payload, invited_by=current_user)
    db.commit()
    db.refresh(user)
    return user


@router.get("/users/{user_id}", response_model=schemas.UserRead)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(ACCESS_VIEW),
):
    return services.get_user(db, company_id=ctx.company_id, user_id=user_id)


@router.put("/users/{user_id}", response_model=schemas.UserRead)
def update_user(
    user_id: str,
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(ACCESS_EDIT),
    current_user: models.User = Depends(get_current_active_user),
):
    user = services.get_user(db, company_id=ctx.company_id, user_id=user_id)
    services.update_user(db, user, payload, actor=current_user)
    db.commit()
    db.refresh(user)
    return user


@router.put("/users/{user_id}/access", response_model=schemas.UserRead)
def set_user_access(
    user_id: str,
    payload: schemas.AccessUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(ACCESS_EDIT),
    current_user: models.User = Depends(get_current_active_user),
):
    user = services.get_user(db, company_id=ctx.company_id, user_id=user_id)
    services.set_access(db, user, payload, actor=current_user)
    db.commit()
    db.refresh(user)
    return user


@router.post("/users/{user_id}/suspend", response_model=schemas.UserRead)
def suspend_user(
    user_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(ACCESS_EDIT),
    current_user: models.User = Depends(get_current_active_user),
):
    user = services.get_user(db, company_id=ctx.company_id, user_id=user_id)
    services.set_suspended(db, user, suspended=True, actor=current_user)
    db.commit()
    db.refresh(user)
    return user


@router.post("/users/{user_id}/reactivate", response_model=schemas.UserRead)
def reactivate_user(
    user_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(ACCESS_EDIT),
    current_user: models.User = Depends(get_current_active_user),
):
    user = services.get_user(db, company_id=ctx.company_id, user_id=user_id)
    services.set_suspended(db, user, suspended=False, actor=current_user)
    db.commit()
    db.refresh(user)
    return user
