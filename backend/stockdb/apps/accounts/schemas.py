# backend/stockdb/apps/accounts/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from stockdb.utils import validators
from .models import AccountRole, ModuleKey


# ---------------------------------------------------------------------------
# COMPANY
# ---------------------------------------------------------------------------


class CompanyBase(BaseModel):
    code: str = Field(..., description="Short company code, e.g. 'ACME'")
    name: str
    login_slug: str = Field(..., description="Slug entered at login, e.g. 'acme-stores'")
    gst_number: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None

    @field_validator("code")
    @classmethod
    def _code(cls, value: str) -> str:
        return validators.required_name(value).upper()

    @field_validator("name")
    @classmethod
    def _name(cls, value: str) -> str:
        return validators.required_name(value)

    @field_validator("login_slug")
    @classmethod
    def _slug(cls, value: str) -> str:
        return validators.required_name(value).lower()

    @field_validator("gst_number")
    @classmethod
    def _gst(cls, value: Optional[str]) -> Optional[str]:
        return validators.gst_number(value)

    @field_validator("contact_phone")
    @classmethod
    def _phone(cls, value: Optional[str]) -> Optional[str]:
        return validators.phone_number(value)


class CompanyRead(CompanyBase):
    id: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# ACCESS
# ---------------------------------------------------------------------------


class ModuleAccessEntry(BaseModel):
    module_key: ModuleKey
    can_view: bool = False
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False

    class Config:
        from_attributes = True


class CategoryAccessEntry(BaseModel):
    product_category_id: int
    item_category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    can_view: bool = True
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False

    class Config:
        from_attributes = True


class AccessUpdate(BaseModel):
    """Replaces the user's rows; omitted lists are left untouched."""

    module_access: Optional[List[ModuleAccessEntry]] = None
    category_access: Optional[List[CategoryAccessEntry]] = None

    @field_validator("module_access")
    @classmethod
    def _unique_modules(cls, value: Optional[List[ModuleAccessEntry]]):
        if value is None:
            return value
        keys = [entry.module_key for entry in value]
        if len(keys) != len(set(keys)):
            raise ValueError("Each module may only appear once.")
        return value


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


class UserBase(BaseModel):
    email: EmailStr
    first_name: str
    last_name: str
    full_name: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    role: AccountRole = AccountRole.STOREKEEPER

    @field_validator("first_name", "last_name")
    @classmethod
    def _names(cls, value: str) -> str:
        return validators.required_name(value)

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: Optional[str]) -> Optional[str]:
        return validators.phone_number(value)


class UserCreate(UserBase):
    password: str
    module_access: Optional[List[ModuleAccessEntry]] = None
    category_access: List[CategoryAccessEntry] = Field(default_factory=list)


class UserUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[AccountRole] = None

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: Optional[str]) -> Optional[str]:
        return validators.phone_number(value)


class UserRead(UserBase):
    id: str
    company_id: str
    full_name: str
    is_active: bool
    is_superuser: bool
    last_login_at: Optional[datetime] = None
    suspended_at: Optional[datetime] = None
    created_at: datetime
    module_access: List[ModuleAccessEntry] = Field(default_factory=list)
    category_access: List[CategoryAccessEntry] = Field(default_factory=list)

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Company onboarding: the company and its first admin in one call."""

    company: CompanyBase
    admin: UserBase
    password: str


class LoginRequest(BaseModel):
    company_slug: str = Field(..., description="Company login slug, e.g. 'acme-stores'")
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead
    company: CompanyRead
