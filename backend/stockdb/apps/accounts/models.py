# backend/stockdb/apps/accounts/models.py

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from stockdb.database import Base
from stockdb.utils.identifiers import generate_short_id


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class AccountRole(str, enum.Enum):
    """High-level roles. Per-module rights live in UserModuleAccess."""

    SUPERUSER = "SUPERUSER"       # Platform owner
    ADMIN = "ADMIN"               # Company admin
    MANAGER = "MANAGER"
    STOREKEEPER = "STOREKEEPER"
    VIEW_ONLY = "VIEW_ONLY"


class ModuleKey(str, enum.Enum):
    DASHBOARD = "dashboard"
    SKU = "sku"
    INVENTORY = "inventory"
    REPORTS = "reports"
    ACCESS_CONTROL = "access_control"
    LIBRARY = "library"
    PRODUCT_CATEGORY = "product_category"
    ITEM_CATEGORY = "item_category"
    SUB_CATEGORY = "sub_category"


class PermissionAction(str, enum.Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"


def _company_id() -> str:
    return generate_short_id("CMP")


def _user_id() -> str:
    return generate_short_id("USR")


# ---------------------------------------------------------------------------
# COMPANY
# ---------------------------------------------------------------------------


class Company(Base):
    """
    Tenant that owns every inventory and library record.
    """

    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=_company_id)
    code = Column(String(32), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    login_slug = Column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
        doc="Short slug used at login, e.g. 'acme-stores'",
    )
    gst_number = Column(String(15), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(32), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    users = relationship("User", back_populates="company", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Company {self.code} {self.name}>"


# ---------------------------------------------------------------------------
# USERS & ACCESS
# ---------------------------------------------------------------------------


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("company_id", "email", name="uq_users_company_email"),
        Index("idx_users_role_active", "role", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=_user_id)
    company_id = Column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    full_name = Column(String(255), nullable=False)
    department = Column(String(128), nullable=True)
    phone = Column(String(32), nullable=True)

    role = Column(
        Enum(AccountRole, name="account_role_enum"),
        nullable=False,
        default=AccountRole.STOREKEEPER,
        index=True,
    )

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_superuser = Column(Boolean, nullable=False, default=False, index=True)

    hashed_password = Column(String(255), nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    suspended_at = Column(DateTime(timezone=True), nullable=True)

    invited_by_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    company = relationship("Company", back_populates="users")
    module_access = relationship(
        "UserModuleAccess",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    category_access = relationship(
        "UserCategoryAccess",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_admin(self) -> bool:
        return bool(self.is_superuser) or self.role in {AccountRole.SUPERUSER, AccountRole.ADMIN}

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"


class UserModuleAccess(Base):
    """
    One row per (user, module): the fixed {view, create, edit, delete} shape.
    """

    __tablename__ = "user_module_access"
    __table_args__ = (
        UniqueConstraint("user_id", "module_key", name="uq_user_module_access"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    module_key = Column(
        Enum(ModuleKey, name="module_key_enum", native_enum=False),
        nullable=False,
    )
    can_view = Column(Boolean, nullable=False, default=False)
    can_create = Column(Boolean, nullable=False, default=False)
    can_edit = Column(Boolean, nullable=False, default=False)
    can_delete = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="module_access")


class UserCategoryAccess(Base):
    """
    Category-scoped rights. A null item/sub category covers the whole branch.
    """

    __tablename__ = "user_category_access"
    __table_args__ = (Index("ix_user_category_access_user", "user_id"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    product_category_id = Column(
        Integer,
        ForeignKey("product_categories.id", ondelete="CASCADE"),
        nullable=False,
    )
    item_category_id = Column(
        Integer,
        ForeignKey("item_categories.id", ondelete="CASCADE"),
        nullable=True,
    )
    sub_category_id = Column(
        Integer,
        ForeignKey("sub_categories.id", ondelete="CASCADE"),
        nullable=True,
    )
    can_view = Column(Boolean, nullable=False, default=True)
    can_create = Column(Boolean, nullable=False, default=False)
    can_edit = Column(Boolean, nullable=False, default=False)
    can_delete = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="category_access")
