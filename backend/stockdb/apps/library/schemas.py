from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from stockdb.utils import validators


class _PartyFields(BaseModel):
    """Contact block shared by vendors and customers."""

    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    gst_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pin: Optional[str] = None

    @field_validator("contact_person", "address", "city", "state", "email", mode="before")
    @classmethod
    def _strip_blank(cls, value):
        return validators.blank_to_none(value)

    @field_validator("phone")
    @classmethod
    def _phone(cls, value):
        return validators.phone_number(value)

    @field_validator("gst_number")
    @classmethod
    def _gst(cls, value):
        return validators.gst_number(value)

    @field_validator("pin")
    @classmethod
    def _pin(cls, value):
        return validators.pin_code(value)


# ---------------------------------------------------------------------------
# VENDORS & BRANDS
# ---------------------------------------------------------------------------


class VendorCreate(_PartyFields):
    name: str
    designation: Optional[str] = None
    brands: List[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        return validators.required_name(value)

    @field_validator("brands")
    @classmethod
    def _brands(cls, value: List[str]) -> List[str]:
        seen = []
        for raw in value:
            name = validators.blank_to_none(raw)
            if name and name not in seen:
                seen.append(name)
        return seen


class VendorUpdate(_PartyFields):
    name: Optional[str] = None
    designation: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        if value is None:
            return None
        return validators.required_name(value)


class BrandCreate(BaseModel):
    name: str
    description: Optional[str] = None
    vendor_id: Optional[int] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        return validators.required_name(value)


class BrandUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    vendor_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        if value is None:
            return None
        return validators.required_name(value)


class BrandRead(BaseModel):
    id: int
    company_id: str
    vendor_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class VendorRead(BaseModel):
    id: int
    company_id: str
    name: str
    contact_person: Optional[str] = None
    designation: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    gst_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pin: Optional[str] = None
    is_active: bool
    created_at: datetime
    brands: List[BrandRead] = Field(default_factory=list)

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# CUSTOMERS & TEAMS
# ---------------------------------------------------------------------------


class CustomerCreate(_PartyFields):
    name: str

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        return validators.required_name(value)


class CustomerUpdate(_PartyFields):
    name: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        if value is None:
            return None
        return validators.required_name(value)


class CustomerRead(BaseModel):
    id: int
    company_id: str
    name: str
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    gst_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pin: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TeamCreate(BaseModel):
    name: str
    contact_number: Optional[str] = None
    email: Optional[EmailStr] = None
    department: Optional[str] = None
    designation: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        return validators.required_name(value)

    @field_validator("email", "department", "designation", mode="before")
    @classmethod
    def _strip_blank(cls, value):
        return validators.blank_to_none(value)

    @field_validator("contact_number")
    @classmethod
    def _phone(cls, value):
        return validators.phone_number(value)


class TeamUpdate(TeamCreate):
    name: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        if value is None:
            return None
        return validators.required_name(value)


class TeamRead(BaseModel):
    id: int
    company_id: str
    name: str
    contact_number: Optional[str] = None
    email: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# CATEGORIES
# ---------------------------------------------------------------------------


class CategoryCreate(BaseModel):
    name: str
    description: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        return validators.required_name(value)


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        if value is None:
            return None
        return validators.required_name(value)


class ProductCategoryRead(BaseModel):
    id: int
    company_id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ItemCategoryCreate(CategoryCreate):
    product_category_id: int


class ItemCategoryRead(ProductCategoryRead):
    product_category_id: int


class SubCategoryCreate(CategoryCreate):
    item_category_id: int


class SubCategoryRead(ProductCategoryRead):
    item_category_id: int
