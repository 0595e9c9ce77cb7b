from __future__ import annotations

from typing import Any, Dict, List, Optional, Type

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from stockdb.apps.audit import services as audit_services
from . import models, schemas


# ---------------------------------------------------------------------------
# GENERIC HELPERS
# ---------------------------------------------------------------------------


def _get_or_404(db: Session, model: Type[Any], *, company_id: str, record_id: int, label: str):
    record = (
        db.query(model)
        .filter(model.company_id == company_id, model.id == record_id)
        .first()
    )
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found.")
    return record


def _ensure_unique_name(
    db: Session,
    model: Type[Any],
    *,
    company_id: str,
    name: str,
    label: str,
    exclude_id: Optional[int] = None,
    scope: Optional[Dict[str, Any]] = None,
) -> None:
    query = db.query(model).filter(
        model.company_id == company_id,
        func.lower(model.name) == name.lower(),
    )
    for column, value in (scope or {}).items():
        query = query.filter(getattr(model, column) == value)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{label} '{name}' already exists.",
        )


def list_records(
    db: Session,
    model: Type[Any],
    *,
    company_id: str,
    search: Optional[str] = None,
    include_inactive: bool = False,
    **filters: Any,
) -> List[Any]:
    query = db.query(model).filter(model.company_id == company_id)
    if not include_inactive:
        query = query.filter(model.is_active.is_(True))
    if search:
        query = query.filter(model.name.ilike(f"%{search.strip()}%"))
    for column, value in filters.items():
        if value is not None:
            query = query.filter(getattr(model, column) == value)
    return query.order_by(model.name.asc()).all()


def _apply_update(record: Any, values: Dict[str, Any]) -> Dict[str, Any]:
    before = {}
    for key, value in values.items():
        before[key] = getattr(record, key)
        setattr(record, key, value)
    return before


def _deactivate(
    db: Session,
    record: Any,
    *,
    company_id: str,
    actor_user_id: Optional[str],
    entity_type: str,
) -> Any:
    record.is_active = False
    db.add(record)
    db.flush()
    audit_services.log_event(
        db,
        company_id=company_id,
        actor_user_id=actor_user_id,
        entity_type=entity_type,
        entity_id=str(record.id),
        action="deactivate",
        after={"is_active": False},
    )
    return record


# ---------------------------------------------------------------------------
# VENDORS
# ---------------------------------------------------------------------------


def create_vendor(
    db: Session,
    *,
    company_id: str,
    payload: schemas.VendorCreate,
    actor_user_id: Optional[str] = None,
) -> models.Vendor:
    _ensure_unique_name(db, models.Vendor, company_id=company_id, name=payload.name, label="Vendor")
    data = payload.model_dump(exclude={"brands"})
    vendor = models.Vendor(company_id=company_id, **data)
    db.add(vendor)
    db.flush()

    for brand_name in payload.brands:
        existing = (
            db.query(models.Brand)
            .filter(
                models.Brand.company_id == company_id,
                func.lower(models.Brand.name) == brand_name.lower(),
            )
            .first()
        )
        if existing:
            if existing.vendor_id is None:
                existing.vendor_id = vendor.id
                db.add(existing)
            continue
        db.add(models.Brand(company_id=company_id, vendor_id=vendor.id, name=brand_name))
    db.flush()
    db.refresh(vendor)

    audit_services.log_event(
        db,
        company_id=company_id,
        actor_user_id=actor_user_id,
        entity_type="vendor",
        entity_id=str(vendor.id),
        action="create",
        after={"name": vendor.name, "brands": payload.brands},
    )
    return vendor


def update_vendor(
    db: Session,
    *,
    company_id: str,
    vendor_id: int,
    payload: schemas.VendorUpdate,
    actor_user_id: Optional[str] = None,
) -> models.Vendor:
    vendor = _get_or_404(db, models.Vendor, company_id=company_id, record_id=vendor_id, label="Vendor")
    values = payload.model_dump(exclude_unset=True)
    if values.get("name"):
        _ensure_unique_name(
            db, models.Vendor, company_id=company_id, name=values["name"], label="Vendor", exclude_id=vendor.id
        )
    before = _apply_update(vendor, values)
    db.add(vendor)
    db.flush()
    audit_services.log_event(
        db,
        company_id=company_id,
        actor_user_id=actor_user_id,
        entity_type="vendor",
        entity_id=str(vendor.id),
        action="update",
        before=before,
        after=values,
    )
    return vendor


def deactivate_vendor(db: Session, *, company_id: str, vendor_id: int, actor_user_id: Optional[str] = None):
    vendor = _get_or_404(db, models.Vendor, company_id=company_id, record_id=vendor_id, label="Vendor")
    return _deactivate(db, vendor, company_id=company_id, actor_user_id=actor_user_id, entity_type="vendor")


# ---------------------------------------------------------------------------
# BRANDS
# ---------------------------------------------------------------------------


def create_brand(
    db: Session,
    *,
    company_id: str,
    payload: schemas.BrandCreate,
) -> models.Brand:
    _ensure_unique_name(db, models.Brand, company_id=company_id, name=payload.name, label="Brand")
    if payload.vendor_id is not None:
        _get_or_404(db, models.Vendor, company_id=company_id, record_id=payload.vendor_id, label="Vendor")
    brand = models.Brand(company_id=company_id, **payload.model_dump())
    db.add(brand)
    db.flush()
    return brand


def update_brand(
    db: Session,
    *,
    company_id: str,
    brand_id: int,
    payload: schemas.BrandUpdate,
) -> models.Brand:
    brand = _get_or_404(db, models.Brand, company_id=company_id, record_id=brand_id, label="Brand")
    values = payload.model_dump(exclude_unset=True)
    if values.get("name"):
        _ensure_unique_name(
            db, models.Brand, company_id=company_id, name=values["name"], label="Brand", exclude_id=brand.id
        )
    if values.get("vendor_id") is not None:
        _get_or_404(db, models.Vendor, company_id=company_id, record_id=values["vendor_id"], label="Vendor")
    _apply_update(brand, values)
    db.add(brand)
    db.flush()
    return brand


def deactivate_brand(db: Session, *, company_id: str, brand_id: int, actor_user_id: Optional[str] = None):
    brand = _get_or_404(db, models.Brand, company_id=company_id, record_id=brand_id, label="Brand")
    return _deactivate(db, brand, company_id=company_id, actor_user_id=actor_user_id, entity_type="brand")


# ---------------------------------------------------------------------------
# CUSTOMERS & TEAMS
# ---------------------------------------------------------------------------


def create_customer(db: Session, *, company_id: str, payload: schemas.CustomerCreate) -> models.Customer:
    _ensure_unique_name(db, models.Customer, company_id=company_id, name=payload.name, label="Customer")
    customer = models.Customer(company_id=company_id, **payload.model_dump())
    db.add(customer)
    db.flush()
    return customer


def update_customer(
    db: Session,
    *,
    company_id: str,
    customer_id: int,
    payload: schemas.CustomerUpdate,
) -> models.Customer:
    customer = _get_or_404(db, models.Customer, company_id=company_id, record_id=customer_id, label="Customer")
    values = payload.model_dump(exclude_unset=True)
    if values.get("name"):
        _ensure_unique_name(
            db, models.Customer, company_id=company_id, name=values["name"], label="Customer", exclude_id=customer.id
        )
    _apply_update(customer, values)
    db.add(customer)
    db.flush()
    return customer


def deactivate_customer(db: Session, *, company_id: str, customer_id: int, actor_user_id: Optional[str] = None):
    customer = _get_or_404(db, models.Customer, company_id=company_id, record_id=customer_id, label="Customer")
    return _deactivate(db, customer, company_id=company_id, actor_user_id=actor_user_id, entity_type="customer")


def create_team(db: Session, *, company_id: str, payload: schemas.TeamCreate) -> models.Team:
    _ensure_unique_name(db, models.Team, company_id=company_id, name=payload.name, label="Team")
    team = models.Team(company_id=company_id, **payload.model_dump())
    db.add(team)
    db.flush()
    return team


def update_team(db: Session, *, company_id: str, team_id: int, payload: schemas.TeamUpdate) -> models.Team:
    team = _get_or_404(db, models.Team, company_id=company_id, record_id=team_id, label="Team")
    values = payload.model_dump(exclude_unset=True)
    if values.get("name"):
        _ensure_unique_name(
            db, models.Team, company_id=company_id, name=values["name"], label="Team", exclude_id=team.id
        )
    _apply_update(team, values)
    db.add(team)
    db.flush()
    return team


def deactivate_team(db: Session, *, company_id: str, team_id: int, actor_user_id: Optional[str] = None):
    team = _get_or_404(db, models.Team, company_id=company_id, record_id=team_id, label="Team")
    return _deactivate(db, team, company_id=company_id, actor_user_id=actor_user_id, entity_type="team")


# ---------------------------------------------------------------------------
# CATEGORIES
# ---------------------------------------------------------------------------


def create_product_category(
    db: Session,
    *,
    company_id: str,
    payload: schemas.CategoryCreate,
) -> models.ProductCategory:
    _ensure_unique_name(
        db, models.ProductCategory, company_id=company_id, name=payload.name, label="Product category"
    )
    category = models.ProductCategory(company_id=company_id, **payload.model_dump())
    db.add(category)
    db.flush()
    return category


def create_item_category(
    db: Session,
    *,
    company_id: str,
    payload: schemas.ItemCategoryCreate,
) -> models.ItemCategory:
    _get_or_404(
        db,
        models.ProductCategory,
        company_id=company_id,
        record_id=payload.product_category_id,
        label="Product category",
    )
    _ensure_unique_name(
        db,
        models.ItemCategory,
        company_id=company_id,
        name=payload.name,
        label="Item category",
        scope={"product_category_id": payload.product_category_id},
    )
    category = models.ItemCategory(company_id=company_id, **payload.model_dump())
    db.add(category)
    db.flush()
    return category


def create_sub_category(
    db: Session,
    *,
    company_id: str,
    payload: schemas.SubCategoryCreate,
) -> models.SubCategory:
    _get_or_404(
        db,
        models.ItemCategory,
        company_id=company_id,
        record_id=payload.item_category_id,
        label="Item category",
    )
    _ensure_unique_name(
        db,
        models.SubCategory,
        company_id=company_id,
        name=payload.name,
        label="Sub category",
        scope={"item_category_id": payload.item_category_id},
    )
    category = models.SubCategory(company_id=company_id, **payload.model_dump())
    db.add(category)
    db.flush()
    return category


_CATEGORY_MODELS = {
    "product": (models.ProductCategory, "Product category", None),
    "item": (models.ItemCategory, "Item category", "product_category_id"),
    "sub": (models.SubCategory, "Sub category", "item_category_id"),
}


def update_category(
    db: Session,
    *,
    company_id: str,
    level: str,
    category_id: int,
    payload: schemas.CategoryUpdate,
):
    model, label, parent_column = _CATEGORY_MODELS[level]
    category = _get_or_404(db, model, company_id=company_id, record_id=category_id, label=label)
    values = payload.model_dump(exclude_unset=True)
    if values.get("name"):
        scope = {parent_column: getattr(category, parent_column)} if parent_column else None
        _ensure_unique_name(
            db,
            model,
            company_id=company_id,
            name=values["name"],
            label=label,
            exclude_id=category.id,
            scope=scope,
        )
    _apply_update(category, values)
    db.add(category)
    db.flush()
    return category


def deactivate_category(
    db: Session,
    *,
    company_id: str,
    level: str,
    category_id: int,
    actor_user_id: Optional[str] = None,
):
    model, label, _ = _CATEGORY_MODELS[level]
    category = _get_or_404(db, model, company_id=company_id, record_id=category_id, label=label)
    return _deactivate(
        db,
        category,
        company_id=company_id,
        actor_user_id=actor_user_id,
        entity_type=f"{level}_category",
    )
