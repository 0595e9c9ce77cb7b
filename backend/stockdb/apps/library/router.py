from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockdb.apps.accounts.models import ModuleKey, PermissionAction
from stockdb.context import SessionContext
from stockdb.database import get_db
from stockdb.permissions import require_module_access

from . import models, schemas, services

router = APIRouter(tags=["library"])


def _library(action: PermissionAction):
    return require_module_access(ModuleKey.LIBRARY, action)


# ---------------------------------------------------------------------------
# VENDORS
# ---------------------------------------------------------------------------


@router.get("/library/vendors", response_model=List[schemas.VendorRead])
def list_vendors(
    search: Optional[str] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.VIEW)),
):
    return services.list_records(
        db, models.Vendor, company_id=ctx.company_id, search=search, include_inactive=include_inactive
    )


@router.post("/library/vendors", response_model=schemas.VendorRead, status_code=status.HTTP_201_CREATED)
def create_vendor(
    payload: schemas.VendorCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.CREATE)),
):
    vendor = services.create_vendor(db, company_id=ctx.company_id, payload=payload, actor_user_id=ctx.user_id)
    db.commit()
    db.refresh(vendor)
    return vendor


@router.put("/library/vendors/{vendor_id}", response_model=schemas.VendorRead)
def update_vendor(
    vendor_id: int,
    payload: schemas.VendorUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.EDIT)),
):
    vendor = services.update_vendor(
        db, company_id=ctx.company_id, vendor_id=vendor_id, payload=payload, actor_user_id=ctx.user_id
    )
    db.commit()
    db.refresh(vendor)
    return vendor


@router.delete("/library/vendors/{vendor_id}", response_model=schemas.VendorRead)
def delete_vendor(
    vendor_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.DELETE)),
):
    vendor = services.deactivate_vendor(db, company_id=ctx.company_id, vendor_id=vendor_id, actor_user_id=ctx.user_id)
    db.commit()
    db.refresh(vendor)
    return vendor


# ---------------------------------------------------------------------------
# BRANDS
# ---------------------------------------------------------------------------


@router.get("/library/brands", response_model=List[schemas.BrandRead])
def list_brands(
    search: Optional[str] = None,
    vendor_id: Optional[int] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.VIEW)),
):
    return services.list_records(
        db,
        models.Brand,
        company_id=ctx.company_id,
        search=search,
        include_inactive=include_inactive,
        vendor_id=vendor_id,
    )


@router.post("/library/brands", response_model=schemas.BrandRead, status_code=status.HTTP_201_CREATED)
def create_brand(
    payload: schemas.BrandCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.CREATE)),
):
    brand = services.create_brand(db, company_id=ctx.company_id, payload=payload)
    db.commit()
    db.refresh(brand)
    return brand


@router.put("/library/brands/{brand_id}", response_model=schemas.BrandRead)
def update_brand(
    brand_id: int,
    payload: schemas.BrandUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.EDIT)),
):
    brand = services.update_brand(db, company_id=ctx.company_id, brand_id=brand_id, payload=payload)
    db.commit()
    db.refresh(brand)
    return brand


@router.delete("/library/brands/{brand_id}", response_model=schemas.BrandRead)
def delete_brand(
    brand_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.DELETE)),
):
    brand = services.deactivate_brand(db, company_id=ctx.company_id, brand_id=brand_id, actor_user_id=ctx.user_id)
    db.commit()
    db.refresh(brand)
    return brand


# ---------------------------------------------------------------------------
# CUSTOMERS
# ---------------------------------------------------------------------------


@router.get("/library/customers", response_model=List[schemas.CustomerRead])
def list_customers(
    search: Optional[str] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.VIEW)),
):
    return services.list_records(
        db, models.Customer, company_id=ctx.company_id, search=search, include_inactive=include_inactive
    )


@router.post("/library/customers", response_model=schemas.CustomerRead, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: schemas.CustomerCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.CREATE)),
):
    customer = services.create_customer(db, company_id=ctx.company_id, payload=payload)
    db.commit()
    db.refresh(customer)
    return customer


@router.put("/library/customers/{customer_id}", response_model=schemas.CustomerRead)
def update_customer(
    customer_id: int,
    payload: schemas.CustomerUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.EDIT)),
):
    customer = services.update_customer(db, company_id=ctx.company_id, customer_id=customer_id, payload=payload)
    db.commit()
    db.refresh(customer)
    return customer


@router.delete("/library/customers/{customer_id}", response_model=schemas.CustomerRead)
def delete_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.DELETE)),
):
    customer = services.deactivate_customer(
        db, company_id=ctx.company_id, customer_id=customer_id, actor_user_id=ctx.user_id
    )
    db.commit()
    db.refresh(customer)
    return customer


# ---------------------------------------------------------------------------
# TEAMS
# ---------------------------------------------------------------------------


@router.get("/library/teams", response_model=List[schemas.TeamRead])
def list_teams(
    search: Optional[str] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.VIEW)),
):
    return services.list_records(
        db, models.Team, company_id=ctx.company_id, search=search, include_inactive=include_inactive
    )


@router.post("/library/teams", response_model=schemas.TeamRead, status_code=status.HTTP_201_CREATED)
def create_team(
    payload: schemas.TeamCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.CREATE)),
):
    team = services.create_team(db, company_id=ctx.company_id, payload=payload)
    db.commit()
    db.refresh(team)
    return team


@router.put("/library/teams/{team_id}", response_model=schemas.TeamRead)
def update_team(
    team_id: int,
    payload: schemas.TeamUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.EDIT)),
):
    team = services.update_team(db, company_id=ctx.company_id, team_id=team_id, payload=payload)
    db.commit()
    db.refresh(team)
    return team


@router.delete("/library/teams/{team_id}", response_model=schemas.TeamRead)
def delete_team(
    team_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(_library(PermissionAction.DELETE)),
):
    team = services.deactivate_team(db, company_id=ctx.company_id, team_id=team_id, actor_user_id=ctx.user_id)
    db.commit()
    db.refresh(team)
    return team


# ---------------------------------------------------------------------------
# CATEGORIES
# ---------------------------------------------------------------------------


@router.get("/categories/product", response_model=List[schemas.ProductCategoryRead])
def list_product_categories(
    search: Optional[str] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_module_access(ModuleKey.PRODUCT_CATEGORY, PermissionAction.VIEW)),
):
    return services.list_records(
        db, models.ProductCategory, company_id=ctx.company_id, search=search, include_inactive=include_inactive
    )


@router.post(
    "/categories/product",
    response_model=schemas.ProductCategoryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_product_category(
    payload: schemas.CategoryCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_module_access(ModuleKey.PRODUCT_CATEGORY, PermissionAction.CREATE)),
):
    category = services.create_product_category(db, company_id=ctx.company_id, payload=payload)
    db.commit()
    db.refresh(category)
    return category


@router.get("/categories/item", response_model=List[schemas.ItemCategoryRead])
def list_item_categories(
    product_category_id: Optional[int] = None,
    search: Optional[str] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_module_access(ModuleKey.ITEM_CATEGORY, PermissionAction.VIEW)),
):
    return services.list_records(
        db,
        models.ItemCategory,
        company_id=ctx.company_id,
        search=search,
        include_inactive=include_inactive,
        product_category_id=product_category_id,
    )


@router.post(
    "/categories/item",
    response_model=schemas.ItemCategoryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_item_category(
    payload: schemas.ItemCategoryCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_module_access(ModuleKey.ITEM_CATEGORY, PermissionAction.CREATE)),
):
    category = services.create_item_category(db, company_id=ctx.company_id, payload=payload)
    db.commit()
    db.refresh(category)
    return category


@router.get("/categories/sub", response_model=List[schemas.SubCategoryRead])
def list_sub_categories(
    item_category_id: Optional[int] = None,
    search: Optional[str] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_module_access(ModuleKey.SUB_CATEGORY, PermissionAction.VIEW)),
):
    return services.list_records(
        db,
        models.SubCategory,
        company_id=ctx.company_id,
        search=search,
        include_inactive=include_inactive,
        item_category_id=item_category_id,
    )


@router.post(
    "/categories/sub",
    response_model=schemas.SubCategoryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_sub_category(
    payload: schemas.SubCategoryCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_module_access(ModuleKey.SUB_CATEGORY, PermissionAction.CREATE)),
):
    category = services.create_sub_category(db, company_id=ctx.company_id, payload=payload)
    db.commit()
    db.refresh(category)
    return category


_CATEGORY_MODULES = {
    "product": ModuleKey.PRODUCT_CATEGORY,
    "item": ModuleKey.ITEM_CATEGORY,
    "sub": ModuleKey.SUB_CATEGORY,
}


def _category_access(level: str, action: PermissionAction):
    return require_module_access(_CATEGORY_MODULES[level], action)


def _register_category_mutations(level: str, read_schema) -> None:
    @router.put(f"/categories/{level}/{{category_id}}", response_model=read_schema, name=f"update_{level}_category")
    def update_category(
        category_id: int,
        payload: schemas.CategoryUpdate,
        db: Session = Depends(get_db),
        ctx: SessionContext = Depends(_category_access(level, PermissionAction.EDIT)),
    ):
        category = services.update_category(
            db, company_id=ctx.company_id, level=level, category_id=category_id, payload=payload
        )
        db.commit()
        db.refresh(category)
        return category

    @router.delete(f"/categories/{level}/{{category_id}}", response_model=read_schema, name=f"delete_{level}_category")
    def delete_category(
        category_id: int,
        db: Session = Depends(get_db),
        ctx: SessionContext = Depends(_category_access(level, PermissionAction.DELETE)),
    ):
        category = services.deactivate_category(
            db, company_id=ctx.company_id, level=level, category_id=category_id, actor_user_id=ctx.user_id
        )
        db.commit()
        db.refresh(category)
        return category


_register_category_mutations("product", schemas.ProductCategoryRead)
_register_category_mutations("item", schemas.ItemCategoryRead)
_register_category_mutations("sub", schemas.SubCategoryRead)
