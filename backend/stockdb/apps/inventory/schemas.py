from __future__ import annotations

from datetime import datetime, date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from . import models


# ---------------------------------------------------------------------------
# SKU CATALOG
# ---------------------------------------------------------------------------


class SkuCreate(BaseModel):
    sku_code: str
    item_name: str
    description: Optional[str] = None
    product_category_id: Optional[int] = None
    item_category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    vendor_id: Optional[int] = None
    brand_id: Optional[int] = None
    model: Optional[str] = None
    hsn_sac_code: Optional[str] = None
    uom: str = "PCS"
    unit_price: Optional[float] = Field(default=None, ge=0)
    min_stock: int = Field(default=0, ge=0)

    @field_validator("sku_code", mode="before")
    @classmethod
    def _normalize_code(cls, value):
        if value is None or not str(value).strip():
            raise ValueError("sku_code is required")
        return str(value).strip().upper()


class SkuUpdate(BaseModel):
    sku_code: Optional[str] = None
    item_name: Optional[str] = None
    description: Optional[str] = None
    product_category_id: Optional[int] = None
    item_category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    vendor_id: Optional[int] = None
    brand_id: Optional[int] = None
    model: Optional[str] = None
    hsn_sac_code: Optional[str] = None
    uom: Optional[str] = None
    unit_price: Optional[float] = Field(default=None, ge=0)
    min_stock: Optional[int] = Field(default=None, ge=0)

    @field_validator("sku_code", "item_name", mode="before")
    @classmethod
    def _not_blank(cls, value):
        if value is not None and not str(value).strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("sku_code")
    @classmethod
    def _upper(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value is not None else None


class SkuRead(SkuCreate):
    id: int
    company_id: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class StockOnHandItem(BaseModel):
    sku_id: int
    sku_code: str
    item_name: str
    quantity: int
    min_stock: int = 0


class StockMovementRead(BaseModel):
    id: int
    sku_id: int
    movement_type: models.StockMovementTypeEnum
    quantity: int
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    occurred_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# INCOMING
# ---------------------------------------------------------------------------


class IncomingItemCreate(BaseModel):
    sku_id: int
    total_quantity: Optional[int] = Field(default=None, ge=0)
    received: int = Field(default=0, ge=0)
    short: int = Field(default=0, ge=0)
    rejected: int = Field(default=0, ge=0)
    unit_price: float = Field(..., gt=0)
    total_value: Optional[float] = Field(default=None, ge=0)
    challan_number: Optional[str] = None
    challan_date: Optional[date] = None

    @model_validator(mode="after")
    def _check_totals(self):
        accounted = self.received + self.short + self.rejected
        if self.total_quantity is None:
            self.total_quantity = accounted
        elif self.total_quantity != accounted:
            raise ValueError("total_quantity must equal received + short + rejected")
        if self.total_quantity <= 0:
            raise ValueError("item quantity must be greater than 0")
        if self.total_value is None:
            self.total_value = round(self.total_quantity * self.unit_price, 2)
        return self


class IncomingInventoryCreate(BaseModel):
    invoice_number: str
    invoice_date: Optional[date] = None
    receiving_date: date
    vendor_id: Optional[int] = None
    brand_id: Optional[int] = None
    received_by: Optional[int] = None
    document_type: models.IncomingDocumentTypeEnum = models.IncomingDocumentTypeEnum.BILL
    status: models.RecordStatusEnum = models.RecordStatusEnum.DRAFT
    reason: Optional[str] = None
    remarks: Optional[str] = None
    items: List[IncomingItemCreate] = Field(..., min_length=1)

    @field_validator("invoice_number", mode="before")
    @classmethod
    def _invoice_required(cls, value):
        if value is None or not str(value).strip():
            raise ValueError("invoice_number is required")
        return str(value).strip()


class IncomingItemRead(BaseModel):
    id: int
    incoming_inventory_id: int
    sku_id: int
    total_quantity: int
    received: int
    short: int
    rejected: int
    short_received: int
    short_closed_at: Optional[datetime] = None
    challan_number: Optional[str] = None
    challan_date: Optional[date] = None
    unit_price: float
    total_value: float

    class Config:
        from_attributes = True


class IncomingInventoryRead(BaseModel):
    id: int
    company_id: str
    invoice_number: str
    invoice_date: Optional[date] = None
    receiving_date: date
    vendor_id: Optional[int] = None
    brand_id: Optional[int] = None
    received_by: Optional[int] = None
    document_type: models.IncomingDocumentTypeEnum
    status: models.RecordStatusEnum
    reason: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime
    items: List[IncomingItemRead] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ShortItemUpdate(BaseModel):
    item_id: int
    received: Optional[int] = Field(default=None, ge=0)
    short: Optional[int] = Field(default=None, ge=0)
    challan_number: Optional[str] = None
    challan_date: Optional[date] = None


class IncomingRecordUpdate(BaseModel):
    """Header fields of an incoming record. Moving a draft to completed posts its stock."""

    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    receiving_date: Optional[date] = None
    vendor_id: Optional[int] = None
    brand_id: Optional[int] = None
    received_by: Optional[int] = None
    status: Optional[models.RecordStatusEnum] = None
    reason: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("invoice_number", mode="before")
    @classmethod
    def _invoice_not_blank(cls, value):
        if value is not None and not str(value).strip():
            raise ValueError("invoice_number must not be blank")
        return str(value).strip() if value is not None else None


class ItemRejectedShortUpdate(BaseModel):
    """Corrects the rejected/short split of one item; `received` takes up the difference."""

    item_id: int
    rejected: Optional[int] = Field(default=None, ge=0)
    short: Optional[int] = Field(default=None, ge=0)
    inspection_date: Optional[date] = None


class MoveToRejectedRequest(BaseModel):
    item_id: int
    quantity: int = Field(..., gt=0)
    inspection_date: Optional[date] = None
    remarks: Optional[str] = None


# ---------------------------------------------------------------------------
# OUTGOING
# ---------------------------------------------------------------------------


class OutgoingItemCreate(BaseModel):
    sku_id: int
    outgoing_quantity: int = Field(..., gt=0)
    unit_price: float = Field(..., gt=0)
    total_value: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _default_value(self):
        if self.total_value is None:
            self.total_value = round(self.outgoing_quantity * self.unit_price, 2)
        return self


class OutgoingInventoryCreate(BaseModel):
    document_type: models.OutgoingDocumentTypeEnum
    document_sub_type: Optional[str] = None
    delivery_challan_sub_type: Optional[str] = None
    invoice_challan_number: str
    invoice_challan_date: date
    docket_number: Optional[str] = None
    transporter_name: Optional[str] = None
    destination_type: models.DestinationTypeEnum
    destination_id: Optional[int] = None
    dispatched_by: Optional[int] = None
    status: models.RecordStatusEnum = models.RecordStatusEnum.DRAFT
    reason: Optional[str] = None
    remarks: Optional[str] = None
    items: List[OutgoingItemCreate] = Field(..., min_length=1)


class OutgoingItemRead(BaseModel):
    id: int
    sku_id: int
    outgoing_quantity: int
    unit_price: float
    total_value: float

    class Config:
        from_attributes = True


class OutgoingInventoryRead(BaseModel):
    id: int
    company_id: str
    document_type: models.OutgoingDocumentTypeEnum
    document_sub_type: Optional[str] = None
    delivery_challan_sub_type: Optional[str] = None
    invoice_challan_number: str
    invoice_challan_date: date
    docket_number: Optional[str] = None
    transporter_name: Optional[str] = None
    destination_type: models.DestinationTypeEnum
    destination_id: Optional[int] = None
    dispatched_by: Optional[int] = None
    status: models.RecordStatusEnum
    reason: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime
    items: List[OutgoingItemRead] = Field(default_factory=list)

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# REJECTED ITEM REPORTS
# ---------------------------------------------------------------------------


class RejectedItemReportCreate(BaseModel):
    sku_id: int
    quantity: int = Field(..., ge=0)
    inspection_date: date
    item_name: Optional[str] = None
    original_invoice_number: Optional[str] = None
    incoming_inventory_id: Optional[int] = None
    incoming_inventory_item_id: Optional[int] = None
    vendor_id: Optional[int] = None
    brand_id: Optional[int] = None
    remarks: Optional[str] = None


class RejectedItemReportUpdate(BaseModel):
    """
    Counter update. `net_rejected` is accepted for compatibility and ignored;
    the stored value is always recomputed from the counters.
    """

    sent_to_vendor: Optional[int] = Field(default=None, ge=0)
    received_back: Optional[int] = Field(default=None, ge=0)
    scrapped: Optional[int] = Field(default=None, ge=0)
    net_rejected: Optional[int] = None
    remarks: Optional[str] = None
    action: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class RejectedItemReportRead(BaseModel):
    id: int
    company_id: str
    report_number: str
    incoming_inventory_id: Optional[int] = None
    incoming_inventory_item_id: Optional[int] = None
    original_invoice_number: Optional[str] = None
    inspection_date: date
    sku_id: int
    sku_code: Optional[str] = None
    item_name: str
    quantity: int
    sent_to_vendor: int
    received_back: int
    scrapped: int
    net_rejected: int
    status: str
    status_color: str
    status_description: str
    vendor_id: Optional[int] = None
    brand_id: Optional[int] = None
    remarks: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# SHORT ITEM REPORTS
# ---------------------------------------------------------------------------


class ShortItemReportRead(BaseModel):
    """Derived from one incoming item; `id` is the incoming item id."""

    id: int
    incoming_inventory_id: int
    incoming_inventory_item_id: int
    invoice_number: str
    invoice_received_date: date
    sku_id: int
    sku_code: Optional[str] = None
    item_name: Optional[str] = None
    short_quantity: int
    received_back: int
    net_rejected: int
    status: str
    status_label: str
    vendor_id: Optional[int] = None
    brand_id: Optional[int] = None
    created_at: datetime


class ShortItemCloseRequest(BaseModel):
    remarks: Optional[str] = None
