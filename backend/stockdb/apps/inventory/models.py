from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from stockdb.database import Base
from stockdb.apps.reconciliation.ledger import RejectedLedger
from stockdb.apps.reconciliation.status import classify


def _utcnow() -> datetime:
    return datetime.utcnow()


class StockMovementTypeEnum(str, enum.Enum):
    RECEIVE = "RECEIVE"
    ISSUE = "ISSUE"


class IncomingDocumentTypeEnum(str, enum.Enum):
    BILL = "bill"
    DELIVERY_CHALLAN = "delivery_challan"
    TRANSFER_NOTE = "transfer_note"


class OutgoingDocumentTypeEnum(str, enum.Enum):
    SALES_INVOICE = "sales_invoice"
    DELIVERY_CHALLAN = "delivery_challan"
    TRANSFER_NOTE = "transfer_note"


class DestinationTypeEnum(str, enum.Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    TEAM = "team"
    OTHER = "other"


class RecordStatusEnum(str, enum.Enum):
    DRAFT = "draft"
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# CATALOG
# ---------------------------------------------------------------------------


class Sku(Base):
    __tablename__ = "skus"
    __table_args__ = (UniqueConstraint("company_id", "sku_code", name="uq_sku_company_code"),)

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    sku_code = Column(String(64), nullable=False, index=True)
    item_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    product_category_id = Column(Integer, ForeignKey("product_categories.id", ondelete="SET NULL"), nullable=True)
    item_category_id = Column(Integer, ForeignKey("item_categories.id", ondelete="SET NULL"), nullable=True)
    sub_category_id = Column(Integer, ForeignKey("sub_categories.id", ondelete="SET NULL"), nullable=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="SET NULL"), nullable=True)
    model = Column(String(128), nullable=True)
    hsn_sac_code = Column(String(16), nullable=True)
    uom = Column(String(16), nullable=False, default="PCS")
    unit_price = Column(Float, nullable=True)
    min_stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


# ---------------------------------------------------------------------------
# INCOMING
# ---------------------------------------------------------------------------


class IncomingInventory(Base):
    __tablename__ = "incoming_inventory"
    __table_args__ = (
        Index("ix_incoming_company_receiving_date", "company_id", "receiving_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice_number = Column(String(128), nullable=False, index=True)
    invoice_date = Column(Date, nullable=True)
    receiving_date = Column(Date, nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="SET NULL"), nullable=True)
    received_by = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    document_type = Column(
        SAEnum(IncomingDocumentTypeEnum, name="incoming_document_type_enum", native_enum=False),
        nullable=False,
        default=IncomingDocumentTypeEnum.BILL,
    )
    status = Column(
        SAEnum(RecordStatusEnum, name="incoming_status_enum", native_enum=False),
        nullable=False,
        default=RecordStatusEnum.DRAFT,
        index=True,
    )
    reason = Column(String(255), nullable=True)
    remarks = Column(Text, nullable=True)
    created_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    items = relationship(
        "IncomingInventoryItem",
        back_populates="incoming",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="IncomingInventoryItem.id",
    )


class IncomingInventoryItem(Base):
    """
    One SKU line on an incoming record.

    `short` is the outstanding short quantity; `short_received` accumulates
    what has come back since, so the original short is `short + short_received`.
    """

    __tablename__ = "incoming_inventory_items"

    id = Column(Integer, primary_key=True, index=True)
    incoming_inventory_id = Column(
        Integer,
        ForeignKey("incoming_inventory.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sku_id = Column(Integer, ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False, index=True)
    total_quantity = Column(Integer, nullable=False, default=0)
    received = Column(Integer, nullable=False, default=0)
    short = Column(Integer, nullable=False, default=0)
    rejected = Column(Integer, nullable=False, default=0)
    short_received = Column(Integer, nullable=False, default=0)
    short_closed_at = Column(DateTime(timezone=True), nullable=True)
    challan_number = Column(String(128), nullable=True)
    challan_date = Column(Date, nullable=True)
    unit_price = Column(Float, nullable=False)
    total_value = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    incoming = relationship("IncomingInventory", back_populates="items")
    sku = relationship("Sku", lazy="joined")


# ---------------------------------------------------------------------------
# OUTGOING
# ---------------------------------------------------------------------------


class OutgoingInventory(Base):
    __tablename__ = "outgoing_inventory"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    document_type = Column(
        SAEnum(OutgoingDocumentTypeEnum, name="outgoing_document_type_enum", native_enum=False),
        nullable=False,
    )
    document_sub_type = Column(String(64), nullable=True)
    delivery_challan_sub_type = Column(String(64), nullable=True)
    invoice_challan_number = Column(String(128), nullable=False, index=True)
    invoice_challan_date = Column(Date, nullable=False)
    docket_number = Column(String(128), nullable=True)
    transporter_name = Column(String(255), nullable=True)
    destination_type = Column(
        SAEnum(DestinationTypeEnum, name="destination_type_enum", native_enum=False),
        nullable=False,
    )
    destination_id = Column(Integer, nullable=True)
    dispatched_by = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    status = Column(
        SAEnum(RecordStatusEnum, name="outgoing_status_enum", native_enum=False),
        nullable=False,
        default=RecordStatusEnum.DRAFT,
    )
    reason = Column(String(255), nullable=True)
    remarks = Column(Text, nullable=True)
    created_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    items = relationship(
        "OutgoingInventoryItem",
        back_populates="outgoing",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OutgoingInventoryItem.id",
    )


class OutgoingInventoryItem(Base):
    __tablename__ = "outgoing_inventory_items"

    id = Column(Integer, primary_key=True, index=True)
    outgoing_inventory_id = Column(
        Integer,
        ForeignKey("outgoing_inventory.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sku_id = Column(Integer, ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False, index=True)
    outgoing_quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_value = Column(Float, nullable=False, default=0)

    outgoing = relationship("OutgoingInventory", back_populates="items")
    sku = relationship("Sku", lazy="joined")


# ---------------------------------------------------------------------------
# REJECTED ITEM REPORTS
# ---------------------------------------------------------------------------


class RejectedItemReport(Base):
    """
    Disposition ledger for one rejected lot.

    `quantity` is fixed at creation. The three counters only move through
    reconciliation actions; `net_rejected` is recomputed on every write.
    Reports are never deleted.
    """

    __tablename__ = "rejected_item_reports"
    __table_args__ = (
        UniqueConstraint("company_id", "report_number", name="uq_rejected_report_number"),
        Index("ix_rejected_reports_company_inspection", "company_id", "inspection_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    report_number = Column(String(64), nullable=False)
    incoming_inventory_id = Column(
        Integer,
        ForeignKey("incoming_inventory.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    incoming_inventory_item_id = Column(
        Integer,
        ForeignKey("incoming_inventory_items.id", ondelete="SET NULL"),
        nullable=True,
    )
    original_invoice_number = Column(String(128), nullable=True, index=True)
    inspection_date = Column(Date, nullable=False)
    sku_id = Column(Integer, ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False, index=True)
    item_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    sent_to_vendor = Column(Integer, nullable=False, default=0)
    received_back = Column(Integer, nullable=False, default=0)
    scrapped = Column(Integer, nullable=False, default=0)
    net_rejected = Column(Integer, nullable=False, default=0)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="SET NULL"), nullable=True)
    remarks = Column(Text, nullable=True)
    created_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    sku = relationship("Sku", lazy="joined")

    @property
    def ledger(self) -> RejectedLedger:
        return RejectedLedger.from_record(self)

    @property
    def sku_code(self):
        return self.sku.sku_code if self.sku else None

    @property
    def status(self) -> str:
        return classify(self.ledger).status.value

    @property
    def status_color(self) -> str:
        return classify(self.ledger).color

    @property
    def status_description(self) -> str:
        return classify(self.ledger).description


# ---------------------------------------------------------------------------
# STOCK LEDGER
# ---------------------------------------------------------------------------


class StockMovement(Base):
    """Append-only stock ledger. On-hand = sum(RECEIVE) - sum(ISSUE)."""

    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_company_sku", "company_id", "sku_id"),
        Index("ix_stock_movements_reference", "reference_type", "reference_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    sku_id = Column(Integer, ForeignKey("skus.id", ondelete="CASCADE"), nullable=False, index=True)
    movement_type = Column(
        SAEnum(StockMovementTypeEnum, name="stock_movement_type_enum", native_enum=False),
        nullable=False,
        index=True,
    )
    quantity = Column(Integer, nullable=False)
    reference_type = Column(String(64), nullable=True)
    reference_id = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    created_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    sku = relationship("Sku", lazy="joined")
