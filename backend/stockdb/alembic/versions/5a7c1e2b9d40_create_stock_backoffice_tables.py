"""
Create stock back-office tables.

Revision ID: 5a7c1e2b9d40
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5a7c1e2b9d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _company_fk() -> sa.Column:
    return sa.Column(
        "company_id",
        sa.String(length=36),
        sa.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _user_fk(name: str) -> sa.Column:
    return sa.Column(name, sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


def _timestamps(updated: bool = True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False))
    return cols


def _party_columns():
    return [
        sa.Column("contact_person", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=16), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("gst_number", sa.String(length=15), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("city", sa.String(length=128), nullable=True),
        sa.Column("state", sa.String(length=128), nullable=True),
        sa.Column("pin", sa.String(length=6), nullable=True),
    ]


def _access_flags(view_default: bool):
    return [
        sa.Column("can_view", sa.Boolean(), nullable=False, server_default=sa.true() if view_default else sa.false()),
        sa.Column("can_create", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_edit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_delete", sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


RECORD_STATUS = ("DRAFT", "COMPLETED")


def upgrade() -> None:
    # -- accounts ----------------------------------------------------------
    op.create_table(
        "companies",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("code", sa.String(length=32), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("login_slug", sa.String(length=64), nullable=False, unique=True, index=True),
        sa.Column("gst_number", sa.String(length=15), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _company_fk(),
        sa.Column("email", sa.String(length=255), nullable=False, index=True),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("department", sa.String(length=128), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column(
            "role",
            sa.Enum("SUPERUSER", "ADMIN", "MANAGER", "STOREKEEPER", "VIEW_ONLY", name="account_role_enum"),
            nullable=False,
            index=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        sa.Column("is_superuser", sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("suspended_at", sa.DateTime(timezone=True), nullable=True),
        _user_fk("invited_by_user_id"),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "email", name="uq_users_company_email"),
    )
    op.create_index("idx_users_role_active", "users", ["role", "is_active"])
    op.create_table(
        "user_module_access",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column(
            "module_key",
            sa.Enum(
                "DASHBOARD",
                "SKU",
                "INVENTORY",
                "REPORTS",
                "ACCESS_CONTROL",
                "LIBRARY",
                "PRODUCT_CATEGORY",
                "ITEM_CATEGORY",
                "SUB_CATEGORY",
                name="module_key_enum",
                native_enum=False,
            ),
            nullable=False,
        ),
        *_access_flags(view_default=False),
        sa.UniqueConstraint("user_id", "module_key", name="uq_user_module_access"),
    )

    # -- library -----------------------------------------------------------
    op.create_table(
        "vendors",
        sa.Column("id", sa.Integer(), primary_key=True),
        _company_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("designation", sa.String(length=128), nullable=True),
        *_party_columns(),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "name", name="uq_vendor_company_name"),
    )
    op.create_table(
        "brands",
        sa.Column("id", sa.Integer(), primary_key=True),
        _company_fk(),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "name", name="uq_brand_company_name"),
    )
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True),
        _company_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        *_party_columns(),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "name", name="uq_customer_company_name"),
    )
    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), primary_key=True),
        _company_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("contact_number", sa.String(length=16), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("department", sa.String(length=128), nullable=True),
        sa.Column("designation", sa.String(length=128), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "name", name="uq_team_company_name"),
    )
    op.create_table(
        "product_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        _company_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("company_id", "name", name="uq_product_category_company_name"),
    )
    op.create_table(
        "item_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        _company_fk(),
        sa.Column(
            "product_category_id",
            sa.Integer(),
            sa.ForeignKey("product_categories.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("company_id", "product_category_id", "name", name="uq_item_category_parent_name"),
    )
    op.create_table(
        "sub_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        _company_fk(),
        sa.Column(
            "item_category_id",
            sa.Integer(),
            sa.ForeignKey("item_categories.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("company_id", "item_category_id", "name", name="uq_sub_category_parent_name"),
    )
    op.create_table(
        "user_category_access",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "product_category_id",
            sa.Integer(),
            sa.ForeignKey("product_categories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("item_category_id", sa.Integer(), sa.ForeignKey("item_categories.id", ondelete="CASCADE"), nullable=True),
        sa.Column("sub_category_id", sa.Integer(), sa.ForeignKey("sub_categories.id", ondelete="CASCADE"), nullable=True),
        *_access_flags(view_default=True),
    )
    op.create_index("ix_user_category_access_user", "user_category_access", ["user_id"])

    # -- inventory ---------------------------------------------------------
    op.create_table(
        "skus",
        sa.Column("id", sa.Integer(), primary_key=True),
        _company_fk(),
        sa.Column("sku_code", sa.String(length=64), nullable=False, index=True),
        sa.Column("item_name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("product_category_id", sa.Integer(), sa.ForeignKey("product_categories.id", ondelete="SET NULL"), nullable=True),
        sa.Column("item_category_id", sa.Integer(), sa.ForeignKey("item_categories.id", ondelete="SET NULL"), nullable=True),
        sa.Column("sub_category_id", sa.Integer(), sa.ForeignKey("sub_categories.id", ondelete="SET NULL"), nullable=True),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True),
        sa.Column("brand_id", sa.Integer(), sa.ForeignKey("brands.id", ondelete="SET NULL"), nullable=True),
        sa.Column("model", sa.String(length=128), nullable=True),
        sa.Column("hsn_sac_code", sa.String(length=16), nullable=True),
        sa.Column("uom", sa.String(length=16), nullable=False, server_default="PCS"),
        sa.Column("unit_price", sa.Float(), nullable=True),
        sa.Column("min_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "sku_code", name="uq_sku_company_code"),
    )
    op.create_table(
        "incoming_inventory",
        sa.Column("id", sa.Integer(), primary_key=True),
        _company_fk(),
        sa.Column("invoice_number", sa.String(length=128), nullable=False, index=True),
        sa.Column("invoice_date", sa.Date(), nullable=True),
        sa.Column("receiving_date", sa.Date(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("brand_id", sa.Integer(), sa.ForeignKey("brands.id", ondelete="SET NULL"), nullable=True),
        sa.Column("received_by", sa.Integer(), sa.ForeignKey("teams.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "document_type",
            sa.Enum("BILL", "DELIVERY_CHALLAN", "TRANSFER_NOTE", name="incoming_document_type_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(*RECORD_STATUS, name="incoming_status_enum", native_enum=False),
            nullable=False,
            index=True,
        ),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        _user_fk("created_by_user_id"),
        *_timestamps(),
    )
    op.create_index("ix_incoming_company_receiving_date", "incoming_inventory", ["company_id", "receiving_date"])
    op.create_table(
        "incoming_inventory_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "incoming_inventory_id",
            sa.Integer(),
            sa.ForeignKey("incoming_inventory.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("sku_id", sa.Integer(), sa.ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("total_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("received", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("short", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rejected", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("short_received", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("short_closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("challan_number", sa.String(length=128), nullable=True),
        sa.Column("challan_date", sa.Date(), nullable=True),
        sa.Column("unit_price", sa.Float(), nullable=False),
        sa.Column("total_value", sa.Float(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_table(
        "outgoing_inventory",
        sa.Column("id", sa.Integer(), primary_key=True),
        _company_fk(),
        sa.Column(
            "document_type",
            sa.Enum(
                "SALES_INVOICE",
                "DELIVERY_CHALLAN",
                "TRANSFER_NOTE",
                name="outgoing_document_type_enum",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("document_sub_type", sa.String(length=64), nullable=True),
        sa.Column("delivery_challan_sub_type", sa.String(length=64), nullable=True),
        sa.Column("invoice_challan_number", sa.String(length=128), nullable=False, index=True),
        sa.Column("invoice_challan_date", sa.Date(), nullable=False),
        sa.Column("docket_number", sa.String(length=128), nullable=True),
        sa.Column("transporter_name", sa.String(length=255), nullable=True),
        sa.Column(
            "destination_type",
            sa.Enum("CUSTOMER", "VENDOR", "TEAM", "OTHER", name="destination_type_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("destination_id", sa.Integer(), nullable=True),
        sa.Column("dispatched_by", sa.Integer(), sa.ForeignKey("teams.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.Enum(*RECORD_STATUS, name="outgoing_status_enum", native_enum=False), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        _user_fk("created_by_user_id"),
        *_timestamps(updated=False),
    )
    op.create_table(
        "outgoing_inventory_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "outgoing_inventory_id",
            sa.Integer(),
            sa.ForeignKey("outgoing_inventory.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("sku_id", sa.Integer(), sa.ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("outgoing_quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Float(), nullable=False),
        sa.Column("total_value", sa.Float(), nullable=False, server_default="0"),
    )
    op.create_table(
        "rejected_item_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        _company_fk(),
        sa.Column("report_number", sa.String(length=64), nullable=False),
        sa.Column(
            "incoming_inventory_id",
            sa.Integer(),
            sa.ForeignKey("incoming_inventory.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column(
            "incoming_inventory_item_id",
            sa.Integer(),
            sa.ForeignKey("incoming_inventory_items.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("original_invoice_number", sa.String(length=128), nullable=True, index=True),
        sa.Column("inspection_date", sa.Date(), nullable=False),
        sa.Column("sku_id", sa.Integer(), sa.ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("item_name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("sent_to_vendor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("received_back", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("scrapped", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("net_rejected", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True),
        sa.Column("brand_id", sa.Integer(), sa.ForeignKey("brands.id", ondelete="SET NULL"), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        _user_fk("created_by_user_id"),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "report_number", name="uq_rejected_report_number"),
    )
    op.create_index(
        "ix_rejected_reports_company_inspection",
        "rejected_item_reports",
        ["company_id", "inspection_date"],
    )
    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        _company_fk(),
        sa.Column("sku_id", sa.Integer(), sa.ForeignKey("skus.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column(
            "movement_type",
            sa.Enum("RECEIVE", "ISSUE", name="stock_movement_type_enum", native_enum=False),
            nullable=False,
            index=True,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reference_type", sa.String(length=64), nullable=True),
        sa.Column("reference_id", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        _user_fk("created_by_user_id"),
    )
    op.create_index("ix_stock_movements_company_sku", "stock_movements", ["company_id", "sku_id"])
    op.create_index("ix_stock_movements_reference", "stock_movements", ["reference_type", "reference_id"])

    # -- audit -------------------------------------------------------------
    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _company_fk(),
        sa.Column("entity_type", sa.String(length=64), nullable=False, index=True),
        sa.Column("entity_id", sa.String(length=64), nullable=False, index=True),
        sa.Column("action", sa.String(length=64), nullable=False, index=True),
        sa.Column("actor_user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_audit_events_company_entity",
        "audit_events",
        ["company_id", "entity_type", "entity_id"],
    )
    op.create_index("ix_audit_events_company_action", "audit_events", ["company_id", "action"])
    op.create_index(
        "ix_audit_events_company_time_desc",
        "audit_events",
        ["company_id", sa.text("occurred_at DESC")],
    )


def downgrade() -> None:
    for table in (
        "audit_events",
        "stock_movements",
        "rejected_item_reports",
        "outgoing_inventory_items",
        "outgoing_inventory",
        "incoming_inventory_items",
        "incoming_inventory",
        "skus",
        "user_category_access",
        "sub_categories",
        "item_categories",
        "product_categories",
        "teams",
        "customers",
        "brands",
        "vendors",
        "user_module_access",
        "users",
        "companies",
    ):
        op.drop_table(table)
    sa.Enum(name="account_role_enum").drop(op.get_bind(), checkfirst=True)
