"""orders, payments and refunds ledger

Revision ID: 0001_orders_ledger
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_orders_ledger"
down_revision = None
branch_labels = None
depends_on = None


class GUID(sa.TypeDecorator):
    impl = sa.CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(sa.CHAR(36))


class Money(sa.TypeDecorator):
    impl = sa.Numeric
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(sa.String(64))
        return dialect.type_descriptor(self.impl)


def _price():
    return Money(12, 2)


def _amount():
    return Money(28, 12)


def _rate():
    return Money(8, 6)


def upgrade() -> None:
    op.create_table(
        "stores",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "store_settings",
        sa.Column("store_id", GUID(), sa.ForeignKey("stores.id"), primary_key=True),
        sa.Column("vat_rate", _rate(), nullable=False),
        sa.Column("service_charge_rate", _rate(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "store_members",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("store_id", GUID(), sa.ForeignKey("stores.id"), nullable=False, index=True),
        sa.Column("user_id", GUID(), nullable=False, index=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("store_id", "user_id", name="uq_store_member"),
    )
    op.create_table(
        "tables",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("store_id", GUID(), sa.ForeignKey("stores.id"), nullable=False, index=True),
        sa.Column("name", sa.String(length=100), nullable=False),
    )
    op.create_table(
        "table_sessions",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("store_id", GUID(), sa.ForeignKey("stores.id"), nullable=False, index=True),
        sa.Column("table_id", GUID(), sa.ForeignKey("tables.id"), nullable=True),
        sa.Column("session_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("session_token", sa.String(length=128), nullable=False, unique=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("customer_phone", sa.String(length=50), nullable=True),
        sa.Column("guest_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "menu_items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("store_id", GUID(), sa.ForeignKey("stores.id"), nullable=False, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("base_price", _price(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "customization_groups",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("menu_item_id", GUID(), sa.ForeignKey("menu_items.id"), nullable=False, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
    )
    op.create_table(
        "customization_options",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("group_id", GUID(), sa.ForeignKey("customization_groups.id"), nullable=False, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("additional_price", _price(), nullable=True),
    )
    op.create_table(
        "carts",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("session_id", GUID(), sa.ForeignKey("table_sessions.id"), nullable=False, unique=True),
        sa.Column("store_id", GUID(), sa.ForeignKey("stores.id"), nullable=False, index=True),
        sa.Column("sub_total", _price(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "cart_items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("cart_id", GUID(), sa.ForeignKey("carts.id"), nullable=False, index=True),
        sa.Column("menu_item_id", GUID(), sa.ForeignKey("menu_items.id"), nullable=False),
        sa.Column("base_price", _price(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "cart_item_customizations",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("cart_item_id", GUID(), sa.ForeignKey("cart_items.id"), nullable=False, index=True),
        sa.Column("customization_option_id", GUID(), nullable=False),
        sa.Column("additional_price", _price(), nullable=True),
    )
    op.create_table(
        "orders",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("store_id", GUID(), sa.ForeignKey("stores.id"), nullable=False, index=True),
        sa.Column("session_id", GUID(), sa.ForeignKey("table_sessions.id"), nullable=False, index=True),
        sa.Column("order_number", sa.String(length=32), nullable=False),
        sa.Column("table_name", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("order_type", sa.String(length=20), nullable=False),
        sa.Column("sub_total", _price(), nullable=False),
        sa.Column("vat_rate_snapshot", _rate(), nullable=False),
        sa.Column("service_charge_rate_snapshot", _rate(), nullable=False),
        sa.Column("vat_amount", _amount(), nullable=False),
        sa.Column("service_charge_amount", _amount(), nullable=False),
        sa.Column("discount_type", sa.String(length=20), nullable=True),
        sa.Column("discount_value", _price(), nullable=True),
        sa.Column("discount_amount", _amount(), nullable=True),
        sa.Column("discount_reason", sa.Text(), nullable=True),
        sa.Column("discount_applied_by", GUID(), nullable=True),
        sa.Column("discount_applied_at", sa.DateTime(), nullable=True),
        sa.Column("grand_total", _amount(), nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("store_id", "order_number", name="uq_orders_store_order_number"),
    )
    op.create_index("ix_orders_store_created", "orders", ["store_id", "created_at"], unique=False)
    op.create_index("ix_orders_store_status", "orders", ["store_id", "status"], unique=False)
    op.create_table(
        "order_items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("order_id", GUID(), sa.ForeignKey("orders.id"), nullable=False, index=True),
        sa.Column("menu_item_id", GUID(), sa.ForeignKey("menu_items.id"), nullable=False),
        sa.Column("price", _price(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("final_price", _price(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "order_item_customizations",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("order_item_id", GUID(), sa.ForeignKey("order_items.id"), nullable=False, index=True),
        sa.Column("customization_option_id", GUID(), nullable=False),
        sa.Column("final_price", _price(), nullable=True),
    )
    op.create_table(
        "payments",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("order_id", GUID(), sa.ForeignKey("orders.id"), nullable=False, index=True),
        sa.Column("amount", _price(), nullable=False),
        sa.Column("payment_method", sa.String(length=20), nullable=False),
        sa.Column("amount_tendered", _price(), nullable=True),
        sa.Column("change", _price(), nullable=True),
        sa.Column("transaction_id", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("split_type", sa.String(length=20), nullable=True),
        sa.Column("split_metadata", sa.JSON(), nullable=True),
        sa.Column("guest_number", sa.Integer(), nullable=True),
        sa.Column("recorded_by", GUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "refunds",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("order_id", GUID(), sa.ForeignKey("orders.id"), nullable=False, index=True),
        sa.Column("amount", _price(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("refunded_by", GUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "order_sequences",
        sa.Column("store_id", GUID(), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("business_date", sa.Date(), nullable=False),
        sa.Column("last_value", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("store_id", "business_date", name="pk_order_sequences"),
    )
    op.create_table(
        "audit_events",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("store_id", GUID(), nullable=False, index=True),
        sa.Column("actor_id", GUID(), nullable=True, index=True),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("before_payload", sa.JSON(), nullable=True),
        sa.Column("after_payload", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("order_sequences")
    op.drop_table("refunds")
    op.drop_table("payments")
    op.drop_table("order_item_customizations")
    op.drop_table("order_items")
    op.drop_index("ix_orders_store_status", table_name="orders")
    op.drop_index("ix_orders_store_created", table_name="orders")
    op.drop_table("orders")
    op.drop_table("cart_item_customizations")
    op.drop_table("cart_items")
    op.drop_table("carts")
    op.drop_table("customization_options")
    op.drop_table("customization_groups")
    op.drop_table("menu_items")
    op.drop_table("table_sessions")
    op.drop_table("tables")
    op.drop_table("store_members")
    op.drop_table("store_settings")
    op.drop_table("stores")
