import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import CHAR, TypeDecorator

from app.rms.core.time_utils import utcnow


class GUID(TypeDecorator):
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


class Money(TypeDecorator):
    """Exact decimal column.

    PostgreSQL keeps a NUMERIC; SQLite has no exact decimal type, so values are
    stored as their plain string form and parsed back into ``Decimal``.
    """

    impl = Numeric
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(64))
        return dialect.type_descriptor(self.impl)

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = value if isinstance(value, Decimal) else Decimal(str(value))
        if dialect.name == "sqlite":
            return format(value, "f")
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))


def coerce_uuid(value) -> uuid.UUID | None:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


PRICE = Money(12, 2)
AMOUNT = Money(28, 12)
RATE = Money(8, 6)


class Base(DeclarativeBase):
    pass


class Store(Base):
    __tablename__ = "stores"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    setting = relationship("StoreSetting", back_populates="store", uselist=False)


class StoreSetting(Base):
    __tablename__ = "store_settings"

    store_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("stores.id"), primary_key=True)
    vat_rate: Mapped[Decimal] = mapped_column(RATE, nullable=False, default=Decimal("0"))
    service_charge_rate: Mapped[Decimal] = mapped_column(RATE, nullable=False, default=Decimal("0"))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    store = relationship("Store", back_populates="setting")


class StoreMember(Base):
    __tablename__ = "store_members"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("stores.id"), index=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("store_id", "user_id", name="uq_store_member"),)


class DiningTable(Base):
    __tablename__ = "tables"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("stores.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)


class TableSession(Base):
    __tablename__ = "table_sessions"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("stores.id"), index=True, nullable=False)
    table_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), ForeignKey("tables.id"), nullable=True)
    session_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="ACTIVE")
    session_token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    guest_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    table = relationship("DiningTable")


class MenuItem(Base):
    __tablename__ = "menu_items"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("stores.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    base_price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    customization_groups = relationship("CustomizationGroup", back_populates="menu_item")


class CustomizationGroup(Base):
    __tablename__ = "customization_groups"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    menu_item_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("menu_items.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    menu_item = relationship("MenuItem", back_populates="customization_groups")
    options = relationship("CustomizationOption", back_populates="group")


class CustomizationOption(Base):
    __tablename__ = "customization_options"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    group_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("customization_groups.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    additional_price: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)

    group = relationship("CustomizationGroup", back_populates="options")


class Cart(Base):
    __tablename__ = "carts"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("table_sessions.id"), unique=True, nullable=False)
    store_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("stores.id"), index=True, nullable=False)
    sub_total: Mapped[Decimal] = mapped_column(PRICE, nullable=False, default=Decimal("0"))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    items = relationship("CartItem", back_populates="cart", order_by="CartItem.created_at")


class CartItem(Base):
    __tablename__ = "cart_items"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    cart_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("carts.id"), index=True, nullable=False)
    menu_item_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("menu_items.id"), nullable=False)
    base_price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    cart = relationship("Cart", back_populates="items")
    customizations = relationship("CartItemCustomization", back_populates="cart_item")


class CartItemCustomization(Base):
    __tablename__ = "cart_item_customizations"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    cart_item_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("cart_items.id"), index=True, nullable=False)
    customization_option_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    additional_price: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)

    cart_item = relationship("CartItem", back_populates="customizations")


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("stores.id"), index=True, nullable=False)
    session_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("table_sessions.id"), index=True, nullable=False)
    order_number: Mapped[str] = mapped_column(String(32), nullable=False)
    table_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    order_type: Mapped[str] = mapped_column(String(20), nullable=False)
    sub_total: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    vat_rate_snapshot: Mapped[Decimal] = mapped_column(RATE, nullable=False)
    service_charge_rate_snapshot: Mapped[Decimal] = mapped_column(RATE, nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    service_charge_amount: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    discount_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    discount_value: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)
    discount_amount: Mapped[Decimal | None] = mapped_column(AMOUNT, nullable=True)
    discount_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    discount_applied_by: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    discount_applied_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    grand_total: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, onupdate=utcnow, nullable=True)

    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.created_at")

    __table_args__ = (UniqueConstraint("store_id", "order_number", name="uq_orders_store_order_number"),)


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("orders.id"), index=True, nullable=False)
    menu_item_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("menu_items.id"), nullable=False)
    price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    final_price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    order = relationship("Order", back_populates="items")
    customizations = relationship("OrderItemCustomization", back_populates="order_item")


class OrderItemCustomization(Base):
    __tablename__ = "order_item_customizations"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    order_item_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("order_items.id"), index=True, nullable=False)
    customization_option_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    final_price: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)

    order_item = relationship("OrderItem", back_populates="customizations")


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("orders.id"), index=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    amount_tendered: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)
    change: Mapped[Decimal | None] = mapped_column(PRICE, nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    split_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    split_metadata: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    guest_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    recorded_by: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Refund(Base):
    __tablename__ = "refunds"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("orders.id"), index=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    refunded_by: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class OrderSequence(Base):
    __tablename__ = "order_sequences"

    store_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("stores.id"), primary_key=True)
    business_date: Mapped[date] = mapped_column(Date, primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    actor_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), index=True, nullable=True)
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    before_payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    after_payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    event_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


Index("ix_orders_store_created", Order.store_id, Order.created_at)
Index("ix_orders_store_status", Order.store_id, Order.status)
