from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from app.rms.core.enums import DiscountType, OrderStatus, OrderType, SessionType
from app.rms.services.ledger import PaymentStatus
from app.rms.services.pricing import money


class CheckoutRequest(BaseModel):
    order_type: OrderType = OrderType.DINE_IN
    table_name: str | None = Field(default=None, max_length=100)


class QuickSaleItemRequest(BaseModel):
    menu_item_id: UUID
    quantity: int = Field(default=1, ge=1)
    customization_option_ids: list[UUID] = Field(default_factory=list)
    notes: str | None = None


class QuickCheckoutRequest(BaseModel):
    store_id: UUID
    session_type: SessionType
    order_type: OrderType
    items: list[QuickSaleItemRequest] = Field(min_length=1)
    customer_name: str | None = None
    customer_phone: str | None = None


class OrderStatusUpdateRequest(BaseModel):
    status: OrderStatus


class ApplyDiscountRequest(BaseModel):
    discount_type: DiscountType
    discount_value: Decimal
    reason: str | None = None


class PaymentStatusResponse(BaseModel):
    grand_total: Decimal
    total_paid: Decimal
    total_refunded: Decimal
    net_paid: Decimal
    remaining_balance: Decimal
    is_paid_in_full: bool
    payment_count: int
    refund_count: int


class OrderItemCustomizationResponse(BaseModel):
    id: str
    customization_option_id: str
    final_price: Decimal | None


class OrderItemResponse(BaseModel):
    id: str
    menu_item_id: str
    price: Decimal
    quantity: int
    final_price: Decimal
    notes: str | None
    customizations: list[OrderItemCustomizationResponse]


class OrderResponse(BaseModel):
    id: str
    store_id: str
    session_id: str
    order_number: str
    table_name: str | None
    status: OrderStatus
    order_type: OrderType
    sub_total: Decimal
    vat_rate_snapshot: Decimal
    service_charge_rate_snapshot: Decimal
    vat_amount: Decimal
    service_charge_amount: Decimal
    discount_type: DiscountType | None
    discount_value: Decimal | None
    discount_amount: Decimal | None
    discount_reason: str | None
    discount_applied_by: str | None
    discount_applied_at: datetime | None
    grand_total: Decimal
    paid_at: datetime | None
    created_at: datetime
    updated_at: datetime | None
    items: list[OrderItemResponse]
    payment: PaymentStatusResponse


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    limit: int
    total_pages: int


def _optional_money(value) -> Decimal | None:
    return money(value) if value is not None else None


def _optional_str(value) -> str | None:
    return str(value) if value is not None else None


def payment_status_response(status: PaymentStatus) -> PaymentStatusResponse:
    return PaymentStatusResponse(
        grand_total=status.amount_due,
        total_paid=money(status.total_paid),
        total_refunded=money(status.total_refunded),
        net_paid=money(status.net_paid),
        remaining_balance=money(status.remaining_balance),
        is_paid_in_full=status.is_paid_in_full,
        payment_count=status.payment_count,
        refund_count=status.refund_count,
    )


def order_response(view) -> OrderResponse:
    order = view.order
    return OrderResponse(
        id=str(order.id),
        store_id=str(order.store_id),
        session_id=str(order.session_id),
        order_number=order.order_number,
        table_name=order.table_name,
        status=order.status,
        order_type=order.order_type,
        sub_total=money(order.sub_total),
        vat_rate_snapshot=order.vat_rate_snapshot,
        service_charge_rate_snapshot=order.service_charge_rate_snapshot,
        vat_amount=money(order.vat_amount),
        service_charge_amount=money(order.service_charge_amount),
        discount_type=order.discount_type,
        discount_value=order.discount_value,
        discount_amount=_optional_money(order.discount_amount),
        discount_reason=order.discount_reason,
        discount_applied_by=_optional_str(order.discount_applied_by),
        discount_applied_at=order.discount_applied_at,
        grand_total=money(order.grand_total),
        paid_at=order.paid_at,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=[
            OrderItemResponse(
                id=str(item.id),
                menu_item_id=str(item.menu_item_id),
                price=money(item.price),
                quantity=item.quantity,
                final_price=money(item.final_price),
                notes=item.notes,
                customizations=[
                    OrderItemCustomizationResponse(
                        id=str(customization.id),
                        customization_option_id=str(customization.customization_option_id),
                        final_price=_optional_money(customization.final_price),
                    )
                    for customization in item.customizations
                ],
            )
            for item in order.items
        ],
        payment=payment_status_response(view.payment),
    )


def order_list_response(page) -> OrderListResponse:
    return OrderListResponse(
        items=[order_response(view) for view in page.items],
        total=page.total,
        page=page.page,
        limit=page.limit,
        total_pages=page.total_pages,
    )
