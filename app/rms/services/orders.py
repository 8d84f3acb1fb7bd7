from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Iterable

from app.rms.core.config import settings
from app.rms.core.enums import DiscountType, OrderStatus, OrderType, SessionStatus, SessionType, parse_enum
from app.rms.core.error_catalog import (
    AppError,
    ErrorCatalog,
    forbidden,
    invalid_state,
    not_found,
    unauthenticated,
    validation_error,
)
from app.rms.core.observability import Observability
from app.rms.core.time_utils import utcnow
from app.rms.db.models import Order, OrderItem, OrderItemCustomization, coerce_uuid
from app.rms.repos.orders import OrderPageQuery
from app.rms.services.audit import AuditEventPayload, AuditService
from app.rms.services.concurrency import is_lock_timeout, is_order_number_conflict, run_with_retry
from app.rms.services.discounts import REMOVE_DISCOUNT_ROLES, compute_discount_amount, required_tier
from app.rms.services.ledger import PaymentStatus, payment_status
from app.rms.services.notifications import KitchenNotifier, kitchen_broadcaster
from app.rms.services.order_numbers import OrderNumberAllocator
from app.rms.services.order_state import KITCHEN_ACTIVE_STATUSES, TransitionResult, apply_transition, parse_status
from app.rms.services.paging import Page, page_request
from app.rms.services.permissions import (
    CHECKOUT_ROLES,
    QUICK_SALE_ROLES,
    STATUS_UPDATE_ROLES,
    PermissionChecker,
)
from app.rms.services.pricing import ZERO, PricedLine, price, price_line, rates_from_settings, to_decimal
from app.rms.services.sessions import open_quick_sale_session, order_label, session_type_label
from app.rms.services.unit_of_work import UnitOfWork


@dataclass
class OrderView:
    order: Order
    payment: PaymentStatus


@dataclass(frozen=True)
class QuickSaleLine:
    menu_item_id: str
    quantity: int = 1
    customization_option_ids: tuple[str, ...] = field(default_factory=tuple)
    notes: str | None = None


def ensure_store(order: Order, store_id) -> None:
    if store_id is not None and order.store_id != coerce_uuid(store_id):
        raise not_found("Order not found in this store", details={"order_id": str(order.id)})


def announce_status_change(notifier: KitchenNotifier, observability: Observability, order, result: TransitionResult) -> None:
    observability.metrics.increment_status_transition(result.previous.value, result.current.value)
    observability.info(
        "order_status_changed",
        order_id=str(order.id),
        store_id=str(order.store_id),
        from_status=result.previous.value,
        to_status=result.current.value,
    )
    notifier.status_changed(order)
    if result.became_ready:
        notifier.order_ready(order)


class OrderService:
    def __init__(
        self,
        session_factory,
        *,
        observability: Observability | None = None,
        notifier: KitchenNotifier | None = None,
        audit: AuditService | None = None,
        clock: Callable = utcnow,
        timezone_name: str | None = None,
        max_retries: int | None = None,
    ):
        self.session_factory = session_factory
        self.observability = observability or Observability()
        self.notifier = notifier or KitchenNotifier(kitchen_broadcaster, self.observability)
        self.audit = audit or AuditService(session_factory, self.observability)
        self.clock = clock
        self.timezone_name = timezone_name or settings.BUSINESS_TIMEZONE
        self.max_retries = max_retries or settings.ORDER_NUMBER_MAX_RETRIES

    def _uow(self, read_only: bool = False) -> UnitOfWork:
        return UnitOfWork(self.session_factory, self.observability, read_only=read_only)

    def _guard(self, operation: str, failure_message: str, func):
        try:
            return func()
        except AppError:
            raise
        except Exception as exc:
            if is_lock_timeout(exc):
                self.observability.metrics.increment_lock_wait_timeout()
                self.observability.warning("order_lock_timeout", operation=operation, error=str(exc))
                raise AppError(ErrorCatalog.LOCK_TIMEOUT, details={"operation": operation}) from exc
            self.observability.error("order_operation_failed", exc=exc, operation=operation)
            raise AppError(ErrorCatalog.INTERNAL_ERROR, failure_message) from exc

    def _with_order_number_retry(self, func):
        def on_retry(exc, attempt):
            self.observability.metrics.increment_order_number_conflict()
            self.observability.warning("order_number_conflict", attempt=attempt, error=str(exc))

        return run_with_retry(func, attempts=self.max_retries, retry_on=is_order_number_conflict, on_retry=on_retry)

    # -- creation -----------------------------------------------------------------

    def checkout(
        self,
        session_id,
        order_type: OrderType | str = OrderType.DINE_IN,
        *,
        table_name: str | None = None,
        session_token: str | None = None,
        actor_id=None,
    ) -> OrderView:
        order_id = self._guard(
            "checkout",
            "Failed to create order",
            lambda: self._with_order_number_retry(
                lambda: self._checkout_once(session_id, order_type, table_name, session_token, actor_id)
            ),
        )
        return self.get_order(order_id)

    def _checkout_once(self, session_id, order_type, table_name, session_token, actor_id):
        order_type = parse_enum(OrderType, order_type, "order_type")
        with self._uow() as uow:
            session = uow.sessions.get_by_id(session_id)
            if session is None:
                raise not_found("Session not found", details={"session_id": str(session_id)})
            if session.status == SessionStatus.CLOSED:
                raise invalid_state("Session is already closed", details={"session_id": str(session.id)})
            self._authorize_session(uow, session, session_token, actor_id)

            cart = uow.carts.get_by_session_id(session.id)
            if cart is None:
                raise not_found("Cart not found", details={"session_id": str(session.id)})
            if not cart.items:
                raise validation_error("Cart is empty", details={"cart_id": str(cart.id)})

            rates = rates_from_settings(uow.stores.get_settings(session.store_id))
            now = self.clock()
            order_number = self._allocator(uow).next_number(session.store_id, now)
            breakdown = price(cart.sub_total, rates.vat_rate, rates.service_charge_rate)
            order = uow.orders.add(
                Order(
                    store_id=session.store_id,
                    session_id=session.id,
                    order_number=order_number,
                    table_name=order_label(session, table_name),
                    status=OrderStatus.PENDING.value,
                    order_type=order_type.value,
                    sub_total=breakdown.sub_total,
                    vat_rate_snapshot=rates.vat_rate,
                    service_charge_rate_snapshot=rates.service_charge_rate,
                    vat_amount=breakdown.vat_amount,
                    service_charge_amount=breakdown.service_charge_amount,
                    grand_total=breakdown.grand_total,
                    created_at=now,
                )
            )
            for cart_item in cart.items:
                line = price_line(
                    cart_item.menu_item_id,
                    cart_item.base_price,
                    cart_item.quantity,
                    [(selection.customization_option_id, selection.additional_price) for selection in cart_item.customizations],
                    notes=cart_item.notes,
                )
                self._persist_line(uow, order, line)
            # Cleared last so any failure above leaves the cart as it was.
            uow.carts.clear(cart)
            uow.after_commit("order_created", partial(self._announce_created, order, "checkout", actor_id))
            return order.id

    def quick_checkout(
        self,
        actor_id,
        store_id,
        session_type: SessionType | str,
        order_type: OrderType | str,
        items: Iterable[QuickSaleLine],
        *,
        customer_name: str | None = None,
        customer_phone: str | None = None,
    ) -> OrderView:
        items = list(items)
        order_id = self._guard(
            "quick_checkout",
            "Failed to create order",
            lambda: self._with_order_number_retry(
                lambda: self._quick_checkout_once(
                    actor_id,
                    store_id,
                    session_type,
                    order_type,
                    items,
                    customer_name,
                    customer_phone,
                )
            ),
        )
        return self.get_order(order_id)

    def _quick_checkout_once(self, actor_id, store_id, session_type, order_type, items, customer_name, customer_phone):
        with self._uow() as uow:
            PermissionChecker(uow.stores).require(actor_id, store_id, QUICK_SALE_ROLES)
            session_type = parse_enum(SessionType, session_type, "session_type")
            order_type = parse_enum(OrderType, order_type, "order_type")
            if session_type == SessionType.TABLE:
                raise validation_error(
                    "Quick checkout cannot be used with TABLE session type. Use the regular checkout flow.",
                    details={"session_type": session_type.value},
                )
            if not items:
                raise validation_error("At least one item is required")
            for item in items:
                if item.quantity < 1:
                    raise validation_error(
                        "Quantity must be at least 1",
                        details={"menu_item_id": str(item.menu_item_id), "quantity": item.quantity},
                    )
                for option_id in item.customization_option_ids:
                    if coerce_uuid(option_id) is None:
                        raise validation_error(
                            "Invalid customization option id",
                            details={"customization_option_id": str(option_id)},
                        )

            rates = rates_from_settings(uow.stores.get_settings(store_id))
            requested_ids = list(dict.fromkeys(str(item.menu_item_id) for item in items))
            menu_items = {str(menu_item.id): menu_item for menu_item in uow.menu.get_available_items(store_id, requested_ids)}
            missing = [menu_item_id for menu_item_id in requested_ids if _menu_key(menu_item_id) not in menu_items]
            if missing:
                raise not_found(f"Menu items not found: {', '.join(missing)}", details={"menu_item_ids": missing})

            lines = []
            for item in items:
                menu_item = menu_items[_menu_key(item.menu_item_id)]
                option_prices = _option_prices(menu_item)
                lines.append(
                    price_line(
                        menu_item.id,
                        menu_item.base_price,
                        item.quantity,
                        [
                            (option_id, option_prices.get(_menu_key(option_id)))
                            for option_id in item.customization_option_ids
                        ],
                        notes=item.notes,
                    )
                )
            sub_total = sum((line.final_price for line in lines), ZERO)

            now = self.clock()
            session = open_quick_sale_session(
                uow.sessions,
                store_id=store_id,
                session_type=session_type,
                now=now,
                customer_name=customer_name,
                customer_phone=customer_phone,
            )
            order_number = self._allocator(uow).next_number(session.store_id, now)
            breakdown = price(sub_total, rates.vat_rate, rates.service_charge_rate)
            order = uow.orders.add(
                Order(
                    store_id=session.store_id,
                    session_id=session.id,
                    order_number=order_number,
                    table_name=session_type_label(session_type),
                    status=OrderStatus.PENDING.value,
                    order_type=order_type.value,
                    sub_total=breakdown.sub_total,
                    vat_rate_snapshot=rates.vat_rate,
                    service_charge_rate_snapshot=rates.service_charge_rate,
                    vat_amount=breakdown.vat_amount,
                    service_charge_amount=breakdown.service_charge_amount,
                    grand_total=breakdown.grand_total,
                    created_at=now,
                )
            )
            for line in lines:
                self._persist_line(uow, order, line)
            uow.after_commit("order_created", partial(self._announce_created, order, "quick_sale", actor_id))
            return order.id

    def _authorize_session(self, uow: UnitOfWork, session, session_token: str | None, actor_id) -> None:
        """Either the guest's session token or a staff member of the session's store."""
        if session_token and session.session_token != session_token:
            self.observability.warning("session_token_mismatch", session_id=str(session.id))
            raise forbidden("Invalid session token")
        if actor_id:
            PermissionChecker(uow.stores).require(actor_id, session.store_id, CHECKOUT_ROLES)
        if not session_token and not actor_id:
            self.observability.warning("session_unauthenticated", session_id=str(session.id))
            raise unauthenticated("Authentication required: Provide session token or JWT")

    def _allocator(self, uow: UnitOfWork) -> OrderNumberAllocator:
        return OrderNumberAllocator(uow.sequences, uow.orders, self.timezone_name)

    def _persist_line(self, uow: UnitOfWork, order: Order, line: PricedLine) -> None:
        uow.orders.add_item(
            OrderItem(
                order_id=order.id,
                menu_item_id=coerce_uuid(line.menu_item_id),
                price=line.unit_price,
                quantity=line.quantity,
                final_price=line.final_price,
                notes=line.notes,
            ),
            [
                OrderItemCustomization(
                    customization_option_id=coerce_uuid(customization.option_id),
                    final_price=customization.final_price,
                )
                for customization in line.customizations
            ],
        )

    def _announce_created(self, order: Order, channel: str, actor_id) -> None:
        self.observability.metrics.increment_orders_created(channel)
        self.observability.info(
            "order_created",
            order_id=str(order.id),
            order_number=order.order_number,
            store_id=str(order.store_id),
            session_id=str(order.session_id),
            channel=channel,
            actor_id=str(actor_id) if actor_id else None,
        )
        self.notifier.order_created(order)

    # -- reads --------------------------------------------------------------------

    def get_order(self, order_id, store_id=None) -> OrderView:
        def load():
            with self._uow(read_only=True) as uow:
                order = uow.orders.get_with_items(order_id)
                if order is None:
                    raise not_found("Order not found", details={"order_id": str(order_id)})
                ensure_store(order, store_id)
                return self._view(uow, order)

        return self._guard("get_order", "Failed to retrieve order", load)

    def get_payment_status(self, order_id, store_id=None) -> PaymentStatus:
        def load():
            with self._uow(read_only=True) as uow:
                order = uow.orders.get_by_id(order_id)
                if order is None:
                    raise not_found("Order not found", details={"order_id": str(order_id)})
                ensure_store(order, store_id)
                return self._view(uow, order).payment

        return self._guard("get_payment_status", "Failed to retrieve payment status", load)

    def list_orders(self, store_id, page: int | None = None, limit: int | None = None) -> Page:
        request = page_request(page, limit)

        def load():
            with self._uow(read_only=True) as uow:
                rows, total = uow.orders.list_by_store(
                    OrderPageQuery(store_id=store_id, offset=request.offset, limit=request.limit)
                )
                return Page(items=self._views(uow, rows), total=total, page=request.page, limit=request.limit)

        return self._guard("list_orders", "Failed to retrieve orders", load)

    def list_kitchen_orders(
        self,
        store_id,
        statuses: Iterable[str] | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page:
        request = page_request(page, limit)
        selected = tuple(parse_status(value).value for value in statuses) if statuses else ()
        selected = selected or tuple(status.value for status in KITCHEN_ACTIVE_STATUSES)

        def load():
            with self._uow(read_only=True) as uow:
                rows, total = uow.orders.list_for_kitchen(
                    OrderPageQuery(store_id=store_id, offset=request.offset, limit=request.limit, statuses=selected)
                )
                return Page(items=self._views(uow, rows), total=total, page=request.page, limit=request.limit)

        return self._guard("list_kitchen_orders", "Failed to retrieve kitchen orders", load)

    def list_session_orders(self, session_id, *, session_token: str | None = None, actor_id=None) -> list[OrderView]:
        def load():
            with self._uow(read_only=True) as uow:
                session = uow.sessions.get_by_id(session_id)
                if session is None:
                    raise not_found("Session not found", details={"session_id": str(session_id)})
                self._authorize_session(uow, session, session_token, actor_id)
                return self._views(uow, uow.orders.list_by_session(session.id))

        return self._guard("list_session_orders", "Failed to retrieve session orders", load)

    def _view(self, uow: UnitOfWork, order: Order) -> OrderView:
        status = payment_status(
            order.grand_total,
            uow.payments.list_payments(order.id),
            uow.payments.list_refunds(order.id),
        )
        return OrderView(order=order, payment=status)

    def _views(self, uow: UnitOfWork, orders: list[Order]) -> list[OrderView]:
        order_ids = [order.id for order in orders]
        payments = uow.payments.payments_by_order(order_ids)
        refunds = uow.payments.refunds_by_order(order_ids)
        return [
            OrderView(order=order, payment=payment_status(order.grand_total, payments[order.id], refunds[order.id]))
            for order in orders
        ]

    # -- mutations ----------------------------------------------------------------

    def update_status(self, order_id, new_status, *, actor_id=None, store_id=None) -> OrderView:
        def run():
            with self._uow() as uow:
                order = uow.orders.get_for_update(order_id)
                if order is None:
                    raise not_found("Order not found", details={"order_id": str(order_id)})
                ensure_store(order, store_id)
                if actor_id:
                    PermissionChecker(uow.stores).require(actor_id, order.store_id, STATUS_UPDATE_ROLES)
                result = apply_transition(order, new_status, self.clock())
                uow.orders.save(order)
                uow.after_commit(
                    "status_changed",
                    partial(announce_status_change, self.notifier, self.observability, order, result),
                )
                return order.id

        return self.get_order(self._guard("update_status", "Failed to update order status", run))

    def apply_discount(self, actor_id, store_id, order_id, discount_type, discount_value, reason: str | None = None) -> OrderView:
        def run():
            with self._uow() as uow:
                order = self._load_for_discount(uow, order_id, store_id)
                self._ensure_not_paid(uow, order, "Cannot apply discount to fully paid order")
                amount = compute_discount_amount(discount_type, discount_value, order.sub_total)
                tier = required_tier(amount, order.sub_total)
                PermissionChecker(uow.stores).require(actor_id, order.store_id, tier.allowed_roles)
                before = _discount_snapshot(order)
                breakdown = price(
                    order.sub_total,
                    order.vat_rate_snapshot,
                    order.service_charge_rate_snapshot,
                    amount,
                )
                order.discount_type = parse_enum(DiscountType, discount_type, "discount_type").value
                order.discount_value = to_decimal(discount_value)
                order.discount_amount = breakdown.discount_amount
                order.discount_reason = reason
                order.discount_applied_by = coerce_uuid(actor_id)
                order.discount_applied_at = self.clock()
                _apply_breakdown(order, breakdown)
                uow.orders.save(order)
                uow.after_commit(
                    "audit_discount_applied",
                    partial(
                        self._audit_discount,
                        "order.discount.apply",
                        order,
                        actor_id,
                        before,
                        {"tier": tier.name, "percentage": str(tier.percentage)},
                    ),
                )
                return order.id

        return self.get_order(self._guard("apply_discount", "Failed to apply discount", run))

    def remove_discount(self, actor_id, store_id, order_id) -> OrderView:
        """Totals go back to the stored subtotal under the order's own rate snapshots."""

        def run():
            with self._uow() as uow:
                order = self._load_for_discount(uow, order_id, store_id)
                self._ensure_not_paid(uow, order, "Cannot remove discount from fully paid order")
                PermissionChecker(uow.stores).require(actor_id, order.store_id, REMOVE_DISCOUNT_ROLES)
                before = _discount_snapshot(order)
                breakdown = price(order.sub_total, order.vat_rate_snapshot, order.service_charge_rate_snapshot)
                order.discount_type = None
                order.discount_value = None
                order.discount_amount = None
                order.discount_reason = None
                order.discount_applied_by = None
                order.discount_applied_at = None
                _apply_breakdown(order, breakdown)
                uow.orders.save(order)
                uow.after_commit(
                    "audit_discount_removed",
                    partial(self._audit_discount, "order.discount.remove", order, actor_id, before, None),
                )
                return order.id

        return self.get_order(self._guard("remove_discount", "Failed to remove discount", run))

    def _load_for_discount(self, uow: UnitOfWork, order_id, store_id) -> Order:
        order = uow.orders.get_for_update(order_id)
        if order is None:
            raise not_found("Order not found in this store", details={"order_id": str(order_id)})
        ensure_store(order, store_id)
        return order

    def _ensure_not_paid(self, uow: UnitOfWork, order: Order, message: str) -> None:
        if self._view(uow, order).payment.is_paid_in_full:
            raise invalid_state(message, details={"order_id": str(order.id)})

    def _audit_discount(self, action: str, order: Order, actor_id, before: dict, metadata: dict | None) -> None:
        self.audit.record_event(
            AuditEventPayload(
                store_id=str(order.store_id),
                actor_id=str(actor_id) if actor_id else None,
                action=action,
                entity_type="order",
                entity_id=str(order.id),
                before=before,
                after=_discount_snapshot(order),
                metadata=metadata,
            )
        )


def _menu_key(value) -> str:
    key = coerce_uuid(value)
    return str(key) if key is not None else str(value)


def _option_prices(menu_item) -> dict:
    return {
        str(option.id): option.additional_price
        for group in menu_item.customization_groups
        for option in group.options
    }


def _apply_breakdown(order: Order, breakdown) -> None:
    order.vat_amount = breakdown.vat_amount
    order.service_charge_amount = breakdown.service_charge_amount
    order.grand_total = breakdown.grand_total


def _discount_snapshot(order: Order) -> dict:
    def text(value):
        return format(to_decimal(value), "f") if value is not None else None

    return {
        "discount_type": order.discount_type,
        "discount_value": text(order.discount_value),
        "discount_amount": text(order.discount_amount),
        "vat_amount": text(order.vat_amount),
        "service_charge_amount": text(order.service_charge_amount),
        "grand_total": text(order.grand_total),
    }
