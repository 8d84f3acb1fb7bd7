from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Callable, Iterable, Mapping

from app.rms.core.enums import OrderStatus, PaymentMethod, SplitType, parse_enum
from app.rms.core.error_catalog import AppError, ErrorCatalog, invalid_state, not_found, validation_error
from app.rms.core.observability import Observability
from app.rms.core.time_utils import utcnow
from app.rms.db.models import Order, Payment, Refund, coerce_uuid
from app.rms.services.audit import AuditEventPayload, AuditService
from app.rms.services.concurrency import is_lock_timeout
from app.rms.services.ledger import PaymentStatus, payment_status
from app.rms.services.notifications import KitchenNotifier, kitchen_broadcaster
from app.rms.services.order_state import apply_transition
from app.rms.services.orders import announce_status_change, ensure_store
from app.rms.services.permissions import PAYMENT_ROLES, REFUND_ROLES, PermissionChecker
from app.rms.services.pricing import CENT, ZERO, money, to_decimal
from app.rms.services.splits import SplitProposal, propose_split
from app.rms.services.unit_of_work import UnitOfWork


@dataclass(frozen=True)
class SplitDetails:
    split_type: SplitType
    guest_number: int
    metadata: dict | None = None


@dataclass
class PaymentSummary:
    order_id: str
    status: PaymentStatus
    payments: list[Payment]
    refunds: list[Refund]


class PaymentService:
    """Append-only payment and refund recording against the order ledger."""

    def __init__(
        self,
        session_factory,
        *,
        observability: Observability | None = None,
        notifier: KitchenNotifier | None = None,
        audit: AuditService | None = None,
        clock: Callable = utcnow,
    ):
        self.session_factory = session_factory
        self.observability = observability or Observability()
        self.notifier = notifier or KitchenNotifier(kitchen_broadcaster, self.observability)
        self.audit = audit or AuditService(session_factory, self.observability)
        self.clock = clock

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
                self.observability.warning("payment_lock_timeout", operation=operation, error=str(exc))
                raise AppError(ErrorCatalog.LOCK_TIMEOUT, details={"operation": operation}) from exc
            self.observability.error("payment_operation_failed", exc=exc, operation=operation)
            raise AppError(ErrorCatalog.INTERNAL_ERROR, failure_message) from exc

    def _load_order(self, uow: UnitOfWork, order_id, actor_id, allowed_roles, store_id=None, *, lock: bool = False) -> Order:
        order = uow.orders.get_for_update(order_id) if lock else uow.orders.get_by_id(order_id)
        if order is None:
            raise not_found("Order not found", details={"order_id": str(order_id)})
        ensure_store(order, store_id)
        PermissionChecker(uow.stores).require(actor_id, order.store_id, allowed_roles)
        return order

    def _status(self, uow: UnitOfWork, order: Order) -> PaymentStatus:
        return payment_status(
            order.grand_total,
            uow.payments.list_payments(order.id),
            uow.payments.list_refunds(order.id),
        )

    # -- payments -----------------------------------------------------------------

    def record_payment(
        self,
        actor_id,
        order_id,
        amount,
        payment_method,
        *,
        amount_tendered=None,
        transaction_id: str | None = None,
        notes: str | None = None,
        store_id=None,
    ) -> Payment:
        return self._guard(
            "record_payment",
            "Failed to record payment",
            lambda: self._record(
                actor_id,
                order_id,
                amount,
                payment_method,
                amount_tendered=amount_tendered,
                transaction_id=transaction_id,
                notes=notes,
                store_id=store_id,
            ),
        )

    def record_split_payment(
        self,
        actor_id,
        order_id,
        amount,
        payment_method,
        *,
        split_type,
        guest_number: int,
        split_metadata: Mapping | None = None,
        amount_tendered=None,
        transaction_id: str | None = None,
        notes: str | None = None,
        store_id=None,
    ) -> Payment:
        split_type = parse_enum(SplitType, split_type, "split_type")
        if guest_number is None or guest_number < 1:
            raise validation_error("Guest number must be at least 1", details={"guest_number": guest_number})
        split = SplitDetails(
            split_type=split_type,
            guest_number=guest_number,
            metadata=_json_metadata(split_metadata),
        )
        return self._guard(
            "record_split_payment",
            "Failed to record split payment",
            lambda: self._record(
                actor_id,
                order_id,
                amount,
                payment_method,
                amount_tendered=amount_tendered,
                transaction_id=transaction_id,
                notes=notes or f"Split payment - Guest {guest_number}",
                store_id=store_id,
                split=split,
            ),
        )

    def _record(
        self,
        actor_id,
        order_id,
        amount,
        payment_method,
        *,
        amount_tendered,
        transaction_id,
        notes,
        store_id,
        split: SplitDetails | None = None,
    ) -> Payment:
        payment_method = parse_enum(PaymentMethod, payment_method, "payment_method")
        amount = to_decimal(amount)
        with self._uow() as uow:
            order = self._load_order(uow, order_id, actor_id, PAYMENT_ROLES, store_id, lock=True)
            if order.status == OrderStatus.CANCELLED:
                raise invalid_state("Cannot accept payment for cancelled order", details={"order_id": str(order.id)})
            if amount <= ZERO:
                raise validation_error("Payment amount must be positive", details={"amount": format(amount, "f")})
            _ensure_whole_cents(amount, "Payment amount")

            before = self._status(uow, order)
            if before.net_paid + amount > before.amount_due:
                self.observability.warning(
                    "payment_exceeds_balance",
                    order_id=str(order.id),
                    amount_due=before.amount_due,
                    net_paid=before.net_paid,
                    attempted=amount,
                )
                raise validation_error(
                    f"Payment amount exceeds order total. Remaining balance: {money(before.remaining_balance)}, "
                    f"attempted payment: {money(amount)}",
                    details={
                        "remaining_balance": format(money(before.remaining_balance), "f"),
                        "attempted": format(amount, "f"),
                    },
                )

            change = None
            if amount_tendered is not None:
                amount_tendered = to_decimal(amount_tendered)
                _ensure_whole_cents(amount_tendered, "Amount tendered")
                if payment_method != PaymentMethod.CASH:
                    raise validation_error(
                        "amountTendered is only applicable for cash payments",
                        details={"payment_method": payment_method.value},
                    )
                if amount_tendered < amount:
                    raise validation_error(
                        f"Insufficient amount tendered. Required: {money(amount)}, Tendered: {money(amount_tendered)}",
                        details={"amount": format(amount, "f"), "amount_tendered": format(amount_tendered, "f")},
                    )
                change = amount_tendered - amount

            payment = uow.payments.add_payment(
                Payment(
                    order_id=order.id,
                    amount=amount,
                    payment_method=payment_method.value,
                    amount_tendered=amount_tendered,
                    change=change,
                    transaction_id=transaction_id,
                    notes=notes,
                    split_type=split.split_type.value if split else None,
                    split_metadata=split.metadata if split else None,
                    guest_number=split.guest_number if split else None,
                    recorded_by=coerce_uuid(actor_id),
                    created_at=self.clock(),
                )
            )

            after = self._status(uow, order)
            if after.is_paid_in_full:
                self._settle(uow, order)
            uow.orders.save(order)
            self.observability.info(
                "payment_recorded",
                order_id=str(order.id),
                store_id=str(order.store_id),
                payment_id=str(payment.id),
                amount=amount,
                method=payment_method.value,
                split=bool(split),
                payment_count=after.payment_count,
                remaining_balance=after.remaining_balance,
                paid_in_full=after.is_paid_in_full,
            )
            uow.after_commit(
                "audit_payment_recorded",
                partial(self._audit, "payment.record", order, actor_id, "payment", payment.id, _payment_snapshot(payment)),
            )
            return payment

    def _settle(self, uow: UnitOfWork, order: Order) -> None:
        """Paid in full: stamp paid_at once and close out a served order."""
        now = self.clock()
        if order.status == OrderStatus.SERVED:
            result = apply_transition(order, OrderStatus.COMPLETED, now)
            uow.after_commit(
                "status_changed",
                partial(announce_status_change, self.notifier, self.observability, order, result),
            )
        if order.paid_at is None:
            order.paid_at = now

    # -- refunds ------------------------------------------------------------------

    def create_refund(self, actor_id, order_id, amount, reason: str | None = None, *, store_id=None) -> Refund:
        def run():
            refund_amount = to_decimal(amount)
            with self._uow() as uow:
                order = self._load_order(uow, order_id, actor_id, REFUND_ROLES, store_id, lock=True)
                if refund_amount <= ZERO:
                    raise validation_error("Refund amount must be positive", details={"amount": format(refund_amount, "f")})
                _ensure_whole_cents(refund_amount, "Refund amount")
                status = self._status(uow, order)
                if refund_amount > status.net_paid:
                    raise validation_error(
                        f"Refund amount exceeds refundable amount. Available: {money(status.net_paid)}",
                        details={"available": format(money(status.net_paid), "f"), "attempted": format(refund_amount, "f")},
                    )
                refund = uow.payments.add_refund(
                    Refund(
                        order_id=order.id,
                        amount=refund_amount,
                        reason=reason,
                        refunded_by=coerce_uuid(actor_id),
                        created_at=self.clock(),
                    )
                )
                self.observability.info(
                    "refund_created",
                    order_id=str(order.id),
                    store_id=str(order.store_id),
                    refund_id=str(refund.id),
                    amount=refund_amount,
                )
                uow.after_commit(
                    "audit_refund_created",
                    partial(
                        self._audit,
                        "payment.refund",
                        order,
                        actor_id,
                        "refund",
                        refund.id,
                        {
                            "amount": format(refund_amount, "f"),
                            "reason": reason or "No reason provided",
                            "order_id": str(order.id),
                        },
                    ),
                )
                return refund

        return self._guard("create_refund", "Failed to create refund", run)

    # -- reads --------------------------------------------------------------------

    def list_payments(self, actor_id, order_id, *, store_id=None) -> list[Payment]:
        def load():
            with self._uow(read_only=True) as uow:
                order = self._load_order(uow, order_id, actor_id, PAYMENT_ROLES, store_id)
                return uow.payments.list_payments(order.id, newest_first=True)

        return self._guard("list_payments", "Failed to retrieve payments", load)

    def list_refunds(self, actor_id, order_id, *, store_id=None) -> list[Refund]:
        def load():
            with self._uow(read_only=True) as uow:
                order = self._load_order(uow, order_id, actor_id, PAYMENT_ROLES, store_id)
                return uow.payments.list_refunds(order.id, newest_first=True)

        return self._guard("list_refunds", "Failed to retrieve refunds", load)

    def get_payment_summary(self, actor_id, order_id, *, store_id=None) -> PaymentSummary:
        def load():
            with self._uow(read_only=True) as uow:
                order = self._load_order(uow, order_id, actor_id, PAYMENT_ROLES, store_id)
                payments = uow.payments.list_payments(order.id)
                refunds = uow.payments.list_refunds(order.id)
                return PaymentSummary(
                    order_id=str(order.id),
                    status=payment_status(order.grand_total, payments, refunds),
                    payments=payments,
                    refunds=refunds,
                )

        return self._guard("get_payment_summary", "Failed to retrieve payment summary", load)

    def calculate_split(
        self,
        actor_id,
        order_id,
        split_type,
        *,
        guest_count: int | None = None,
        item_assignments: Mapping[str, Iterable[str]] | None = None,
        custom_amounts: Iterable | None = None,
        store_id=None,
    ) -> SplitProposal:
        def load():
            with self._uow(read_only=True) as uow:
                order = self._load_order(uow, order_id, actor_id, PAYMENT_ROLES, store_id)
                items = uow.orders.get_with_items(order.id).items
                status = self._status(uow, order)
                proposal = propose_split(
                    split_type,
                    grand_total=status.amount_due,
                    already_paid=status.net_paid,
                    remaining=status.remaining_balance,
                    order_items=items,
                    guest_count=guest_count,
                    item_assignments=item_assignments,
                    custom_amounts=custom_amounts,
                )
                self.observability.info(
                    "split_calculated",
                    order_id=str(order.id),
                    split_type=proposal.split_type.value,
                    guests=len(proposal.shares),
                    total=proposal.total,
                    remaining=proposal.remaining,
                )
                return proposal

        return self._guard("calculate_split", "Failed to calculate split", load)

    def _audit(self, action: str, order: Order, actor_id, entity_type: str, entity_id, after: dict) -> None:
        self.audit.record_event(
            AuditEventPayload(
                store_id=str(order.store_id),
                actor_id=str(actor_id) if actor_id else None,
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id),
                after=after,
                metadata={"order_id": str(order.id), "order_number": order.order_number},
            )
        )


def _json_metadata(value: Mapping | None) -> dict | None:
    if value is None:
        return None

    def convert(item):
        if isinstance(item, Mapping):
            return {str(key): convert(inner) for key, inner in item.items()}
        if isinstance(item, (list, tuple)):
            return [convert(inner) for inner in item]
        if isinstance(item, (str, int, float, bool)) or item is None:
            return item
        return str(item)

    return convert(value)


def _payment_snapshot(payment: Payment) -> dict:
    return {
        "amount": format(to_decimal(payment.amount), "f"),
        "payment_method": payment.payment_method,
        "split_type": payment.split_type,
        "guest_number": payment.guest_number,
    }


def _ensure_whole_cents(amount, label: str) -> None:
    if not amount.is_finite() or amount != amount.quantize(CENT):
        raise validation_error(
            f"{label} cannot have more than 2 decimal places",
            details={"amount": format(amount, "f")},
        )
