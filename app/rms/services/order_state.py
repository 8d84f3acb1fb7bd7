from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from app.rms.core.enums import OrderStatus
from app.rms.core.error_catalog import invalid_state, validation_error

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.SERVED, OrderStatus.CANCELLED}),
    OrderStatus.SERVED: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    # refund / correction path
    OrderStatus.COMPLETED: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.CANCELLED: frozenset(),
}

KITCHEN_ACTIVE_STATUSES = (OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.READY)


def parse_status(value: OrderStatus | str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError as exc:
        raise validation_error(f"Unknown order status: {value}", details={"status": str(value)}) from exc


def can_transition(current: OrderStatus | str, new: OrderStatus | str) -> bool:
    return OrderStatus(new) in ALLOWED_TRANSITIONS[OrderStatus(current)]


def validate_transition(current: OrderStatus | str, new: OrderStatus | str) -> None:
    current = parse_status(current)
    new = parse_status(new)
    if new not in ALLOWED_TRANSITIONS[current]:
        raise invalid_state(
            f"Invalid status transition from {current} to {new}",
            details={"from_status": current.value, "to_status": new.value},
        )


@dataclass(frozen=True)
class TransitionResult:
    previous: OrderStatus
    current: OrderStatus
    paid_at: datetime | None

    @property
    def became_ready(self) -> bool:
        return self.current == OrderStatus.READY


def apply_transition(order, new_status: OrderStatus | str, now: datetime) -> TransitionResult:
    """Move ``order`` to ``new_status`` in place; COMPLETED stamps paid_at once."""
    previous = parse_status(order.status)
    new_status = parse_status(new_status)
    validate_transition(previous, new_status)
    order.status = new_status.value
    if new_status == OrderStatus.COMPLETED and order.paid_at is None:
        order.paid_at = now
    return TransitionResult(previous=previous, current=new_status, paid_at=order.paid_at)
