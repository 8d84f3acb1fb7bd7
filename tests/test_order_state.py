from datetime import datetime
from types import SimpleNamespace

import pytest

from app.rms.core.enums import OrderStatus
from app.rms.core.error_catalog import AppError
from app.rms.services.order_state import apply_transition, can_transition, validate_transition

ALLOWED = {
    ("PENDING", "PREPARING"),
    ("PENDING", "CANCELLED"),
    ("PREPARING", "READY"),
    ("PREPARING", "CANCELLED"),
    ("READY", "SERVED"),
    ("READY", "CANCELLED"),
    ("SERVED", "COMPLETED"),
    ("SERVED", "CANCELLED"),
    ("COMPLETED", "CANCELLED"),
}


@pytest.mark.parametrize("current", [status.value for status in OrderStatus])
@pytest.mark.parametrize("new", [status.value for status in OrderStatus])
def test_transition_table(current, new):
    expected = (current, new) in ALLOWED
    assert can_transition(current, new) is expected
    if expected:
        validate_transition(current, new)
    else:
        with pytest.raises(AppError) as exc_info:
            validate_transition(current, new)
        assert exc_info.value.code == "INVALID_STATE"
        assert exc_info.value.message == f"Invalid status transition from {current} to {new}"


def test_completed_sets_paid_at_once():
    first = datetime(2026, 10, 19, 12, 0)
    order = SimpleNamespace(status="SERVED", paid_at=None)
    result = apply_transition(order, "COMPLETED", first)
    assert order.status == "COMPLETED"
    assert order.paid_at == first
    assert result.previous == OrderStatus.SERVED
    assert result.became_ready is False


def test_completed_keeps_existing_paid_at():
    paid = datetime(2026, 10, 19, 11, 0)
    order = SimpleNamespace(status="SERVED", paid_at=paid)
    apply_transition(order, OrderStatus.COMPLETED, datetime(2026, 10, 19, 12, 0))
    assert order.paid_at == paid


def test_ready_transition_is_flagged():
    order = SimpleNamespace(status="PREPARING", paid_at=None)
    assert apply_transition(order, "READY", datetime(2026, 10, 19)).became_ready is True


def test_unknown_status_is_validation_error():
    order = SimpleNamespace(status="PENDING", paid_at=None)
    with pytest.raises(AppError) as exc_info:
        apply_transition(order, "EATEN", datetime(2026, 10, 19))
    assert exc_info.value.code == "VALIDATION_ERROR"
    assert order.status == "PENDING"
