from decimal import Decimal

import pytest

from app.rms.core.enums import Role
from app.rms.core.error_catalog import AppError
from app.rms.services.discounts import compute_discount_amount, discount_percentage, required_tier


@pytest.mark.parametrize(
    ("amount", "tier", "roles"),
    [
        ("9.99", "small", {Role.OWNER, Role.ADMIN, Role.CASHIER}),
        ("10", "medium", {Role.OWNER, Role.ADMIN}),
        ("49.99", "medium", {Role.OWNER, Role.ADMIN}),
        ("50", "large", {Role.OWNER}),
        ("100", "large", {Role.OWNER}),
    ],
)
def test_tier_boundaries(amount, tier, roles):
    result = required_tier(Decimal(amount), Decimal("100"))
    assert result.name == tier
    assert set(result.allowed_roles) == roles


def test_percentage_is_measured_against_original_subtotal():
    assert discount_percentage(Decimal("25"), Decimal("200")) == Decimal("12.5")
    assert required_tier(Decimal("25"), Decimal("200")).name == "medium"


def test_percentage_discount_amount():
    assert compute_discount_amount("PERCENTAGE", Decimal("15"), Decimal("80.00")) == Decimal("12")


def test_fixed_discount_amount_is_the_value():
    assert compute_discount_amount("FIXED_AMOUNT", Decimal("5.25"), Decimal("80.00")) == Decimal("5.25")


@pytest.mark.parametrize(
    ("discount_type", "value", "message"),
    [
        ("PERCENTAGE", "0", "Percentage discount must be greater than 0 and at most 100"),
        ("PERCENTAGE", "100.01", "Percentage discount must be greater than 0 and at most 100"),
        ("FIXED_AMOUNT", "0", "Discount amount must be positive"),
        ("FIXED_AMOUNT", "-1", "Discount amount must be positive"),
        ("FIXED_AMOUNT", "80.01", "Discount amount cannot exceed subtotal"),
    ],
)
def test_invalid_discount_values(discount_type, value, message):
    with pytest.raises(AppError) as exc_info:
        compute_discount_amount(discount_type, Decimal(value), Decimal("80.00"))
    assert exc_info.value.code == "VALIDATION_ERROR"
    assert exc_info.value.message == message


def test_full_percentage_and_full_fixed_are_allowed():
    assert compute_discount_amount("PERCENTAGE", Decimal("100"), Decimal("80.00")) == Decimal("80.00")
    assert compute_discount_amount("FIXED_AMOUNT", Decimal("80.00"), Decimal("80.00")) == Decimal("80.00")


def test_unknown_discount_type_is_validation_error():
    with pytest.raises(AppError) as exc_info:
        compute_discount_amount("BOGO", Decimal("1"), Decimal("10"))
    assert exc_info.value.code == "VALIDATION_ERROR"
    assert "Invalid discount_type: BOGO" in exc_info.value.message
