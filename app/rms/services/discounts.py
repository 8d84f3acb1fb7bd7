"""Discount sizing and the role tier each size requires.

The percentage that decides the tier is always taken against the order's
original subtotal, never against an already discounted total.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from app.rms.core.enums import DiscountType, Role, parse_enum
from app.rms.core.error_catalog import validation_error
from app.rms.services.pricing import ZERO, to_decimal

HUNDRED = Decimal("100")
SMALL_DISCOUNT_LIMIT = Decimal("10")
LARGE_DISCOUNT_FLOOR = Decimal("50")

SMALL_DISCOUNT_ROLES = (Role.OWNER, Role.ADMIN, Role.CASHIER)
MEDIUM_DISCOUNT_ROLES = (Role.OWNER, Role.ADMIN)
LARGE_DISCOUNT_ROLES = (Role.OWNER,)
REMOVE_DISCOUNT_ROLES = (Role.OWNER, Role.ADMIN)


@dataclass(frozen=True)
class DiscountTier:
    name: str
    percentage: Decimal
    allowed_roles: tuple[Role, ...]


def compute_discount_amount(discount_type: DiscountType | str, value, sub_total) -> Decimal:
    discount_type = parse_enum(DiscountType, discount_type, "discount_type")
    value = to_decimal(value)
    sub_total = to_decimal(sub_total)
    if discount_type == DiscountType.PERCENTAGE:
        if value <= ZERO or value > HUNDRED:
            raise validation_error(
                "Percentage discount must be greater than 0 and at most 100",
                details={"discount_value": str(value)},
            )
        return sub_total * value / HUNDRED
    if value <= ZERO:
        raise validation_error("Discount amount must be positive", details={"discount_value": str(value)})
    if value > sub_total:
        raise validation_error(
            "Discount amount cannot exceed subtotal",
            details={"discount_value": str(value), "sub_total": str(sub_total)},
        )
    return value


def discount_percentage(discount_amount, sub_total) -> Decimal:
    sub_total = to_decimal(sub_total)
    if sub_total <= ZERO:
        return HUNDRED if to_decimal(discount_amount) > ZERO else ZERO
    return to_decimal(discount_amount) / sub_total * HUNDRED


def required_tier(discount_amount, sub_total) -> DiscountTier:
    percentage = discount_percentage(discount_amount, sub_total)
    if percentage < SMALL_DISCOUNT_LIMIT:
        return DiscountTier("small", percentage, SMALL_DISCOUNT_ROLES)
    if percentage < LARGE_DISCOUNT_FLOOR:
        return DiscountTier("medium", percentage, MEDIUM_DISCOUNT_ROLES)
    return DiscountTier("large", percentage, LARGE_DISCOUNT_ROLES)
