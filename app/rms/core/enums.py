from enum import StrEnum
from typing import TypeVar

from app.rms.core.error_catalog import validation_error

E = TypeVar("E", bound=StrEnum)


def parse_enum(enum_cls: type[E], value, field: str) -> E:
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise validation_error(
            f"Invalid {field}: {value}. Expected one of: {allowed}",
            details={"field": field, "value": str(value)},
        ) from exc


class Role(StrEnum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    CASHIER = "CASHIER"
    SERVER = "SERVER"
    CHEF = "CHEF"


class OrderStatus(StrEnum):
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"
    SERVED = "SERVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderType(StrEnum):
    DINE_IN = "DINE_IN"
    TAKEAWAY = "TAKEAWAY"
    DELIVERY = "DELIVERY"


class SessionType(StrEnum):
    TABLE = "TABLE"
    COUNTER = "COUNTER"
    PHONE = "PHONE"
    TAKEOUT = "TAKEOUT"


class SessionStatus(StrEnum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class DiscountType(StrEnum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class PaymentMethod(StrEnum):
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    MOBILE_PAYMENT = "MOBILE_PAYMENT"
    OTHER = "OTHER"


class SplitType(StrEnum):
    EVEN = "EVEN"
    BY_ITEM = "BY_ITEM"
    CUSTOM = "CUSTOM"
