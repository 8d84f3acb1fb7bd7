from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from app.rms.services.pricing import ZERO, money, to_decimal


@dataclass(frozen=True)
class PaymentStatus:
    grand_total: Decimal
    amount_due: Decimal
    total_paid: Decimal
    total_refunded: Decimal
    net_paid: Decimal
    remaining_balance: Decimal
    is_paid_in_full: bool
    payment_count: int
    refund_count: int


def payment_status(grand_total, payments: Iterable, refunds: Iterable) -> PaymentStatus:
    """Reconcile stored payment and refund rows against an order total.

    Always computed from the rows handed in; callers re-read rows on every
    request so there is no running counter to drift out of sync. Payments are
    settled in whole cents, so the balance is measured against the grand
    total rendered to two places.
    """
    grand_total = to_decimal(grand_total)
    amount_due = money(grand_total)
    payments = list(payments)
    refunds = list(refunds)
    total_paid = sum((to_decimal(payment.amount) for payment in payments), ZERO)
    total_refunded = sum((to_decimal(refund.amount) for refund in refunds), ZERO)
    net_paid = total_paid - total_refunded
    return PaymentStatus(
        grand_total=grand_total,
        amount_due=amount_due,
        total_paid=total_paid,
        total_refunded=total_refunded,
        net_paid=net_paid,
        remaining_balance=amount_due - net_paid,
        is_paid_in_full=net_paid >= amount_due,
        payment_count=len(payments),
        refund_count=len(refunds),
    )
