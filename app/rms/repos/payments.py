from __future__ import annotations

from collections import defaultdict

from sqlalchemy import select

from app.rms.db.models import Payment, Refund, coerce_uuid


class PaymentRepository:
    def __init__(self, db):
        self.db = db

    def list_payments(self, order_id, *, newest_first: bool = False) -> list[Payment]:
        key = coerce_uuid(order_id)
        order_by = Payment.created_at.desc() if newest_first else Payment.created_at
        stmt = select(Payment).where(Payment.order_id == key).order_by(order_by)
        return list(self.db.execute(stmt).scalars().all())

    def list_refunds(self, order_id, *, newest_first: bool = False) -> list[Refund]:
        key = coerce_uuid(order_id)
        order_by = Refund.created_at.desc() if newest_first else Refund.created_at
        stmt = select(Refund).where(Refund.order_id == key).order_by(order_by)
        return list(self.db.execute(stmt).scalars().all())

    def payments_by_order(self, order_ids) -> dict:
        keys = [coerce_uuid(order_id) for order_id in order_ids]
        grouped: dict = defaultdict(list)
        if not keys:
            return grouped
        stmt = select(Payment).where(Payment.order_id.in_(keys)).order_by(Payment.created_at)
        for payment in self.db.execute(stmt).scalars().all():
            grouped[payment.order_id].append(payment)
        return grouped

    def refunds_by_order(self, order_ids) -> dict:
        keys = [coerce_uuid(order_id) for order_id in order_ids]
        grouped: dict = defaultdict(list)
        if not keys:
            return grouped
        stmt = select(Refund).where(Refund.order_id.in_(keys)).order_by(Refund.created_at)
        for refund in self.db.execute(stmt).scalars().all():
            grouped[refund.order_id].append(refund)
        return grouped

    def add_payment(self, payment: Payment) -> Payment:
        self.db.add(payment)
        self.db.flush()
        return payment

    def add_refund(self, refund: Refund) -> Refund:
        self.db.add(refund)
        self.db.flush()
        return refund
