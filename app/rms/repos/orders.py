from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from sqlalchemy import case, func, select
from sqlalchemy.orm import selectinload

from app.rms.core.enums import OrderStatus
from app.rms.db.models import Order, OrderItem, OrderItemCustomization, coerce_uuid

_STATUS_RANK = {status.value: rank for rank, status in enumerate(OrderStatus)}


@dataclass(frozen=True)
class OrderPageQuery:
    store_id: str
    offset: int
    limit: int
    statuses: tuple[str, ...] | None = None


class OrderRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, order_id: str) -> Order | None:
        key = coerce_uuid(order_id)
        if key is None:
            return None
        return self.db.execute(select(Order).where(Order.id == key)).scalars().first()

    def get_for_update(self, order_id: str) -> Order | None:
        key = coerce_uuid(order_id)
        if key is None:
            return None
        return self.db.execute(select(Order).where(Order.id == key).with_for_update()).scalars().first()

    def get_with_items(self, order_id: str) -> Order | None:
        key = coerce_uuid(order_id)
        if key is None:
            return None
        stmt = (
            select(Order)
            .where(Order.id == key)
            .options(selectinload(Order.items).selectinload(OrderItem.customizations))
        )
        return self.db.execute(stmt).scalars().first()

    def list_by_store(self, query: OrderPageQuery) -> tuple[list[Order], int]:
        store_key = coerce_uuid(query.store_id)
        if store_key is None:
            return [], 0
        stmt = (
            select(Order)
            .where(Order.store_id == store_key)
            .options(selectinload(Order.items).selectinload(OrderItem.customizations))
            .order_by(Order.created_at.desc())
            .offset(query.offset)
            .limit(query.limit)
        )
        total = self.db.execute(
            select(func.count()).select_from(Order).where(Order.store_id == store_key)
        ).scalar_one()
        return list(self.db.execute(stmt).scalars().all()), total

    def list_for_kitchen(self, query: OrderPageQuery) -> tuple[list[Order], int]:
        store_key = coerce_uuid(query.store_id)
        if store_key is None:
            return [], 0
        statuses = list(query.statuses or ())
        status_rank = case(_STATUS_RANK, value=Order.status, else_=len(_STATUS_RANK))
        conditions = [Order.store_id == store_key, Order.status.in_(statuses)]
        stmt = (
            select(Order)
            .where(*conditions)
            .options(selectinload(Order.items).selectinload(OrderItem.customizations))
            .order_by(status_rank.asc(), Order.created_at.desc())
            .offset(query.offset)
            .limit(query.limit)
        )
        total = self.db.execute(select(func.count()).select_from(Order).where(*conditions)).scalar_one()
        return list(self.db.execute(stmt).scalars().all()), total

    def list_by_session(self, session_id: str) -> list[Order]:
        key = coerce_uuid(session_id)
        if key is None:
            return []
        stmt = (
            select(Order)
            .where(Order.session_id == key)
            .options(selectinload(Order.items).selectinload(OrderItem.customizations))
            .order_by(Order.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def count_created_between(self, store_id, start: datetime, end: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(Order)
            .where(Order.store_id == store_id, Order.created_at >= start, Order.created_at < end)
        )
        return self.db.execute(stmt).scalar_one()

    def add(self, order: Order) -> Order:
        self.db.add(order)
        self.db.flush()
        return order

    def add_item(self, item: OrderItem, customizations: Iterable[OrderItemCustomization] = ()) -> OrderItem:
        self.db.add(item)
        self.db.flush()
        rows = list(customizations)
        for row in rows:
            row.order_item_id = item.id
        if rows:
            self.db.add_all(rows)
            self.db.flush()
        return item

    def save(self, order: Order) -> Order:
        self.db.add(order)
        self.db.flush()
        return order
