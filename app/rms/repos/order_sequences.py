from __future__ import annotations

from datetime import date

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from app.rms.db.models import OrderSequence

_UPSERT_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


class OrderSequenceRepository:
    def __init__(self, db):
        self.db = db

    def ensure_row(self, store_id, business_date: date, seed: int) -> None:
        """Create the day's counter at ``seed`` unless another writer already did."""
        dialect = self.db.get_bind().dialect.name
        insert_factory = _UPSERT_INSERTS.get(dialect)
        if insert_factory is None:
            exists = self.db.get(OrderSequence, (store_id, business_date))
            if exists is None:
                self.db.add(OrderSequence(store_id=store_id, business_date=business_date, last_value=seed))
                self.db.flush()
            return
        stmt = (
            insert_factory(OrderSequence)
            .values(store_id=store_id, business_date=business_date, last_value=seed)
            .on_conflict_do_nothing(index_elements=["store_id", "business_date"])
        )
        self.db.execute(stmt)

    def increment(self, store_id, business_date: date) -> int | None:
        stmt = (
            update(OrderSequence)
            .where(OrderSequence.store_id == store_id, OrderSequence.business_date == business_date)
            .values(last_value=OrderSequence.last_value + 1)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount == 0:
            return None
        return self.db.execute(
            select(OrderSequence.last_value).where(
                OrderSequence.store_id == store_id,
                OrderSequence.business_date == business_date,
            )
        ).scalar_one()

    def exists(self, store_id, business_date: date) -> bool:
        stmt = select(OrderSequence.last_value).where(
            OrderSequence.store_id == store_id,
            OrderSequence.business_date == business_date,
        )
        return self.db.execute(stmt).first() is not None
