from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.rms.db.models import TableSession, coerce_uuid


class TableSessionRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, session_id: str) -> TableSession | None:
        key = coerce_uuid(session_id)
        if key is None:
            return None
        stmt = select(TableSession).where(TableSession.id == key).options(selectinload(TableSession.table))
        return self.db.execute(stmt).scalars().first()

    def create(self, session: TableSession) -> TableSession:
        self.db.add(session)
        self.db.flush()
        return session
