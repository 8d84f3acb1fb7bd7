from __future__ import annotations

from sqlalchemy import select

from app.rms.db.models import AuditEvent, coerce_uuid


class AuditRepository:
    def __init__(self, db):
        self.db = db

    def create(self, event: AuditEvent) -> AuditEvent:
        self.db.add(event)
        self.db.flush()
        return event

    def list_for_entity(self, entity_type: str, entity_id) -> list[AuditEvent]:
        stmt = (
            select(AuditEvent)
            .where(AuditEvent.entity_type == entity_type, AuditEvent.entity_id == str(entity_id))
            .order_by(AuditEvent.created_at)
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_for_store(self, store_id, action: str | None = None) -> list[AuditEvent]:
        stmt = select(AuditEvent).where(AuditEvent.store_id == coerce_uuid(store_id))
        if action:
            stmt = stmt.where(AuditEvent.action == action)
        return list(self.db.execute(stmt.order_by(AuditEvent.created_at)).scalars().all())
