from __future__ import annotations

from dataclasses import dataclass

from app.rms.core.observability import Observability
from app.rms.db.models import AuditEvent, coerce_uuid
from app.rms.repos.audit import AuditRepository


@dataclass
class AuditEventPayload:
    store_id: str
    actor_id: str | None
    action: str
    entity_type: str
    entity_id: str | None
    before: dict | None = None
    after: dict | None = None
    metadata: dict | None = None


class AuditService:
    """Best-effort audit logging.

    Strategy: each event is written in its own short session after the business
    transaction has committed; failures are logged and swallowed so the audit
    trail can never undo or block an order mutation.
    """

    def __init__(self, session_factory, observability: Observability | None = None):
        self.session_factory = session_factory
        self.observability = observability or Observability()

    def record_event(self, payload: AuditEventPayload) -> None:
        db = self.session_factory()
        try:
            AuditRepository(db).create(
                AuditEvent(
                    store_id=coerce_uuid(payload.store_id),
                    actor_id=coerce_uuid(payload.actor_id),
                    action=payload.action,
                    entity_type=payload.entity_type,
                    entity_id=str(payload.entity_id) if payload.entity_id is not None else None,
                    before_payload=payload.before,
                    after_payload=payload.after,
                    event_metadata=payload.metadata,
                )
            )
            db.commit()
        except Exception as exc:
            db.rollback()
            self.observability.error(
                "audit_write_failed",
                exc=exc,
                action=payload.action,
                store_id=str(payload.store_id),
                entity_id=payload.entity_id,
            )
        finally:
            db.close()
