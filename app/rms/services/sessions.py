from __future__ import annotations

import secrets
from datetime import datetime

from app.rms.core.enums import SessionStatus, SessionType
from app.rms.db.models import TableSession, coerce_uuid

SESSION_TYPE_LABELS = {
    SessionType.TABLE: "Table Order",
    SessionType.COUNTER: "Counter",
    SessionType.PHONE: "Phone Order",
    SessionType.TAKEOUT: "Takeout",
}


def session_type_label(session_type) -> str:
    try:
        return SESSION_TYPE_LABELS[SessionType(session_type)]
    except ValueError:
        return SESSION_TYPE_LABELS[SessionType.COUNTER]


def order_label(session, override: str | None = None) -> str:
    """Explicit override, then the physical table name, then the session type label."""
    if override:
        return override
    table = getattr(session, "table", None)
    if table is not None and table.name:
        return table.name
    return session_type_label(session.session_type)


def open_quick_sale_session(
    sessions_repo,
    *,
    store_id,
    session_type: SessionType,
    now: datetime,
    customer_name: str | None = None,
    customer_phone: str | None = None,
) -> TableSession:
    """Table-less session for counter, phone and takeout sales, created in the caller's transaction."""
    return sessions_repo.create(
        TableSession(
            store_id=coerce_uuid(store_id),
            table_id=None,
            session_type=SessionType(session_type).value,
            status=SessionStatus.ACTIVE.value,
            session_token=secrets.token_urlsafe(32),
            customer_name=customer_name,
            customer_phone=customer_phone,
            guest_count=1,
            created_at=now,
        )
    )
