from __future__ import annotations

from sqlalchemy import select

from app.rms.db.models import StoreMember, StoreSetting, coerce_uuid


class StoreRepository:
    def __init__(self, db):
        self.db = db

    def get_settings(self, store_id) -> StoreSetting | None:
        key = coerce_uuid(store_id)
        if key is None:
            return None
        return self.db.get(StoreSetting, key)

    def get_member_role(self, store_id, user_id) -> str | None:
        store_key = coerce_uuid(store_id)
        user_key = coerce_uuid(user_id)
        if store_key is None or user_key is None:
            return None
        stmt = select(StoreMember.role).where(StoreMember.store_id == store_key, StoreMember.user_id == user_key)
        return self.db.execute(stmt).scalars().first()
