from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.rms.db.models import CustomizationGroup, MenuItem, coerce_uuid


class MenuRepository:
    def __init__(self, db):
        self.db = db

    def get_available_items(self, store_id: str, menu_item_ids) -> list[MenuItem]:
        """Batch lookup of live menu items for a store, customization options included."""
        store_key = coerce_uuid(store_id)
        keys = [key for key in (coerce_uuid(value) for value in menu_item_ids) if key is not None]
        if store_key is None or not keys:
            return []
        stmt = (
            select(MenuItem)
            .where(
                MenuItem.id.in_(keys),
                MenuItem.store_id == store_key,
                MenuItem.deleted_at.is_(None),
            )
            .options(selectinload(MenuItem.customization_groups).selectinload(CustomizationGroup.options))
        )
        return list(self.db.execute(stmt).scalars().all())
