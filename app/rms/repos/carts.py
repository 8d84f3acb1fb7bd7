from __future__ import annotations

from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload

from app.rms.db.models import Cart, CartItem, CartItemCustomization, coerce_uuid


class CartRepository:
    def __init__(self, db):
        self.db = db

    def get_by_session_id(self, session_id: str) -> Cart | None:
        key = coerce_uuid(session_id)
        if key is None:
            return None
        stmt = (
            select(Cart)
            .where(Cart.session_id == key)
            .options(selectinload(Cart.items).selectinload(CartItem.customizations))
        )
        return self.db.execute(stmt).scalars().first()

    def clear(self, cart: Cart) -> None:
        """Drop every line; the cart row itself stays for the session."""
        item_ids = select(CartItem.id).where(CartItem.cart_id == cart.id)
        self.db.execute(
            delete(CartItemCustomization).where(CartItemCustomization.cart_item_id.in_(item_ids)),
            execution_options={"synchronize_session": False},
        )
        self.db.execute(
            delete(CartItem).where(CartItem.cart_id == cart.id),
            execution_options={"synchronize_session": False},
        )
        cart.sub_total = Decimal("0")
        self.db.flush()
        self.db.expire(cart, ["items"])
