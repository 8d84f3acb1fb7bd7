from __future__ import annotations

from typing import Iterable

from app.rms.core.enums import Role
from app.rms.core.error_catalog import forbidden

CHECKOUT_ROLES = (Role.OWNER, Role.ADMIN, Role.SERVER, Role.CASHIER, Role.CHEF)
QUICK_SALE_ROLES = (Role.OWNER, Role.ADMIN, Role.SERVER, Role.CASHIER)
STATUS_UPDATE_ROLES = (Role.OWNER, Role.ADMIN, Role.SERVER, Role.CASHIER, Role.CHEF)
PAYMENT_ROLES = (Role.OWNER, Role.ADMIN, Role.CASHIER)
REFUND_ROLES = (Role.OWNER, Role.ADMIN)


class PermissionChecker:
    """Store membership lookups behind a single role assertion."""

    def __init__(self, stores_repo):
        self.stores = stores_repo

    def role_of(self, actor_id, store_id) -> Role | None:
        role = self.stores.get_member_role(store_id, actor_id)
        if role is None:
            return None
        try:
            return Role(role)
        except ValueError:
            return None

    def require(self, actor_id, store_id, allowed_roles: Iterable[Role]) -> Role:
        allowed = tuple(Role(role) for role in allowed_roles)
        role = self.role_of(actor_id, store_id)
        if role is None:
            raise forbidden(
                "Access denied. You are not a member of this store.",
                details={"store_id": str(store_id)},
            )
        if role not in allowed:
            raise forbidden(
                f"Access denied. Required roles: {' or '.join(allowed)}. User role: {role}.",
                details={"required_roles": [value.value for value in allowed], "role": role.value},
            )
        return role
