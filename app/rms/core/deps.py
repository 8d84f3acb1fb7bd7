from fastapi import Depends, Header, Request
from jose import JWTError
from pydantic import ValidationError

from app.rms.core.enums import Role
from app.rms.core.error_catalog import AppError, ErrorCatalog, unauthenticated
from app.rms.core.observability import Observability
from app.rms.core.security import TokenData, decode_token, oauth2_scheme
from app.rms.db import session as db_session
from app.rms.repos.stores import StoreRepository
from app.rms.services.orders import OrderService
from app.rms.services.payments import PaymentService
from app.rms.services.permissions import PermissionChecker


def get_token_data(token: str | None = Depends(oauth2_scheme)) -> TokenData | None:
    if not token:
        return None
    try:
        return TokenData(**decode_token(token))
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def get_actor_id(request: Request, token_data: TokenData | None = Depends(get_token_data)) -> str | None:
    actor_id = token_data.sub if token_data else None
    request.state.actor_id = actor_id
    return actor_id


def require_actor_id(actor_id: str | None = Depends(get_actor_id)) -> str:
    if not actor_id:
        raise unauthenticated("Authentication required")
    return actor_id


def get_session_token(x_session_token: str | None = Header(default=None, alias="X-Session-Token")) -> str | None:
    return x_session_token or None


def get_observability() -> Observability:
    return Observability()


def get_order_service(observability: Observability = Depends(get_observability)) -> OrderService:
    return OrderService(db_session.get_session_factory(), observability=observability)


def get_payment_service(observability: Observability = Depends(get_observability)) -> PaymentService:
    return PaymentService(db_session.get_session_factory(), observability=observability)


def require_store_role(*roles):
    allowed = roles or tuple(Role)

    def dependency(store_id: str, actor_id: str = Depends(require_actor_id), db=Depends(db_session.get_db)):
        return PermissionChecker(StoreRepository(db)).require(actor_id, store_id, allowed)

    return dependency


__all__ = [
    "get_token_data",
    "get_actor_id",
    "require_actor_id",
    "get_session_token",
    "get_observability",
    "get_order_service",
    "get_payment_service",
    "require_store_role",
]
