from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.rms.core.deps import (
    get_actor_id,
    get_order_service,
    get_session_token,
    require_actor_id,
    require_store_role,
)
from app.rms.core.enums import OrderStatus
from app.rms.schemas.errors import ERROR_RESPONSES
from app.rms.schemas.orders import (
    ApplyDiscountRequest,
    CheckoutRequest,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdateRequest,
    PaymentStatusResponse,
    QuickCheckoutRequest,
    order_list_response,
    order_response,
    payment_status_response,
)
from app.rms.services.orders import OrderService, QuickSaleLine

router = APIRouter(responses=ERROR_RESPONSES)


@router.post("/rms/sessions/{session_id}/checkout", response_model=OrderResponse, status_code=201)
def checkout(
    session_id: str,
    payload: CheckoutRequest,
    session_token: str | None = Depends(get_session_token),
    actor_id: str | None = Depends(get_actor_id),
    service: OrderService = Depends(get_order_service),
):
    view = service.checkout(
        session_id,
        payload.order_type,
        table_name=payload.table_name,
        session_token=session_token,
        actor_id=actor_id,
    )
    return order_response(view)


@router.post("/rms/orders/quick-checkout", response_model=OrderResponse, status_code=201)
def quick_checkout(
    payload: QuickCheckoutRequest,
    actor_id: str = Depends(require_actor_id),
    service: OrderService = Depends(get_order_service),
):
    view = service.quick_checkout(
        actor_id,
        str(payload.store_id),
        payload.session_type,
        payload.order_type,
        [
            QuickSaleLine(
                menu_item_id=str(item.menu_item_id),
                quantity=item.quantity,
                customization_option_ids=tuple(str(option_id) for option_id in item.customization_option_ids),
                notes=item.notes,
            )
            for item in payload.items
        ],
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
    )
    return order_response(view)


@router.get("/rms/sessions/{session_id}/orders", response_model=list[OrderResponse])
def list_session_orders(
    session_id: str,
    session_token: str | None = Depends(get_session_token),
    actor_id: str | None = Depends(get_actor_id),
    service: OrderService = Depends(get_order_service),
):
    views = service.list_session_orders(session_id, session_token=session_token, actor_id=actor_id)
    return [order_response(view) for view in views]


@router.get(
    "/rms/stores/{store_id}/orders",
    response_model=OrderListResponse,
    dependencies=[Depends(require_store_role())],
)
def list_orders(
    store_id: str,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    service: OrderService = Depends(get_order_service),
):
    return order_list_response(service.list_orders(store_id, page=page, limit=limit))


@router.get(
    "/rms/stores/{store_id}/orders/kitchen",
    response_model=OrderListResponse,
    dependencies=[Depends(require_store_role())],
)
def list_kitchen_orders(
    store_id: str,
    status: list[OrderStatus] | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    service: OrderService = Depends(get_order_service),
):
    return order_list_response(service.list_kitchen_orders(store_id, statuses=status, page=page, limit=limit))


@router.get(
    "/rms/stores/{store_id}/orders/{order_id}",
    response_model=OrderResponse,
    dependencies=[Depends(require_store_role())],
)
def get_order(store_id: str, order_id: str, service: OrderService = Depends(get_order_service)):
    return order_response(service.get_order(order_id, store_id=store_id))


@router.get(
    "/rms/stores/{store_id}/orders/{order_id}/payment-status",
    response_model=PaymentStatusResponse,
    dependencies=[Depends(require_store_role())],
)
def get_payment_status(store_id: str, order_id: str, service: OrderService = Depends(get_order_service)):
    return payment_status_response(service.get_payment_status(order_id, store_id=store_id))


@router.patch("/rms/stores/{store_id}/orders/{order_id}/status", response_model=OrderResponse)
def update_status(
    store_id: str,
    order_id: str,
    payload: OrderStatusUpdateRequest,
    actor_id: str = Depends(require_actor_id),
    service: OrderService = Depends(get_order_service),
):
    return order_response(service.update_status(order_id, payload.status, actor_id=actor_id, store_id=store_id))


@router.post("/rms/stores/{store_id}/orders/{order_id}/discount", response_model=OrderResponse)
def apply_discount(
    store_id: str,
    order_id: str,
    payload: ApplyDiscountRequest,
    actor_id: str = Depends(require_actor_id),
    service: OrderService = Depends(get_order_service),
):
    view = service.apply_discount(
        actor_id,
        store_id,
        order_id,
        payload.discount_type,
        payload.discount_value,
        payload.reason,
    )
    return order_response(view)


@router.delete("/rms/stores/{store_id}/orders/{order_id}/discount", response_model=OrderResponse)
def remove_discount(
    store_id: str,
    order_id: str,
    actor_id: str = Depends(require_actor_id),
    service: OrderService = Depends(get_order_service),
):
    return order_response(service.remove_discount(actor_id, store_id, order_id))
