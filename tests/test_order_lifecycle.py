import uuid
from decimal import Decimal

import pytest

from app.rms.core.error_catalog import AppError
from app.rms.services.notifications import ORDER_READY, STATUS_CHANGED
from app.rms.services.orders import QuickSaleLine
from tests.order_helpers import (
    add_member,
    build_services,
    create_menu_item,
    create_store,
    create_table,
    fill_cart,
    open_session,
    seeded_checkout,
)


def test_status_walk_broadcasts_changes_and_ready(db_session, session_factory):
    orders, _payments, obs, broadcaster = build_services(session_factory)
    store, owner_id, view = seeded_checkout(db_session, orders)
    received = []
    broadcaster.subscribe(store.id, received.append)
    order_id = view.order.id

    orders.update_status(order_id, "PREPARING", actor_id=owner_id, store_id=store.id)
    assert [event.name for event in received] == [STATUS_CHANGED]

    ready = orders.update_status(order_id, "READY", actor_id=owner_id, store_id=store.id)
    assert ready.order.status == "READY"
    assert [event.name for event in received] == [STATUS_CHANGED, STATUS_CHANGED, ORDER_READY]
    assert received[-1].payload["status"] == "READY"

    orders.update_status(order_id, "SERVED", actor_id=owner_id, store_id=store.id)
    completed = orders.update_status(order_id, "COMPLETED", actor_id=owner_id, store_id=store.id)
    assert completed.order.status == "COMPLETED"
    assert completed.order.paid_at is not None
    assert obs.names("info").count("order_status_changed") == 4
    assert b'order_status_transitions_total{from_status="READY",to_status="SERVED"} 1.0' in obs.metrics.render().content


def test_invalid_transition_is_rejected(db_session, session_factory):
    orders, *_ = build_services(session_factory)
    store, owner_id, view = seeded_checkout(db_session, orders)

    with pytest.raises(AppError) as exc_info:
        orders.update_status(view.order.id, "SERVED", actor_id=owner_id, store_id=store.id)

    assert exc_info.value.code == "INVALID_STATE"
    assert exc_info.value.message == "Invalid status transition from PENDING to SERVED"
    assert orders.get_order(view.order.id).order.status == "PENDING"


def test_cancelled_is_terminal(db_session, session_factory):
    orders, *_ = build_services(session_factory)
    store, owner_id, view = seeded_checkout(db_session, orders)
    orders.update_status(view.order.id, "CANCELLED", actor_id=owner_id, store_id=store.id)

    with pytest.raises(AppError) as exc_info:
        orders.update_status(view.order.id, "PENDING", actor_id=owner_id, store_id=store.id)

    assert exc_info.value.code == "INVALID_STATE"


def test_failing_subscriber_never_undoes_the_change(db_session, session_factory):
    orders, _payments, obs, broadcaster = build_services(session_factory)
    store, owner_id, view = seeded_checkout(db_session, orders)

    def explode(_event):
        raise ConnectionError("display offline")

    broadcaster.subscribe(store.id, explode)
    updated = orders.update_status(view.order.id, "PREPARING", actor_id=owner_id, store_id=store.id)

    assert updated.order.status == "PREPARING"
    assert orders.get_order(view.order.id).order.status == "PREPARING"
    assert "kitchen_notification_failed" in obs.names("error")
    assert b'notification_failures_total{event="kitchen:status-updated"} 1.0' in obs.metrics.render().content


def test_orders_are_scoped_to_their_store(db_session, session_factory):
    orders, *_ = build_services(session_factory)
    _store, _owner_id, view = seeded_checkout(db_session, orders)
    elsewhere = create_store(db_session, name="Harbour")

    with pytest.raises(AppError) as exc_info:
        orders.get_order(view.order.id, store_id=elsewhere.id)
    assert exc_info.value.code == "NOT_FOUND"
    assert exc_info.value.message == "Order not found in this store"

    with pytest.raises(AppError) as exc_info:
        orders.get_order(uuid.uuid4())
    assert exc_info.value.message == "Order not found"


def test_listing_is_newest_first_and_paged(db_session, session_factory):
    orders, *_ = build_services(session_factory)
    store = create_store(db_session)
    cashier_id = add_member(db_session, store, "CASHIER")
    item, _ = create_menu_item(db_session, store)
    numbers = [
        orders.quick_checkout(cashier_id, store.id, "COUNTER", "TAKEAWAY", [QuickSaleLine(menu_item_id=str(item.id))])
        .order.order_number
        for _ in range(5)
    ]

    first = orders.list_orders(store.id, page=1, limit=2)
    last = orders.list_orders(store.id, page=3, limit=2)

    assert [view.order.order_number for view in first.items] == [numbers[4], numbers[3]]
    assert first.total == 5
    assert first.total_pages == 3
    assert [view.order.order_number for view in last.items] == [numbers[0]]
    assert all(view.payment.remaining_balance == Decimal("10.00") for view in first.items)


def test_kitchen_queue_orders_by_status_then_newest(db_session, session_factory):
    orders, *_ = build_services(session_factory)
    store = create_store(db_session)
    owner_id = add_member(db_session, store, "OWNER")
    item, _ = create_menu_item(db_session, store)

    def sale():
        return orders.quick_checkout(
            owner_id, store.id, "COUNTER", "TAKEAWAY", [QuickSaleLine(menu_item_id=str(item.id))]
        ).order.id

    ready_id, pending_old, served_id, preparing_id, pending_new = (sale() for _ in range(5))
    for status in ("PREPARING", "READY"):
        orders.update_status(ready_id, status, actor_id=owner_id)
    for status in ("PREPARING", "READY", "SERVED"):
        orders.update_status(served_id, status, actor_id=owner_id)
    orders.update_status(preparing_id, "PREPARING", actor_id=owner_id)

    queue = orders.list_kitchen_orders(store.id)
    assert [view.order.id for view in queue.items] == [pending_new, pending_old, preparing_id, ready_id]
    assert queue.total == 4

    only_ready = orders.list_kitchen_orders(store.id, statuses=["READY", "SERVED"])
    assert [view.order.id for view in only_ready.items] == [ready_id, served_id]


def test_session_orders_need_token_or_staff(db_session, session_factory):
    orders, *_ = build_services(session_factory)
    store = create_store(db_session)
    server_id = add_member(db_session, store, "SERVER")
    item, _ = create_menu_item(db_session, store)
    table_session = open_session(db_session, store, table=create_table(db_session, store))
    fill_cart(db_session, table_session, [(item, 1, [])])
    created = orders.checkout(table_session.id, session_token=table_session.session_token)

    by_guest = orders.list_session_orders(table_session.id, session_token=table_session.session_token)
    by_staff = orders.list_session_orders(table_session.id, actor_id=server_id)

    assert [view.order.id for view in by_guest] == [created.order.id]
    assert [view.order.id for view in by_staff] == [created.order.id]
    with pytest.raises(AppError) as exc_info:
        orders.list_session_orders(table_session.id)
    assert exc_info.value.code == "UNAUTHENTICATED"
