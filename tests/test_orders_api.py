import re
import uuid
from decimal import Decimal

import pytest

from tests.order_helpers import (
    add_member,
    auth_headers,
    create_menu_item,
    create_store,
    create_table,
    fill_cart,
    open_session,
)


@pytest.fixture()
def dining_room(db_session):
    store = create_store(db_session, vat_rate="0.07", service_charge_rate="0.10")
    owner_id = add_member(db_session, store, "OWNER")
    burger, (cheese,) = create_menu_item(db_session, store, name="Burger", base_price="10.00", options=[("Cheese", "1.50")])
    fries, _ = create_menu_item(db_session, store, name="Fries", base_price="4.00")
    table_session = open_session(db_session, store, table=create_table(db_session, store, "T7"))
    fill_cart(db_session, table_session, [(burger, 2, [cheese]), (fries, 1, [])])
    return store, owner_id, table_session, burger


def _checkout(client, table_session, **kwargs):
    return client.post(
        f"/rms/sessions/{table_session.id}/checkout",
        json=kwargs,
        headers={"X-Session-Token": table_session.session_token},
    )


def test_guest_checkout_with_session_token(client, dining_room):
    _store, _owner_id, table_session, _burger = dining_room

    response = _checkout(client, table_session)

    assert response.status_code == 201
    payload = response.json()
    assert re.fullmatch(r"\d{8}-001", payload["order_number"])
    assert payload["status"] == "PENDING"
    assert payload["order_type"] == "DINE_IN"
    assert payload["table_name"] == "T7"
    assert Decimal(payload["sub_total"]) == Decimal("27.00")
    assert Decimal(payload["vat_amount"]) == Decimal("1.89")
    assert Decimal(payload["service_charge_amount"]) == Decimal("2.70")
    assert Decimal(payload["grand_total"]) == Decimal("31.59")
    assert Decimal(payload["payment"]["remaining_balance"]) == Decimal("31.59")
    assert payload["payment"]["is_paid_in_full"] is False
    assert len(payload["items"]) == 2


def test_checkout_requires_token_or_staff(client, dining_room):
    _store, _owner_id, table_session, _burger = dining_room

    response = client.post(f"/rms/sessions/{table_session.id}/checkout", json={}, headers={"X-Trace-ID": "t-401"})

    assert response.status_code == 401
    assert response.json() == {
        "code": "UNAUTHENTICATED",
        "message": "Authentication required: Provide session token or JWT",
        "details": None,
        "trace_id": "t-401",
    }


def test_wrong_session_token_is_forbidden(client, dining_room):
    _store, _owner_id, table_session, _burger = dining_room

    response = client.post(
        f"/rms/sessions/{table_session.id}/checkout",
        json={},
        headers={"X-Session-Token": "not-the-token"},
    )

    assert response.status_code == 403
    assert response.json()["message"] == "Invalid session token"


def test_invalid_bearer_token(client, dining_room):
    _store, _owner_id, table_session, _burger = dining_room

    response = client.post(
        f"/rms/sessions/{table_session.id}/checkout",
        json={},
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_TOKEN"


def test_staff_checkout_for_phone_order(client, dining_room):
    _store, owner_id, table_session, _burger = dining_room

    response = client.post(
        f"/rms/sessions/{table_session.id}/checkout",
        json={"order_type": "DELIVERY", "table_name": "Phone - Rossi"},
        headers=auth_headers(owner_id),
    )

    assert response.status_code == 201
    assert response.json()["table_name"] == "Phone - Rossi"
    assert response.json()["order_type"] == "DELIVERY"

    again = client.post(f"/rms/sessions/{table_session.id}/checkout", json={}, headers=auth_headers(owner_id))
    assert again.status_code == 422
    assert again.json()["code"] == "VALIDATION_ERROR"


def test_quick_checkout_endpoint(client, dining_room):
    store, owner_id, _table_session, burger = dining_room
    body = {
        "store_id": str(store.id),
        "session_type": "COUNTER",
        "order_type": "TAKEAWAY",
        "items": [{"menu_item_id": str(burger.id), "quantity": 3}],
    }

    created = client.post("/rms/orders/quick-checkout", json=body, headers=auth_headers(owner_id))
    assert created.status_code == 201
    assert created.json()["table_name"] == "Counter"
    assert Decimal(created.json()["sub_total"]) == Decimal("30.00")

    rejected = client.post(
        "/rms/orders/quick-checkout",
        json={**body, "session_type": "TABLE"},
        headers=auth_headers(owner_id),
    )
    assert rejected.status_code == 422
    assert rejected.json()["message"] == (
        "Quick checkout cannot be used with TABLE session type. Use the regular checkout flow."
    )

    anonymous = client.post("/rms/orders/quick-checkout", json=body)
    assert anonymous.status_code == 401


def test_request_body_validation_shape(client, dining_room):
    store, owner_id, _table_session, _burger = dining_room

    response = client.post(
        "/rms/orders/quick-checkout",
        json={"store_id": str(store.id), "session_type": "COUNTER", "order_type": "TAKEAWAY", "items": []},
        headers=auth_headers(owner_id),
    )

    assert response.status_code == 422
    payload = response.json()
    assert payload["code"] == "VALIDATION_ERROR"
    assert payload["details"]["errors"][0]["field"] == "items"


def test_store_routes_need_membership(client, db_session, dining_room):
    store, _owner_id, table_session, _burger = dining_room
    order_id = _checkout(client, table_session).json()["id"]
    outsider = str(uuid.uuid4())

    listing = client.get(f"/rms/stores/{store.id}/orders", headers=auth_headers(outsider))
    assert listing.status_code == 403
    assert listing.json()["message"] == "Access denied. You are not a member of this store."

    detail = client.get(f"/rms/stores/{store.id}/orders/{order_id}")
    assert detail.status_code == 401

    chef_id = add_member(db_session, store, "CHEF")
    kitchen = client.get(f"/rms/stores/{store.id}/orders/kitchen", headers=auth_headers(chef_id))
    assert kitchen.status_code == 200
    assert [item["id"] for item in kitchen.json()["items"]] == [order_id]


def test_status_updates_and_kitchen_filter(client, dining_room):
    store, owner_id, table_session, _burger = dining_room
    order_id = _checkout(client, table_session).json()["id"]
    base = f"/rms/stores/{store.id}/orders"

    for status in ("PREPARING", "READY"):
        response = client.patch(f"{base}/{order_id}/status", json={"status": status}, headers=auth_headers(owner_id))
        assert response.status_code == 200
        assert response.json()["status"] == status

    ready = client.get(f"{base}/kitchen", params={"status": "READY"}, headers=auth_headers(owner_id))
    assert [item["id"] for item in ready.json()["items"]] == [order_id]
    pending = client.get(f"{base}/kitchen", params={"status": "PENDING"}, headers=auth_headers(owner_id))
    assert pending.json()["items"] == []

    invalid = client.patch(f"{base}/{order_id}/status", json={"status": "PENDING"}, headers=auth_headers(owner_id))
    assert invalid.status_code == 409
    assert invalid.json()["message"] == "Invalid status transition from READY to PENDING"

    unknown = client.patch(f"{base}/{order_id}/status", json={"status": "LOST"}, headers=auth_headers(owner_id))
    assert unknown.status_code == 422


def test_order_detail_listing_and_payment_status(client, dining_room):
    store, owner_id, table_session, _burger = dining_room
    order_id = _checkout(client, table_session).json()["id"]
    headers = auth_headers(owner_id)

    listing = client.get(f"/rms/stores/{store.id}/orders", params={"page": 1, "limit": 10}, headers=headers)
    assert listing.status_code == 200
    assert listing.json()["total"] == 1
    assert listing.json()["total_pages"] == 1

    detail = client.get(f"/rms/stores/{store.id}/orders/{order_id}", headers=headers)
    assert detail.json()["id"] == order_id

    status = client.get(f"/rms/stores/{store.id}/orders/{order_id}/payment-status", headers=headers)
    assert status.status_code == 200
    assert Decimal(status.json()["grand_total"]) == Decimal("31.59")
    assert status.json()["payment_count"] == 0

    missing = client.get(f"/rms/stores/{store.id}/orders/{uuid.uuid4()}", headers=headers)
    assert missing.status_code == 404

    session_orders = client.get(
        f"/rms/sessions/{table_session.id}/orders",
        headers={"X-Session-Token": table_session.session_token},
    )
    assert [order["id"] for order in session_orders.json()] == [order_id]


def test_discount_endpoints(client, dining_room):
    store, owner_id, table_session, _burger = dining_room
    order_id = _checkout(client, table_session).json()["id"]
    url = f"/rms/stores/{store.id}/orders/{order_id}/discount"

    applied = client.post(
        url,
        json={"discount_type": "FIXED_AMOUNT", "discount_value": "7.00", "reason": "birthday"},
        headers=auth_headers(owner_id),
    )
    assert applied.status_code == 200
    assert Decimal(applied.json()["discount_amount"]) == Decimal("7.00")
    assert Decimal(applied.json()["grand_total"]) == Decimal("23.40")

    too_much = client.post(
        url,
        json={"discount_type": "PERCENTAGE", "discount_value": "120"},
        headers=auth_headers(owner_id),
    )
    assert too_much.status_code == 422
    assert too_much.json()["message"] == "Percentage discount must be greater than 0 and at most 100"

    removed = client.delete(url, headers=auth_headers(owner_id))
    assert removed.status_code == 200
    assert removed.json()["discount_amount"] is None
    assert Decimal(removed.json()["grand_total"]) == Decimal("31.59")
