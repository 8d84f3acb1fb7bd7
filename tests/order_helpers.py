from __future__ import annotations

import itertools
import uuid
from datetime import datetime, timedelta
from decimal import Decimal

from app.rms.core.metrics import Metrics
from app.rms.core.observability import Observability
from app.rms.core.security import create_actor_token
from app.rms.db.models import (
    Cart,
    CartItem,
    CartItemCustomization,
    CustomizationGroup,
    CustomizationOption,
    DiningTable,
    MenuItem,
    Store,
    StoreMember,
    StoreSetting,
    TableSession,
)
from app.rms.services.notifications import KitchenBroadcaster, KitchenNotifier
from app.rms.services.orders import OrderService
from app.rms.services.payments import PaymentService

BUSINESS_NOON = datetime(2026, 10, 19, 12, 0, 0)


class RecordingObservability(Observability):
    def __init__(self):
        super().__init__(metrics=Metrics(enabled=True))
        self.events: list[tuple[str, str, dict]] = []

    def info(self, event: str, **fields) -> None:
        self.events.append(("info", event, fields))

    def warning(self, event: str, **fields) -> None:
        self.events.append(("warning", event, fields))

    def error(self, event: str, exc: BaseException | None = None, **fields) -> None:
        self.events.append(("error", event, {**fields, "exc": exc}))

    def names(self, level: str | None = None) -> list[str]:
        return [name for event_level, name, _fields in self.events if level is None or event_level == level]


def stepping_clock(start: datetime = BUSINESS_NOON, step: timedelta = timedelta(seconds=1)):
    counter = itertools.count()
    return lambda: start + step * next(counter)


def fixed_clock(moment: datetime = BUSINESS_NOON):
    return lambda: moment


def build_services(session_factory, *, clock=None, broadcaster: KitchenBroadcaster | None = None):
    observability = RecordingObservability()
    broadcaster = broadcaster or KitchenBroadcaster()
    notifier = KitchenNotifier(broadcaster, observability)
    clock = clock or stepping_clock()
    orders = OrderService(
        session_factory,
        observability=observability,
        notifier=notifier,
        clock=clock,
        timezone_name="UTC",
    )
    payments = PaymentService(session_factory, observability=observability, notifier=notifier, clock=clock)
    return orders, payments, observability, broadcaster


def create_store(db_session, *, name: str = "Main Street", vat_rate=None, service_charge_rate=None) -> Store:
    store = Store(id=uuid.uuid4(), name=name)
    db_session.add(store)
    if vat_rate is not None or service_charge_rate is not None:
        db_session.add(
            StoreSetting(
                store_id=store.id,
                vat_rate=Decimal(vat_rate or "0"),
                service_charge_rate=Decimal(service_charge_rate or "0"),
            )
        )
    db_session.commit()
    return store


def add_member(db_session, store: Store, role: str = "OWNER") -> str:
    user_id = uuid.uuid4()
    db_session.add(StoreMember(store_id=store.id, user_id=user_id, role=role))
    db_session.commit()
    return str(user_id)


def auth_headers(actor_id: str) -> dict:
    return {"Authorization": f"Bearer {create_actor_token(actor_id)}"}


def create_table(db_session, store: Store, name: str = "T1") -> DiningTable:
    table = DiningTable(store_id=store.id, name=name)
    db_session.add(table)
    db_session.commit()
    return table


def open_session(
    db_session,
    store: Store,
    *,
    table: DiningTable | None = None,
    session_type: str = "TABLE",
    status: str = "ACTIVE",
) -> TableSession:
    session = TableSession(
        store_id=store.id,
        table_id=table.id if table else None,
        session_type=session_type,
        status=status,
        session_token=uuid.uuid4().hex,
        guest_count=2,
    )
    db_session.add(session)
    db_session.commit()
    return session


def create_menu_item(db_session, store: Store, *, name: str = "Burger", base_price="10.00", options=()):
    """``options`` is (name, additional_price) pairs; returns the item and its options."""
    item = MenuItem(store_id=store.id, name=name, base_price=Decimal(base_price))
    db_session.add(item)
    db_session.flush()
    created = []
    if options:
        group = CustomizationGroup(menu_item_id=item.id, name="Extras")
        db_session.add(group)
        db_session.flush()
        for option_name, additional_price in options:
            option = CustomizationOption(
                group_id=group.id,
                name=option_name,
                additional_price=Decimal(additional_price) if additional_price is not None else None,
            )
            db_session.add(option)
            created.append(option)
    db_session.commit()
    return item, created


def fill_cart(db_session, table_session: TableSession, lines=()) -> Cart:
    """``lines`` is (menu_item, quantity, options) triples."""
    cart = Cart(session_id=table_session.id, store_id=table_session.store_id, sub_total=Decimal("0"))
    db_session.add(cart)
    db_session.flush()
    sub_total = Decimal("0")
    for menu_item, quantity, options in lines:
        cart_item = CartItem(
            cart_id=cart.id,
            menu_item_id=menu_item.id,
            base_price=menu_item.base_price,
            quantity=quantity,
        )
        db_session.add(cart_item)
        db_session.flush()
        unit = Decimal(menu_item.base_price)
        for option in options:
            db_session.add(
                CartItemCustomization(
                    cart_item_id=cart_item.id,
                    customization_option_id=option.id,
                    additional_price=option.additional_price,
                )
            )
            unit += option.additional_price or Decimal("0")
        sub_total += unit * quantity
    cart.sub_total = sub_total
    db_session.commit()
    return cart


def seeded_checkout(db_session, orders: OrderService, *, vat_rate=None, service_charge_rate=None, base_price="100.00"):
    """A store with one owner and a one-line checked-out order; returns (store, owner_id, view)."""
    store = create_store(db_session, vat_rate=vat_rate, service_charge_rate=service_charge_rate)
    owner_id = add_member(db_session, store, "OWNER")
    item, _options = create_menu_item(db_session, store, base_price=base_price)
    table_session = open_session(db_session, store, table=create_table(db_session, store))
    fill_cart(db_session, table_session, [(item, 1, [])])
    view = orders.checkout(table_session.id, actor_id=owner_id)
    return store, owner_id, view
