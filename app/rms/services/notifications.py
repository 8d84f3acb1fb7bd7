from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable

from app.rms.core.observability import Observability

ORDER_CREATED = "kitchen:order-received"
STATUS_CHANGED = "kitchen:status-updated"
ORDER_READY = "kitchen:order-ready"


@dataclass(frozen=True)
class KitchenEvent:
    store_id: str
    name: str
    payload: dict = field(default_factory=dict)


Subscriber = Callable[[KitchenEvent], None]


class KitchenBroadcaster:
    """In-process fan-out of kitchen events to subscribers of one store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)

    def subscribe(self, store_id, subscriber: Subscriber) -> Callable[[], None]:
        key = str(store_id)
        with self._lock:
            self._subscribers[key].append(subscriber)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers.get(key, []):
                    self._subscribers[key].remove(subscriber)

        return unsubscribe

    def publish(self, event: KitchenEvent) -> int:
        with self._lock:
            subscribers = list(self._subscribers.get(event.store_id, []))
        for subscriber in subscribers:
            subscriber(event)
        return len(subscribers)


class KitchenNotifier:
    """Fire-and-forget wrapper: delivery problems are logged and counted, never raised."""

    def __init__(self, broadcaster: KitchenBroadcaster, observability: Observability | None = None) -> None:
        self.broadcaster = broadcaster
        self.observability = observability or Observability()

    def _send(self, store_id, name: str, payload: dict) -> None:
        event = KitchenEvent(store_id=str(store_id), name=name, payload=payload)
        try:
            delivered = self.broadcaster.publish(event)
        except Exception as exc:
            self.observability.metrics.increment_notification_failure(name)
            self.observability.error(
                "kitchen_notification_failed",
                exc=exc,
                notification=name,
                store_id=event.store_id,
                order_id=payload.get("order_id"),
            )
            return
        self.observability.info(
            "kitchen_notification_sent",
            notification=name,
            store_id=event.store_id,
            order_id=payload.get("order_id"),
            subscribers=delivered,
        )

    def order_created(self, order) -> None:
        self._send(order.store_id, ORDER_CREATED, _order_payload(order))

    def status_changed(self, order) -> None:
        self._send(order.store_id, STATUS_CHANGED, _order_payload(order))

    def order_ready(self, order) -> None:
        self._send(order.store_id, ORDER_READY, _order_payload(order))


def _order_payload(order) -> dict:
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "status": str(order.status),
        "table_name": order.table_name,
    }


kitchen_broadcaster = KitchenBroadcaster()
