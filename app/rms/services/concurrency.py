from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError

_LOCK_MESSAGES = (
    "lock timeout",
    "deadlock detected",
    "database is locked",
    "could not obtain lock",
)

_ORDER_NUMBER_MARKERS = (
    "order_number",
    "uq_orders_store_order_number",
    "order_sequences",
)


def is_lock_timeout(exc: BaseException) -> bool:
    if isinstance(exc, OperationalError):
        message = str(exc).lower()
        return any(token in message for token in _LOCK_MESSAGES)
    return False


def is_order_number_conflict(exc: BaseException) -> bool:
    """A unique-constraint hit on the order number or on the day's counter row."""
    if isinstance(exc, IntegrityError):
        message = str(exc).lower()
        return any(token in message for token in _ORDER_NUMBER_MARKERS)
    return False


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05, retry_on=is_order_number_conflict, on_retry=None):
    """
    Run ``func`` until it succeeds or the attempts run out.

    ``func`` must own its transaction so every attempt starts clean; only
    exceptions accepted by ``retry_on`` are retried, everything else raises
    immediately.
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return func()
        except Exception as exc:
            if not retry_on(exc) or attempt >= attempts - 1:
                raise
            if on_retry is not None:
                on_retry(exc, attempt + 1)
            time.sleep(backoff_base * (2 ** attempt))
    raise RuntimeError("run_with_retry exhausted without result")
