from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from app.rms.core.time_utils import business_date, resolve_timezone


def format_order_number(day: date, sequence: int) -> str:
    """``YYYYMMDD-NNN``; the sequence is padded to three digits and simply grows past 999."""
    return f"{day:%Y%m%d}-{sequence:03d}"


def business_day_bounds(day: date, tz) -> tuple[datetime, datetime]:
    """Naive-UTC ``[start, end)`` of a business day, matching how ``created_at`` is stored."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )


class OrderNumberAllocator:
    """Per-store, per-day counter.

    The first allocation of a day seeds the counter from orders that already
    exist for that day, then every allocation is a single atomic increment in
    the caller's transaction. Two writers racing on the first row of the day
    both fall through to the increment; the unique order number constraint
    backs this up.
    """

    def __init__(self, sequences_repo, orders_repo, timezone_name: str | None = None):
        self.sequences = sequences_repo
        self.orders = orders_repo
        self.tz = resolve_timezone(timezone_name)

    def next_number(self, store_id, now_utc: datetime) -> str:
        day = business_date(now_utc, self.tz)
        if not self.sequences.exists(store_id, day):
            start, end = business_day_bounds(day, self.tz)
            seed = self.orders.count_created_between(store_id, start, end)
            self.sequences.ensure_row(store_id, day, seed)
        sequence = self.sequences.increment(store_id, day)
        if sequence is None:
            raise RuntimeError(f"order sequence row missing for store {store_id} on {day}")
        return format_order_number(day, sequence)
