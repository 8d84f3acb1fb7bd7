from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping

from app.rms.core.enums import SplitType, parse_enum
from app.rms.core.error_catalog import validation_error
from app.rms.db.models import coerce_uuid
from app.rms.services.pricing import CENT, ZERO, money, to_decimal

_GUEST_KEY = re.compile(r"^(?:guest)?\s*(\d+)$", re.IGNORECASE)


@dataclass(frozen=True)
class SplitShare:
    guest_number: int
    amount: Decimal


@dataclass(frozen=True)
class SplitProposal:
    split_type: SplitType
    shares: tuple[SplitShare, ...]
    remaining: Decimal
    already_paid: Decimal
    grand_total: Decimal

    @property
    def total(self) -> Decimal:
        return sum((share.amount for share in self.shares), ZERO)


def even_shares(remaining, guest_count: int) -> list[SplitShare]:
    """Equal cent shares; leftover cents go one each to the first guests."""
    if guest_count is None or guest_count < 2:
        raise validation_error("Guest count must be at least 2", details={"guest_count": guest_count})
    if money(remaining) <= ZERO:
        raise validation_error("Order has no remaining balance to split")
    cents = int(money(remaining) / CENT)
    base, leftover = divmod(cents, guest_count)
    return [
        SplitShare(guest_number=index + 1, amount=(base + (1 if index < leftover else 0)) * CENT)
        for index in range(guest_count)
    ]


def guest_number_from_key(key) -> int:
    match = _GUEST_KEY.match(str(key).strip())
    if match is None or int(match.group(1)) < 1:
        raise validation_error(f"Invalid guest key: {key}", details={"guest": str(key)})
    return int(match.group(1))


def by_item_shares(order_items: Iterable, item_assignments: Mapping[str, Iterable[str]] | None) -> list[SplitShare]:
    if not item_assignments:
        raise validation_error("Item assignments required for BY_ITEM split")
    prices = {str(item.id): to_decimal(item.final_price) for item in order_items}
    shares = []
    for key, item_ids in item_assignments.items():
        assigned = [str(coerce_uuid(item_id) or item_id) for item_id in item_ids]
        unknown = [item_id for item_id in assigned if item_id not in prices]
        if unknown:
            raise validation_error(
                f"Order items not found: {', '.join(unknown)}",
                details={"order_item_ids": unknown},
            )
        shares.append(
            SplitShare(
                guest_number=guest_number_from_key(key),
                amount=sum((prices[item_id] for item_id in assigned), ZERO),
            )
        )
    return sorted(shares, key=lambda share: share.guest_number)


def custom_shares(custom_amounts: Iterable | None) -> list[SplitShare]:
    amounts = [to_decimal(amount) for amount in (custom_amounts or [])]
    if not amounts:
        raise validation_error("Custom amounts required for CUSTOM split")
    for amount in amounts:
        if amount <= ZERO:
            raise validation_error("Custom amounts must be positive", details={"amount": format(amount, "f")})
    return [SplitShare(guest_number=index + 1, amount=amount) for index, amount in enumerate(amounts)]


def propose_split(
    split_type,
    *,
    grand_total,
    already_paid,
    remaining,
    order_items: Iterable = (),
    guest_count: int | None = None,
    item_assignments: Mapping[str, Iterable[str]] | None = None,
    custom_amounts: Iterable | None = None,
) -> SplitProposal:
    split_type = parse_enum(SplitType, split_type, "split_type")
    if split_type == SplitType.EVEN:
        shares = even_shares(remaining, guest_count if guest_count is not None else 2)
    elif split_type == SplitType.BY_ITEM:
        shares = by_item_shares(order_items, item_assignments)
    else:
        shares = custom_shares(custom_amounts)

    proposal = SplitProposal(
        split_type=split_type,
        shares=tuple(shares),
        remaining=to_decimal(remaining),
        already_paid=to_decimal(already_paid),
        grand_total=to_decimal(grand_total),
    )
    if proposal.total > money(remaining):
        raise validation_error(
            f"Split total ({money(proposal.total)}) exceeds remaining balance ({money(remaining)})",
            details={"split_total": format(proposal.total, "f"), "remaining": format(money(remaining), "f")},
        )
    return proposal
