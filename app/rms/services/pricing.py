from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    """Render an amount to two places. Only used on output, never mid-computation."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    sub_total: Decimal
    discount_amount: Decimal
    vat_amount: Decimal
    service_charge_amount: Decimal
    grand_total: Decimal

    @property
    def effective_sub_total(self) -> Decimal:
        return self.sub_total - self.discount_amount


def price(sub_total, vat_rate, service_charge_rate, discount_amount=ZERO) -> PriceBreakdown:
    """Tax and service charge are levied on the discounted subtotal."""
    sub_total = to_decimal(sub_total)
    discount_amount = to_decimal(discount_amount)
    effective = sub_total - discount_amount
    vat_amount = effective * to_decimal(vat_rate)
    service_charge_amount = effective * to_decimal(service_charge_rate)
    return PriceBreakdown(
        sub_total=sub_total,
        discount_amount=discount_amount,
        vat_amount=vat_amount,
        service_charge_amount=service_charge_amount,
        grand_total=effective + vat_amount + service_charge_amount,
    )


@dataclass(frozen=True)
class StoreRates:
    vat_rate: Decimal
    service_charge_rate: Decimal


def rates_from_settings(setting) -> StoreRates:
    if setting is None:
        return StoreRates(vat_rate=ZERO, service_charge_rate=ZERO)
    return StoreRates(
        vat_rate=to_decimal(setting.vat_rate),
        service_charge_rate=to_decimal(setting.service_charge_rate),
    )


@dataclass(frozen=True)
class PricedCustomization:
    option_id: str
    unit_price: Decimal
    final_price: Decimal | None


@dataclass(frozen=True)
class PricedLine:
    menu_item_id: str
    unit_price: Decimal
    quantity: int
    final_price: Decimal
    notes: str | None
    customizations: tuple[PricedCustomization, ...]


def price_line(menu_item_id, base_price, quantity: int, option_prices, notes: str | None = None) -> PricedLine:
    """Unit price is the base price plus every selected option.

    ``option_prices`` is (option_id, price) pairs. A ``None`` price adds
    nothing and leaves that customization's final price unset.
    """
    unit_price = to_decimal(base_price)
    customizations = []
    for option_id, additional_price in option_prices:
        additional = to_decimal(additional_price)
        unit_price += additional
        customizations.append(
            PricedCustomization(
                option_id=str(option_id),
                unit_price=additional,
                final_price=None if additional_price is None else additional * quantity,
            )
        )
    return PricedLine(
        menu_item_id=str(menu_item_id),
        unit_price=unit_price,
        quantity=quantity,
        final_price=unit_price * quantity,
        notes=notes,
        customizations=tuple(customizations),
    )
