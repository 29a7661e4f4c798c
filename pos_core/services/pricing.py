"""Fixed-point money arithmetic for order lines and order totals."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from pos_core.core.config import settings
from pos_core.models.enums import DiscountType
from pos_core.models.order import Order
from pos_core.services.errors import InvalidDiscount

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def minor_unit() -> Decimal:
    return Decimal(1).scaleb(-settings.currency_decimal_places)


def to_money(value: Decimal | int | str) -> Decimal:
    """Round ``value`` to the currency minor unit."""
    return Decimal(value).quantize(minor_unit(), rounding=ROUND_HALF_UP)


def line_subtotal(unit_price: Decimal, modifier_prices: Iterable[Decimal], quantity: int) -> Decimal:
    """Return ``(unit_price + sum(modifier prices)) * quantity`` without rounding."""
    per_unit = Decimal(unit_price) + sum((Decimal(price) for price in modifier_prices), ZERO)
    return per_unit * quantity


def validate_discount(discount_type: DiscountType | None, discount_value: Decimal | None) -> None:
    if discount_type is None:
        if discount_value is not None:
            raise InvalidDiscount("discount_value given without discount_type")
        return
    if discount_value is None or discount_value < 0:
        raise InvalidDiscount("discount_value must be zero or positive")
    if discount_type == DiscountType.PERCENTAGE and discount_value > HUNDRED:
        raise InvalidDiscount("percentage discount cannot exceed 100")


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def compute_totals(
    item_subtotals: Iterable[Decimal],
    *,
    discount_type: DiscountType | None,
    discount_value: Decimal | None,
    tax_amount: Decimal,
) -> Totals:
    """Derive order totals from line subtotals.

    Rounding happens once, on the total. The stored discount is then derived
    from the rounded total so ``total = subtotal - discount + tax`` holds
    exactly on the persisted values.
    """
    subtotal = sum((Decimal(value) for value in item_subtotals), ZERO)
    tax = Decimal(tax_amount)

    raw_discount = ZERO
    if discount_type == DiscountType.PERCENTAGE:
        raw_discount = subtotal * Decimal(discount_value) / HUNDRED
    elif discount_type == DiscountType.FIXED_AMOUNT:
        raw_discount = Decimal(discount_value)
    raw_discount = min(raw_discount, subtotal)

    subtotal = to_money(subtotal)
    tax = to_money(tax)
    total = to_money(subtotal - raw_discount + tax)
    return Totals(
        subtotal=subtotal,
        discount_amount=subtotal + tax - total,
        tax_amount=tax,
        total_amount=total,
    )


def apply_totals(order: Order) -> Totals:
    """Recompute and store totals from the order's current items."""
    totals = compute_totals(
        (item.subtotal for item in order.items),
        discount_type=order.discount_type,
        discount_value=order.discount_value,
        tax_amount=order.tax_amount or ZERO,
    )
    order.subtotal = totals.subtotal
    order.discount_amount = totals.discount_amount
    order.tax_amount = totals.tax_amount
    order.total_amount = totals.total_amount
    return totals
