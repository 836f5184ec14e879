"""
Price arithmetic for catalog, cart and order lines.

All amounts are integer currency units. Mode discounts are applied with exact
fractions and floored, so `price(C, mode)` never drifts with float rounding.
"""

from __future__ import annotations

from fractions import Fraction
from math import floor
from typing import Iterable

from db.models import Bundle, OrderLineItem, OrderStatus, PricingMode, Product

DISCOUNT_RATES = {
    PricingMode.DAILY: Fraction(1, 2),
    PricingMode.SPECIAL: Fraction(4, 5),
}


def price(cost_price: int, mode: PricingMode) -> int:
    """Mode price of a non-bundle product: floor(cost * rate)."""
    if cost_price < 0:
        raise ValueError("Cost price cannot be negative.")
    return floor(cost_price * DISCOUNT_RATES[PricingMode(mode)])


def unit_price(product: Product, mode: PricingMode) -> int:
    """
    Per-unit price a new cart line snapshots. Bundles are priced at cost,
    the pricing mode only ever discounts non-bundle goods.
    """
    if isinstance(product.promotion, Bundle):
        return product.cost_price
    return price(product.cost_price, mode)


def bundle_set_price(cost_price: int, bundle: Bundle) -> int:
    return cost_price * bundle.buy


def bundle_average_price(cost_price: int, bundle: Bundle) -> int:
    """Display-only average per physical unit, rounded half up."""
    return floor(
        Fraction(bundle_set_price(cost_price, bundle), bundle.units_per_set)
        + Fraction(1, 2)
    )


def line_total(unit: int, paid_quantity: int) -> int:
    return unit * paid_quantity


def recalculate_total(items: Iterable[OrderLineItem]) -> int:
    """
    Payable order total: paid units times unit price over every line that
    is not out of stock. Free units never count.
    """
    return sum(
        item.unit_price * item.quantity
        for item in items
        if item.status != OrderStatus.OUT_OF_STOCK
    )
