from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Tuple

from db.models import Bundle, CartItem, PricingMode, Product
from ordering import pricing

CartKey = Tuple[str, PricingMode]


class Cart:
    """
    In-memory cart for one shopping session.

    Lines are keyed by (product id, pricing mode), so the same product may sit
    in the cart twice under different modes. For bundle products the quantity
    counts sets. The per-unit price and the bundle terms are frozen when a line
    is first added and never recomputed afterwards.
    """

    def __init__(self) -> None:
        self._lines: Dict[CartKey, CartItem] = {}

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def items(self) -> List[CartItem]:
        return list(self._lines.values())

    def get(self, product_id: str, mode: PricingMode) -> CartItem | None:
        return self._lines.get((product_id, PricingMode(mode)))

    def quantity_of(self, product_id: str, mode: PricingMode) -> int:
        item = self.get(product_id, mode)
        return item.quantity if item else 0

    def unit_count(self) -> int:
        return sum(item.quantity for item in self._lines.values())

    def add(self, product: Product, mode: PricingMode) -> CartItem:
        return self.adjust(product, mode, 1)

    def adjust(self, product: Product, mode: PricingMode, delta: int) -> CartItem | None:
        """
        Change a line's quantity by delta. Returns the resulting line, or None
        when the line was removed (or never existed).
        """
        mode = PricingMode(mode)
        key = (product.id, mode)
        existing = self._lines.get(key)

        if existing is None:
            if delta <= 0:
                return None
            item = CartItem(
                product_id=product.id,
                quantity=delta,
                pricing_mode=mode,
                snapshot_price=pricing.unit_price(product, mode),
                promotion=product.promotion,
            )
            self._lines[key] = item
            return item

        new_qty = existing.quantity + delta
        if new_qty <= 0:
            del self._lines[key]
            return None
        item = replace(existing, quantity=new_qty)
        self._lines[key] = item
        return item

    def remove(self, product_id: str, mode: PricingMode) -> bool:
        return self._lines.pop((product_id, PricingMode(mode)), None) is not None

    def clear(self) -> None:
        self._lines.clear()

    def total(self) -> int:
        return sum(line_value(item) for item in self._lines.values())

    def by_mode(self) -> Dict[PricingMode, List[CartItem]]:
        """Lines partitioned per pricing mode, each partition in insertion order."""
        groups: Dict[PricingMode, List[CartItem]] = {}
        for item in self._lines.values():
            groups.setdefault(item.pricing_mode, []).append(item)
        return groups


def line_value(item: CartItem) -> int:
    """Payable value of a cart line; free bundle units never contribute."""
    if isinstance(item.promotion, Bundle):
        return pricing.bundle_set_price(item.snapshot_price, item.promotion) * item.quantity
    return item.snapshot_price * item.quantity
