"""
Turns cart lines into immutable order line items, one order per pricing mode.
"""

from __future__ import annotations

import random
import string
from datetime import datetime
from typing import Callable, Iterable, List, Mapping, Optional

from db.models import (
    Bundle,
    CartItem,
    Order,
    OrderLineItem,
    OrderStatus,
    Product,
    User,
)
from ordering import pricing
from ordering.errors import PreconditionFailed

BUNDLE_NAME_SUFFIX = " (Bundle Set)"
BUNDLE_DEFAULT_NOTE = "Bundle promotion"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_order_id(now: Optional[datetime] = None) -> str:
    """ord_<epoch ms>_<4 base36 chars>"""
    now = now or datetime.now()
    suffix = "".join(random.choices(_ID_ALPHABET, k=4))
    return f"ord_{int(now.timestamp() * 1000)}_{suffix}"


def materialize_line(item: CartItem, product: Product) -> OrderLineItem:
    """Snapshot one cart line as an order line, expanding bundle sets to units."""
    if isinstance(item.promotion, Bundle):
        sets = item.quantity
        paid = sets * item.promotion.buy
        return OrderLineItem(
            product_id=product.id,
            product_name=product.name + BUNDLE_NAME_SUFFIX,
            brand=product.brand,
            quantity=paid,
            free_quantity=sets * item.promotion.get,
            bundle_quantity=sets,
            unit_price=item.snapshot_price,
            total_price=pricing.line_total(item.snapshot_price, paid),
            status=OrderStatus.PENDING,
            note=item.promotion.note or BUNDLE_DEFAULT_NOTE,
        )

    # NoPromotion is the only non-bundle variant; it carries no note
    return OrderLineItem(
        product_id=product.id,
        product_name=product.name,
        brand=product.brand,
        quantity=item.quantity,
        free_quantity=0,
        unit_price=item.snapshot_price,
        total_price=pricing.line_total(item.snapshot_price, item.quantity),
        status=OrderStatus.PENDING,
        note="",
    )


def build_orders(
    cart_items: Iterable[CartItem],
    products: Mapping[str, Product],
    user: User,
    now: Optional[datetime] = None,
    id_factory: Callable[[datetime], str] = new_order_id,
) -> List[Order]:
    """
    Build one PENDING order per pricing mode present in the cart. An order
    never mixes pricing modes. Raises PreconditionFailed if a cart line refers
    to a product that is no longer in the catalog.
    """
    now = now or datetime.now()

    groups: dict = {}
    for item in cart_items:
        groups.setdefault(item.pricing_mode, []).append(item)

    orders: List[Order] = []
    for mode, items in groups.items():
        lines = []
        for item in items:
            product = products.get(item.product_id)
            if product is None:
                raise PreconditionFailed(
                    f"Product {item.product_id} is no longer in the catalog."
                )
            lines.append(materialize_line(item, product))

        orders.append(
            Order(
                id=id_factory(now),
                user_id=user.uid,
                user_name=user.name,
                timestamp=now,
                pricing_mode=mode,
                status=OrderStatus.PENDING,
                items=tuple(lines),
                total_amount=pricing.recalculate_total(lines),
            )
        )
    return orders
