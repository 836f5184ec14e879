from __future__ import annotations

from dataclasses import replace
from typing import Optional

from db.models import Order, OrderLineItem, OrderStatus
from ordering import pricing
from ordering.errors import PreconditionFailed
from ordering.fulfillment import LOCKED_STATUSES, with_recalculated_total


def _adjust_bundle_line(item: OrderLineItem, delta: int) -> Optional[OrderLineItem]:
    old_sets = item.bundle_quantity
    new_sets = old_sets + delta
    if new_sets <= 0:
        return None
    paid_per_set = item.quantity // old_sets
    free_per_set = item.free_quantity // old_sets
    paid = new_sets * paid_per_set
    return replace(
        item,
        bundle_quantity=new_sets,
        quantity=paid,
        free_quantity=new_sets * free_per_set,
        total_price=pricing.line_total(item.unit_price, paid),
    )


def _adjust_normal_line(item: OrderLineItem, delta: int) -> Optional[OrderLineItem]:
    qty = item.quantity + delta
    if qty <= 0:
        return None
    return replace(item, quantity=qty, total_price=pricing.line_total(item.unit_price, qty))


def adjust_line_quantity(order: Order, line_index: int, delta: int) -> Optional[Order]:
    """
    Change one line of a submitted order by delta (sets for bundle lines,
    units otherwise). A line reaching zero is removed.

    Returns the updated order, or None when the last line was removed and the
    whole order should be deleted instead.
    """
    if order.status in LOCKED_STATUSES:
        raise PreconditionFailed(
            f"Order {order.id} is {order.status.value}; quantities are frozen."
        )
    if not 0 <= line_index < len(order.items):
        raise IndexError(f"Order {order.id} has no line {line_index}.")

    item = order.items[line_index]
    if item.status == OrderStatus.OUT_OF_STOCK:
        raise PreconditionFailed(f"{item.product_name} is out of stock.")

    if item.is_bundle:
        new_item = _adjust_bundle_line(item, delta)
    else:
        new_item = _adjust_normal_line(item, delta)

    items = list(order.items)
    if new_item is None:
        del items[line_index]
    else:
        items[line_index] = new_item

    if not items:
        return None
    return with_recalculated_total(order, items)
