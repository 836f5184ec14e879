"""
Order-level and line-level status transitions.

Person view acts on whole orders and only sets the order status. Brand view
acts on every line of the selected products; ACCEPTED and PACKED also force
the status of each affected order, while OUT_OF_STOCK and RESTORE leave the
order status alone. Nothing here enforces a forward-only LOCKED/PACKED chain.
"""

from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Collection, Iterable, List

from db.models import Order, OrderLineItem, OrderStatus
from ordering import pricing
from ordering.errors import NothingToUpdate, PreconditionFailed


class BatchAction(str, Enum):
    ACCEPTED = "ACCEPTED"
    PACKED = "PACKED"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    RESTORE = "RESTORE"


LINE_TARGETS = {
    BatchAction.ACCEPTED: OrderStatus.LOCKED,
    BatchAction.PACKED: OrderStatus.PACKED,
    BatchAction.OUT_OF_STOCK: OrderStatus.OUT_OF_STOCK,
    BatchAction.RESTORE: OrderStatus.PENDING,
}

# actions that also move the status of the whole order
ORDER_TARGETS = {
    BatchAction.ACCEPTED: OrderStatus.LOCKED,
    BatchAction.PACKED: OrderStatus.PACKED,
}

LOCKED_STATUSES = frozenset(
    {OrderStatus.LOCKED, OrderStatus.PACKED, OrderStatus.COMPLETED}
)


def with_recalculated_total(order: Order, items: Iterable[OrderLineItem]) -> Order:
    items = tuple(items)
    return replace(order, items=items, total_amount=pricing.recalculate_total(items))


def apply_order_action(
    orders: Iterable[Order], order_ids: Collection[str], action: BatchAction
) -> List[Order]:
    """Person view: set the status of each selected order. Lines are untouched."""
    action = BatchAction(action)
    if action not in ORDER_TARGETS:
        raise ValueError(f"{action.value} is not an order-level action.")
    if not order_ids:
        return []
    target = ORDER_TARGETS[action]
    return [replace(o, status=target) for o in orders if o.id in order_ids]


def apply_product_action(
    orders: Iterable[Order], product_ids: Collection[str], action: BatchAction
) -> List[Order]:
    """
    Brand view: set the status of every line whose product is selected, in
    every order that contains one, and recalculate those orders' totals.
    Raises NothingToUpdate when no order contains a selected product.
    """
    action = BatchAction(action)
    if not product_ids:
        return []

    affected = [
        o for o in orders if any(item.product_id in product_ids for item in o.items)
    ]
    if not affected:
        raise NothingToUpdate("No orders contain the selected products.")

    line_target = LINE_TARGETS[action]
    order_target = ORDER_TARGETS.get(action)

    updated = []
    for order in affected:
        items = [
            replace(item, status=line_target) if item.product_id in product_ids else item
            for item in order.items
        ]
        new_order = with_recalculated_total(order, items)
        if order_target is not None:
            new_order = replace(new_order, status=order_target)
        updated.append(new_order)
    return updated


def lock_pending(orders: Iterable[Order]) -> List[Order]:
    """Every PENDING order moved to LOCKED; the payload of the scheduled auto-lock."""
    return [
        replace(o, status=OrderStatus.LOCKED)
        for o in orders
        if o.status == OrderStatus.PENDING
    ]


def ensure_cancellable(order: Order, user_id: str) -> None:
    if order.user_id != user_id:
        raise PreconditionFailed("Only the issuing user can cancel an order.")
    if order.status != OrderStatus.PENDING:
        raise PreconditionFailed(
            f"Order {order.id} is {order.status.value} and can no longer be cancelled."
        )
