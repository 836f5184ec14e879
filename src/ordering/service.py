from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Callable, Collection, List, Optional

from db import crud
from db.models import Announcement, Order, Product, User
from ordering import adjustment, checkout, fulfillment, reports
from ordering.cart import Cart
from ordering.errors import NothingToExport, PreconditionFailed
from ordering.fulfillment import BatchAction
from utils.logger import get_logger

_logger = get_logger(__name__)

OrdersListener = Callable[[List[Order]], None]


class RequisitionService:
    """
    Owns the authoritative in-memory copy of the catalog and the order list.

    Every mutation goes through the persistence layer and ends with a refresh,
    which replaces the local order list wholesale and hands the new list to
    every subscriber.
    """

    def __init__(self, store=crud) -> None:
        self._store = store
        self._orders: List[Order] = []
        self._products: List[Product] = []
        self._listeners: List[OrdersListener] = []
        self._poll_task: Optional[asyncio.Task] = None

    # ---------------------------
    # State & notifications
    # ---------------------------

    @property
    def orders(self) -> List[Order]:
        return list(self._orders)

    @property
    def products(self) -> List[Product]:
        return list(self._products)

    def product_map(self) -> dict:
        return {p.id: p for p in self._products}

    def orders_for(self, user_id: str) -> List[Order]:
        return [o for o in self._orders if o.user_id == user_id]

    def subscribe(self, listener: OrdersListener) -> Callable[[], None]:
        """Register a listener for full order lists. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def refresh(self) -> List[Order]:
        self._products = await self._store.get_products()
        self._orders = await self._store.get_orders()
        for listener in list(self._listeners):
            listener(self.orders)
        return self.orders

    def start_polling(self, interval: float) -> None:
        """Refresh every `interval` seconds; the fallback for stores without push."""
        self.stop_polling()
        self._poll_task = asyncio.get_running_loop().create_task(self._poll(interval))

    def stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh()
            except Exception:
                _logger.exception("Order refresh failed, retrying next interval")

    # ---------------------------
    # Session
    # ---------------------------

    async def login(self, name: str) -> Optional[User]:
        user = await self._store.login(name)
        if user is None:
            _logger.info(f"Login refused for '{name.strip()}': not found")
        else:
            _logger.info(f"{user.name} logged in as {user.role}")
        return user

    async def get_announcement(self) -> Optional[Announcement]:
        return await self._store.get_announcement()

    async def save_announcement(self, announcement: Announcement) -> None:
        await self._store.save_announcement(announcement)

    # ---------------------------
    # Catalog
    # ---------------------------

    async def save_product(self, product: Product) -> Product:
        """Create or overwrite a product; a blank id gets a fresh one."""
        if not product.id:
            product = replace(product, id=await self._store.generate_product_id())
        await self._store.save_product(product)
        await self.refresh()
        return product

    async def delete_product(self, product_id: str) -> bool:
        deleted = await self._store.delete_product(product_id)
        await self.refresh()
        return deleted

    # ---------------------------
    # Staff operations
    # ---------------------------

    async def checkout(
        self, user: User, cart: Cart, now: Optional[datetime] = None
    ) -> List[Order]:
        """
        Place one order per pricing mode in the cart, then empty the cart.
        The orders are written together; on BatchWriteError nothing is stored
        and the cart is kept for a retry.
        """
        if cart.is_empty:
            return []
        if not self._products:
            self._products = await self._store.get_products()
        orders = checkout.build_orders(cart.items(), self.product_map(), user, now)
        await self._store.create_orders(orders)
        for order in orders:
            _logger.info(
                f"{user.name} placed {order.id} ({order.pricing_mode.value}, "
                f"{len(order.items)} line(s), total {order.total_amount})"
            )
        cart.clear()
        await self.refresh()
        return orders

    async def _load_order(self, order_id: str) -> Order:
        order = await self._store.get_order(order_id)
        if order is None:
            raise PreconditionFailed(f"Order {order_id} no longer exists.")
        return order

    async def cancel_order(self, user: User, order_id: str) -> None:
        order = await self._load_order(order_id)
        fulfillment.ensure_cancellable(order, user.uid)
        await self._store.delete_order(order_id)
        _logger.info(f"{user.name} cancelled {order_id}")
        await self.refresh()

    async def adjust_quantity(
        self, user: User, order_id: str, line_index: int, delta: int
    ) -> Optional[Order]:
        """
        Change one line of the user's own order. Returns the saved order, or
        None when the order lost its last line and was deleted.
        """
        order = await self._load_order(order_id)
        if order.user_id != user.uid:
            raise PreconditionFailed("Only the issuing user can edit an order.")

        updated = adjustment.adjust_line_quantity(order, line_index, delta)
        if updated is None:
            await self._store.delete_order(order_id)
            _logger.info(f"{order_id} lost its last line and was deleted")
        else:
            await self._store.update_order(updated)
            _logger.debug(f"{order_id} line {line_index} adjusted by {delta}")
        await self.refresh()
        return updated

    # ---------------------------
    # Admin operations
    # ---------------------------

    async def apply_order_action(
        self, order_ids: Collection[str], action: BatchAction
    ) -> List[Order]:
        """Person view batch action on whole orders."""
        updated = fulfillment.apply_order_action(
            await self._store.get_orders(), set(order_ids), action
        )
        if not updated:
            return []
        await self._store.update_order_batch(updated)
        _logger.info(f"{BatchAction(action).value} applied to {len(updated)} order(s)")
        await self.refresh()
        return updated

    async def apply_product_action(
        self, product_ids: Collection[str], action: BatchAction
    ) -> List[Order]:
        """Brand view batch action on lines; raises NothingToUpdate before any write."""
        updated = fulfillment.apply_product_action(
            await self._store.get_orders(), set(product_ids), action
        )
        if not updated:
            return []
        await self._store.update_order_batch(updated)
        _logger.info(
            f"{BatchAction(action).value} applied to {len(product_ids)} product(s) "
            f"across {len(updated)} order(s)"
        )
        await self.refresh()
        return updated

    async def lock_all_pending(self) -> List[Order]:
        """Lock every order that is PENDING right now."""
        locked = fulfillment.lock_pending(await self._store.get_orders())
        if locked:
            await self._store.update_order_batch(locked)
        _logger.info(f"Auto-lock locked {len(locked)} pending order(s)")
        await self.refresh()
        return locked

    async def export_monthly_csv(self, year: int, month: int) -> str:
        orders = await self._store.get_orders()
        if not reports.orders_in_month(orders, year, month):
            raise NothingToExport(f"No orders in {year}-{month:02d}.")
        return reports.render_monthly_csv(orders, year, month)
