from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Rule

from db.models import Bundle, CartItem, PricingMode
from ordering.cart import line_value
from utils.messages import CartChangedMessage, OrdersChangedMessage
from utils.pure import format_currency
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import ConfirmModal


class CartScreen(BaseScreen):
    """
    Cart lines with quantity stepper, running total and checkout
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield DataTable(id="table-cart")
        yield Label("Total: NT$0", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("-1", id="btn-sub-qty")
            yield Button("+1", id="btn-add-qty")
            yield Button("Remove", id="btn-remove")
            yield Button("Clear Cart", id="btn-clear-cart", variant="error")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Product", "Mode", "Qty", "Unit Price", "Line Total")
        self.render_cart()

    @on(CartChangedMessage)
    @on(OrdersChangedMessage)
    @on(ScreenResume)
    def handle_cart_change(self) -> None:
        self.render_cart()

    def render_cart(self) -> None:
        cart = self.app.state.cart
        products = self.app.service.product_map()

        table = self.query_one(DataTable)
        cursor = table.cursor_row
        table.clear()
        for item in cart.items():
            product = products.get(item.product_id)
            name = product.name if product else item.product_id
            if isinstance(item.promotion, Bundle):
                qty = f"{item.quantity} set(s) = {item.quantity * item.promotion.buy} + {item.quantity * item.promotion.get} free"
            else:
                qty = str(item.quantity)
            table.add_row(
                name,
                item.pricing_mode.value.title(),
                qty,
                format_currency(item.snapshot_price),
                format_currency(line_value(item)),
                key=f"{item.product_id}|{item.pricing_mode.value}",
            )
        if table.row_count:
            table.move_cursor(row=min(cursor, table.row_count - 1))

        self.query_one("#label-cart-total", Label).update(
            f"Total: {format_currency(cart.total())}"
        )
        self.query_one("#btn-checkout", Button).disabled = cart.is_empty

    def _selected_item(self) -> Optional[CartItem]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        row_key = table.coordinate_to_cell_key(table.cursor_coordinate).row_key
        product_id, mode = row_key.value.split("|")
        return self.app.state.cart.get(product_id, PricingMode(mode))

    async def _step(self, delta: int) -> None:
        item = self._selected_item()
        if item is None:
            return
        product = self.app.service.product_map().get(item.product_id)
        cart = self.app.state.cart
        if product is None:
            # product left the catalog; the line can only be dropped
            cart.remove(item.product_id, item.pricing_mode)
        else:
            cart.adjust(product, item.pricing_mode, delta)
        self.post_message(CartChangedMessage())
        await self.refresh_sidebar()

    @on(Button.Pressed, "#btn-add-qty")
    async def handle_add(self) -> None:
        await self._step(1)

    @on(Button.Pressed, "#btn-sub-qty")
    async def handle_sub(self) -> None:
        await self._step(-1)

    @on(Button.Pressed, "#btn-remove")
    async def handle_remove(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        self.app.state.cart.remove(item.product_id, item.pricing_mode)
        self.post_message(CartChangedMessage())
        await self.refresh_sidebar()
        self.notify("Item removed from cart.")

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        if self.app.state.cart.is_empty:
            self.notify("Cart is empty.", severity="warning")
            return
        if await self.app.push_screen_wait(
            ConfirmModal("Do you really want to remove all items from cart?", tone="error")
        ):
            self.app.state.cart.clear()
            self.post_message(CartChangedMessage())
            await self.refresh_sidebar()

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        if self.app.state.cart.is_empty:
            self.notify("Cart is empty.", severity="warning")
            return
        if await self.app.push_screen_wait(CheckoutModal()):
            self.render_cart()
            await self.app.switch_mode("my_orders")
