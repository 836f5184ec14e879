from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, MarkdownViewer

from ordering.cart import line_value
from ordering.errors import RequisitionError
from utils.pure import format_currency, markdown_table
from views.modal_dialog import ConfirmModal


class CheckoutModal(ModalScreen[bool]):
    """
    Order preview: one requisition per pricing mode in the cart.
    Return True once the orders are placed.
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        cart = self.app.state.cart
        products = self.app.service.product_map()

        sections = ["## Order Preview\n"]
        for mode, items in cart.by_mode().items():
            rows = []
            for item in items:
                product = products.get(item.product_id)
                rows.append(
                    [
                        product.name if product else item.product_id,
                        item.quantity,
                        format_currency(item.snapshot_price),
                        format_currency(line_value(item)),
                    ]
                )
            subtotal = sum(line_value(i) for i in items)
            sections.append(
                f"### {mode.value.title()} requisition\n\n"
                + markdown_table(
                    ["Product", "Qty", "Unit Price", "Line Total"], rows, ["l", "r", "r", "r"]
                )
                + f"\n\n**Subtotal:** {format_currency(subtotal)}\n"
            )
        sections.append(f"**Grand Total:** {format_currency(cart.total())}")
        await self.query_one(MarkdownViewer).document.update("\n".join(sections))
        self.query_one("#btn-submit").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self) -> None:
        if not await self.app.push_screen_wait(
            ConfirmModal("Submit these requisitions?", tone="positive")
        ):
            return

        try:
            orders = await self.app.service.checkout(self.app.state.user, self.app.state.cart)
        except RequisitionError as exc:
            self.notify(str(exc), severity="error")
            return

        ids = ", ".join(o.id for o in orders)
        self.notify(f"Placed {len(orders)} order(s): {ids}")
        self.dismiss(True)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)
