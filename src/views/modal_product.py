from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Markdown

from db.models import Bundle, Product
from ordering import pricing
from utils.pure import format_currency, markdown_table


class ProductModal(ModalScreen[bool]):
    """
    Product detail with a +/- stepper on the cart line for the session's pricing mode.
    Quantities count sets for bundle products. Returns True if the cart changed.
    """

    def __init__(self, product: Product) -> None:
        super().__init__()
        self._product = product
        self._changed = False

    def compose(self) -> ComposeResult:
        with Vertical(id="div-prod-detail"):
            yield Markdown("", id="md-prod")
            yield Label("", id="label-cart-qty")
            with Horizontal():
                yield Button("-", id="btn-sub-qty")
                yield Button("+", id="btn-add-qty", variant="primary")
                yield Button("Done", id="btn-quit")

    async def on_mount(self):
        p = self._product
        mode = self.app.state.pricing_mode
        rows = [["Brand", p.brand], ["Name", p.name]]
        if isinstance(p.promotion, Bundle):
            promo = p.promotion
            rows += [
                ["Unit price", format_currency(p.cost_price)],
                ["Set", f"buy {promo.buy} get {promo.get} free"],
                ["Set price", format_currency(pricing.bundle_set_price(p.cost_price, promo))],
                [
                    "Average per unit",
                    format_currency(pricing.bundle_average_price(p.cost_price, promo)),
                ],
            ]
            if promo.note:
                rows.append(["Note", promo.note])
        else:
            rows += [
                ["Cost", format_currency(p.cost_price)],
                [f"{mode.value.title()} price", format_currency(pricing.price(p.cost_price, mode))],
            ]
        await self.query_one("#md-prod", Markdown).update(
            f"### {p.name}\n\n" + markdown_table(["Attribute", "Value"], rows)
        )
        self._render_qty()
        self.query_one("#btn-add-qty").focus()

    def _render_qty(self) -> None:
        state = self.app.state
        qty = state.cart.quantity_of(self._product.id, state.pricing_mode)
        unit = "set(s)" if self._product.is_bundle else "unit(s)"
        self.query_one("#label-cart-qty", Label).update(
            f"In cart ({state.pricing_mode.value.title()}): {qty} {unit}"
        )
        self.query_one("#btn-sub-qty", Button).disabled = qty == 0

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(self._changed)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self):
        self.app.state.cart.add(self._product, self.app.state.pricing_mode)
        self._changed = True
        self._render_qty()

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self):
        self.app.state.cart.adjust(self._product, self.app.state.pricing_mode, -1)
        self._changed = True
        self._render_qty()

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(self._changed)
