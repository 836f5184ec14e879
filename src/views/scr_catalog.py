from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Select

from db.models import Bundle, Product
from ordering import catalog, pricing
from utils.messages import CartChangedMessage, OrdersChangedMessage, PricingModeChangedMessage
from utils.pure import format_currency
from views.base_screen import BaseScreen
from views.modal_product import ProductModal


class CatalogScreen(BaseScreen):
    """
    Product grid for staff. Bundles first, then featured items.
    """

    # only here to be displayed in footer
    BINDINGS = [
        Binding("enter", "noop", "View Product", show=True, key_display="⏎"),
    ]

    def __init__(self):
        super().__init__()
        self._products: dict[str, Product] = {}
        self._brand_options: list[str] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-catalog-filters"):
            yield Select([], prompt="All brands", id="select-brand")
            yield Label("", id="label-pricing-mode")
            yield Button("Switch Pricing", id="btn-toggle-mode")
        yield DataTable(id="table-catalog")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Brand", "Product", "Price", "Promotion", "In Cart")
        self.render_catalog()

    @on(ScreenResume)
    @on(OrdersChangedMessage)
    @on(CartChangedMessage)
    @on(PricingModeChangedMessage)
    @on(Select.Changed, "#select-brand")
    def handle_refresh(self) -> None:
        self.render_catalog()

    @on(Button.Pressed, "#btn-toggle-mode")
    async def handle_toggle_mode(self) -> None:
        mode = self.app.state.toggle_pricing_mode()
        self.notify(f"Now adding items at {mode.value.title()} pricing.")
        self.post_message(PricingModeChangedMessage())
        await self.refresh_sidebar()

    def _price_cell(self, product: Product) -> str:
        if isinstance(product.promotion, Bundle):
            set_price = pricing.bundle_set_price(product.cost_price, product.promotion)
            return f"{format_currency(set_price)} / set"
        return format_currency(pricing.price(product.cost_price, self.app.state.pricing_mode))

    @staticmethod
    def _promotion_cell(product: Product) -> str:
        promo = product.promotion
        if not isinstance(promo, Bundle):
            return "Featured" if product.is_featured else ""
        avg = pricing.bundle_average_price(product.cost_price, promo)
        return f"Buy {promo.buy} get {promo.get} (avg {format_currency(avg)})"

    def render_catalog(self) -> None:
        state = self.app.state
        products = self.app.service.products
        self._products = {p.id: p for p in products}

        select = self.query_one("#select-brand", Select)
        brand = select.value if isinstance(select.value, str) else None
        brand_options = catalog.brands(p for p in products if p.is_active)
        # resetting options clears the selection, so only do it when brands change
        if brand_options != self._brand_options:
            self._brand_options = brand_options
            select.set_options([(b, b) for b in brand_options])
            if brand in brand_options:
                select.value = brand
            else:
                brand = None

        self.query_one("#label-pricing-mode", Label).update(
            f"Pricing: {state.pricing_mode.value.title()}"
        )

        table = self.query_one(DataTable)
        table.clear()
        for p in catalog.visible_products(products, brand):
            qty = state.cart.quantity_of(p.id, state.pricing_mode)
            table.add_row(
                p.brand,
                p.name,
                self._price_cell(p),
                self._promotion_cell(p),
                str(qty) if qty else "",
                key=p.id,
            )

    @on(DataTable.RowSelected, "#table-catalog")
    @work()
    async def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        product = self._products.get(event.row_key.value)
        if product is None:
            return
        if await self.app.push_screen_wait(ProductModal(product)):
            self.render_catalog()
            await self.refresh_sidebar()
