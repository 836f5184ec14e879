from __future__ import annotations

from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.validation import Number
from textual.widgets import (
    Button,
    Checkbox,
    DataTable,
    Input,
    Label,
    Rule,
    TabbedContent,
    TabPane,
    TextArea,
)

from db.models import NO_PROMOTION, Announcement, Bundle, PricingMode, Product
from ordering import pricing
from utils.messages import OrdersChangedMessage
from utils.pure import format_currency
from views.base_screen import BaseScreen
from views.modal_dialog import ConfirmModal


class AdminInventoryScreen(BaseScreen):
    """
    Administrators maintain the catalog (prices, visibility, bundle terms)
    and the login announcement.
    """

    current_pid: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="tabs-inventory"):
            with TabPane("Products", id="tab-products"):
                with Vertical():
                    yield DataTable(id="table-products")
                    with Horizontal(classes="form-row"):
                        with Vertical():
                            yield Label("Name")
                            yield Input(id="input-name")
                        with Vertical():
                            yield Label("Brand")
                            yield Input(id="input-brand")
                        with Vertical():
                            yield Label("Cost Price")
                            yield Input(
                                id="input-cost",
                                type="integer",
                                validators=[Number(minimum=0)],
                            )
                    with Horizontal(classes="form-row"):
                        yield Checkbox("Active", True, id="chk-active")
                        yield Checkbox("Featured", id="chk-featured")
                        yield Checkbox("Bundle", id="chk-bundle")
                    with Horizontal(classes="form-row", id="hort-bundle"):
                        with Vertical():
                            yield Label("Buy")
                            yield Input(
                                "2", id="input-buy", type="integer", validators=[Number(minimum=1)]
                            )
                        with Vertical():
                            yield Label("Get free")
                            yield Input(
                                "1", id="input-get", type="integer", validators=[Number(minimum=0)]
                            )
                        with Vertical():
                            yield Label("Avg shown")
                            yield Input(
                                id="input-avg",
                                placeholder="auto",
                                type="integer",
                                validators=[Number(minimum=0)],
                            )
                        with Vertical():
                            yield Label("Note")
                            yield Input(id="input-note")
                    yield Label("", id="label-price-preview")
                    with Horizontal(classes="action-bar"):
                        yield Button("New", id="btn-new")
                        yield Button("Save", id="btn-save", variant="success")
                        yield Button("Delete", id="btn-delete", variant="error")
            with TabPane("Announcement", id="tab-announcement"):
                with Vertical():
                    yield Label("Title")
                    yield Input(id="input-ann-title")
                    yield Label("Content (markdown)")
                    yield TextArea(id="text-ann-content")
                    yield Checkbox("Show at login", True, id="chk-ann-active")
                    yield Rule(line_style="dashed")
                    yield Button("Save Announcement", id="btn-save-ann", variant="success")

    def on_mount(self) -> None:
        table = self.query_one("#table-products", DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Brand", "Name", "Cost", "Daily", "Special", "Flags")
        self.render_products()
        self.clear_form()
        self.load_announcement()

    @on(ScreenResume)
    @on(OrdersChangedMessage)
    def handle_refresh(self) -> None:
        self.render_products()

    def render_products(self) -> None:
        table = self.query_one("#table-products", DataTable)
        cursor = table.cursor_row
        table.clear()
        for p in self.app.service.products:
            flags = []
            if not p.is_active:
                flags.append("hidden")
            if p.is_featured:
                flags.append("featured")
            if isinstance(p.promotion, Bundle):
                flags.append(f"buy {p.promotion.buy} get {p.promotion.get}")
            table.add_row(
                p.id,
                p.brand,
                p.name,
                format_currency(p.cost_price),
                format_currency(pricing.price(p.cost_price, PricingMode.DAILY)),
                format_currency(pricing.price(p.cost_price, PricingMode.SPECIAL)),
                ", ".join(flags),
                key=p.id,
            )
        if table.row_count:
            table.move_cursor(row=min(cursor, table.row_count - 1))

    @on(DataTable.RowSelected, "#table-products")
    def handle_product_selected(self, event: DataTable.RowSelected) -> None:
        product = self.app.service.product_map().get(event.row_key.value)
        if product is not None:
            self.fill_form(product)

    # ---------------------------
    # Product form
    # ---------------------------

    def fill_form(self, product: Product) -> None:
        self.current_pid = product.id
        self.query_one("#input-name", Input).value = product.name
        self.query_one("#input-brand", Input).value = product.brand
        self.query_one("#input-cost", Input).value = str(product.cost_price)
        self.query_one("#chk-active", Checkbox).value = product.is_active
        self.query_one("#chk-featured", Checkbox).value = product.is_featured

        promo = product.promotion
        is_bundle = isinstance(promo, Bundle)
        self.query_one("#chk-bundle", Checkbox).value = is_bundle
        self.query_one("#input-buy", Input).value = str(promo.buy) if is_bundle else "2"
        self.query_one("#input-get", Input).value = str(promo.get) if is_bundle else "1"
        self.query_one("#input-avg", Input).value = (
            str(promo.avg_price_display)
            if is_bundle and promo.avg_price_display is not None
            else ""
        )
        self.query_one("#input-note", Input).value = promo.note if is_bundle else ""
        self.update_preview()

    def clear_form(self) -> None:
        self.current_pid = None
        for input_id in ("#input-name", "#input-brand", "#input-cost", "#input-avg", "#input-note"):
            self.query_one(input_id, Input).value = ""
        self.query_one("#input-buy", Input).value = "2"
        self.query_one("#input-get", Input).value = "1"
        self.query_one("#chk-active", Checkbox).value = True
        self.query_one("#chk-featured", Checkbox).value = False
        self.query_one("#chk-bundle", Checkbox).value = False
        self.update_preview()

    @on(Checkbox.Changed, "#chk-bundle")
    def handle_bundle_toggle(self) -> None:
        self.update_preview()

    @on(Input.Changed)
    def handle_form_change(self, event: Input.Changed) -> None:
        if event.input.id in ("input-cost", "input-buy", "input-get"):
            self.update_preview()

    def update_preview(self) -> None:
        is_bundle = self.query_one("#chk-bundle", Checkbox).value
        self.query_one("#hort-bundle").set_class(not is_bundle, "hidden")

        label = self.query_one("#label-price-preview", Label)
        try:
            product = self.read_form()
        except ValueError:
            label.update("")
            return
        if isinstance(product.promotion, Bundle):
            set_price = pricing.bundle_set_price(product.cost_price, product.promotion)
            avg = pricing.bundle_average_price(product.cost_price, product.promotion)
            label.update(
                f"Set price {format_currency(set_price)} for "
                f"{product.promotion.units_per_set} units, avg {format_currency(avg)}"
            )
        else:
            label.update(
                f"Daily {format_currency(pricing.price(product.cost_price, PricingMode.DAILY))} / "
                f"Special {format_currency(pricing.price(product.cost_price, PricingMode.SPECIAL))}"
            )

    def read_form(self) -> Product:
        """Build a product from the form; raises ValueError on bad input."""
        name = self.query_one("#input-name", Input).value.strip()
        brand = self.query_one("#input-brand", Input).value.strip()
        if not name or not brand:
            raise ValueError("Name and brand are required.")
        cost = int(self.query_one("#input-cost", Input).value)
        if cost < 0:
            raise ValueError("Cost price cannot be negative.")

        promotion = NO_PROMOTION
        if self.query_one("#chk-bundle", Checkbox).value:
            avg = self.query_one("#input-avg", Input).value.strip()
            promotion = Bundle(
                buy=int(self.query_one("#input-buy", Input).value),
                get=int(self.query_one("#input-get", Input).value),
                note=self.query_one("#input-note", Input).value.strip(),
                avg_price_display=int(avg) if avg else None,
            )

        return Product(
            id=self.current_pid or "",
            name=name,
            brand=brand,
            cost_price=cost,
            is_active=self.query_one("#chk-active", Checkbox).value,
            is_featured=self.query_one("#chk-featured", Checkbox).value,
            promotion=promotion,
        )

    @on(Button.Pressed, "#btn-new")
    def handle_new(self) -> None:
        self.clear_form()
        self.query_one("#input-name", Input).focus()

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        try:
            product = self.read_form()
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        saved = await self.app.service.save_product(product)
        self.current_pid = saved.id
        self.render_products()
        self.notify(f"Saved {saved.name} ({saved.id}).")

    @on(Button.Pressed, "#btn-delete")
    @work(exclusive=True)
    async def handle_delete(self) -> None:
        if self.current_pid is None:
            self.notify("Select a product first.", severity="warning")
            return
        if not await self.app.push_screen_wait(
            ConfirmModal(f"Delete product {self.current_pid}?", tone="error")
        ):
            return
        if await self.app.service.delete_product(self.current_pid):
            self.notify("Product deleted.")
        else:
            self.notify("Product not found.", severity="error")
        self.clear_form()
        self.render_products()

    # ---------------------------
    # Announcement
    # ---------------------------

    @work(exclusive=True, group="announcement")
    async def load_announcement(self) -> None:
        announcement = await self.app.service.get_announcement()
        if announcement is None:
            return
        self.query_one("#input-ann-title", Input).value = announcement.title
        self.query_one("#text-ann-content", TextArea).text = announcement.content
        self.query_one("#chk-ann-active", Checkbox).value = announcement.is_active

    @on(Button.Pressed, "#btn-save-ann")
    @work(exclusive=True, group="announcement")
    async def handle_save_announcement(self) -> None:
        announcement = Announcement(
            title=self.query_one("#input-ann-title", Input).value.strip(),
            content=self.query_one("#text-ann-content", TextArea).text,
            is_active=self.query_one("#chk-ann-active", Checkbox).value,
        )
        await self.app.service.save_announcement(announcement)
        self.notify("Announcement saved.")
