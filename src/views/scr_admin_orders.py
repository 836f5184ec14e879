import os
from datetime import datetime
from typing import Set

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input, Label, TabbedContent, TabPane

from ordering import reports
from ordering.errors import NothingToUpdate, RequisitionError
from ordering.fulfillment import BatchAction
from utils import config
from utils.logger import get_logger
from utils.messages import OrdersChangedMessage
from utils.pure import format_currency, format_timestamp, status_label
from views.base_screen import BaseScreen
from views.modal_dialog import ConfirmModal

_logger = get_logger(__name__)

LOCK_TIME_FORMAT = "%Y-%m-%d %H:%M"


class AdminOrdersScreen(BaseScreen):
    """
    Order triage for administrators.

    - By person: whole orders are selected and accepted or packed.
    - By brand: products are selected; their lines across every order are
      accepted, packed, marked out of stock or restored.
    """

    BINDINGS = [
        Binding("enter", "noop", "Toggle Selection", show=True, key_display="⏎"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._selected_orders: Set[str] = set()
        self._selected_products: Set[str] = set()

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="tabs-admin-orders"):
            with TabPane("By Person", id="tab-person"):
                with Vertical():
                    yield DataTable(id="table-person")
                    with Horizontal(classes="action-bar"):
                        yield Button("Accept (lock)", id="btn-person-accept", variant="success")
                        yield Button("Packed (lock)", id="btn-person-pack", variant="primary")
                        yield Button("Export Month CSV", id="btn-export")
                    with Horizontal(classes="action-bar"):
                        yield Input(
                            placeholder="auto-lock at YYYY-MM-DD HH:MM",
                            id="input-lock-at",
                        )
                        yield Button("Arm Auto-Lock", id="btn-arm-lock")
                        yield Button("Disarm", id="btn-disarm-lock")
                    yield Label("", id="label-lock-info")
            with TabPane("By Brand", id="tab-brand"):
                with Vertical():
                    yield DataTable(id="table-brand")
                    with Horizontal(classes="action-bar"):
                        yield Button("Accept", id="btn-brand-accept", variant="success")
                        yield Button("Packed", id="btn-brand-pack", variant="primary")
                        yield Button("Out of Stock", id="btn-brand-oos", variant="error")
                        yield Button("Restore", id="btn-brand-restore")
                    yield Label(
                        "Accept and Packed also lock every affected order. "
                        "Out of Stock never changes the order status.",
                        classes="hint",
                    )

    def on_mount(self) -> None:
        person = self.query_one("#table-person", DataTable)
        person.cursor_type = "row"
        person.zebra_stripes = True
        person.add_columns("", "Order", "User", "Date", "Mode", "Status", "Items", "Total")

        brand = self.query_one("#table-brand", DataTable)
        brand.cursor_type = "row"
        brand.zebra_stripes = True
        brand.add_columns("", "Brand", "Product", "Units", "Requests")
        self.render_tables()

    @on(ScreenResume)
    @on(OrdersChangedMessage)
    def handle_refresh(self) -> None:
        self.render_tables()

    # ---------------------------
    # Rendering
    # ---------------------------

    def render_tables(self) -> None:
        orders = self.app.service.orders
        order_ids = {o.id for o in orders}
        self._selected_orders &= order_ids

        person = self.query_one("#table-person", DataTable)
        cursor = person.cursor_row
        person.clear()
        for o in orders:
            person.add_row(
                "[x]" if o.id in self._selected_orders else "[ ]",
                o.id,
                o.user_name,
                format_timestamp(o.timestamp),
                o.pricing_mode.value.title(),
                status_label(o.status),
                ", ".join(f"{i.product_name} x{i.physical_quantity}" for i in o.items),
                format_currency(o.total_amount),
                key=o.id,
            )
        if person.row_count:
            person.move_cursor(row=min(cursor, person.row_count - 1))

        brand = self.query_one("#table-brand", DataTable)
        cursor = brand.cursor_row
        brand.clear()
        view = reports.brand_view(orders)
        product_ids = set()
        for brand_name in sorted(view):
            for product in view[brand_name].values():
                product_ids.add(product.product_id)
                requests = ", ".join(
                    f"{e.user_name} {e.quantity}"
                    + (f"+{e.free_quantity}" if e.free_quantity else "")
                    + f" ({status_label(e.line_status)})"
                    for e in product.entries
                )
                brand.add_row(
                    "[x]" if product.product_id in self._selected_products else "[ ]",
                    brand_name,
                    product.name,
                    product.total_units,
                    requests,
                    key=product.product_id,
                )
        self._selected_products &= product_ids
        if brand.row_count:
            brand.move_cursor(row=min(cursor, brand.row_count - 1))

        self._render_lock_info()

    def _render_lock_info(self) -> None:
        scheduler = self.app.scheduler
        label = self.query_one("#label-lock-info", Label)
        if scheduler.is_armed:
            label.update(f"Auto-lock armed for {scheduler.fire_at:{LOCK_TIME_FORMAT}}")
        elif scheduler.last_error is not None:
            label.update(f"Last auto-lock failed: {scheduler.last_error}")
        else:
            label.update("No auto-lock scheduled.")

    @on(DataTable.RowSelected, "#table-person")
    def handle_toggle_order(self, event: DataTable.RowSelected) -> None:
        self._toggle(self._selected_orders, event.row_key.value)
        self.render_tables()

    @on(DataTable.RowSelected, "#table-brand")
    def handle_toggle_product(self, event: DataTable.RowSelected) -> None:
        self._toggle(self._selected_products, event.row_key.value)
        self.render_tables()

    @staticmethod
    def _toggle(selection: Set[str], key: str) -> None:
        if key in selection:
            selection.remove(key)
        else:
            selection.add(key)

    # ---------------------------
    # Person view
    # ---------------------------

    @on(Button.Pressed, "#btn-person-accept")
    def handle_person_accept(self) -> None:
        self.run_order_action(BatchAction.ACCEPTED)

    @on(Button.Pressed, "#btn-person-pack")
    def handle_person_pack(self) -> None:
        self.run_order_action(BatchAction.PACKED)

    @work(exclusive=True, group="batch")
    async def run_order_action(self, action: BatchAction) -> None:
        if not self._selected_orders:
            return
        try:
            updated = await self.app.service.apply_order_action(self._selected_orders, action)
        except RequisitionError as exc:
            self.notify(str(exc), severity="error")
            return
        self._selected_orders.clear()
        self.render_tables()
        self.notify(f"{len(updated)} order(s) updated.")

    @on(Button.Pressed, "#btn-arm-lock")
    def handle_arm_lock(self) -> None:
        raw = self.query_one("#input-lock-at", Input).value.strip()
        try:
            fire_at = datetime.strptime(raw, LOCK_TIME_FORMAT)
        except ValueError:
            self.notify(f"Use the format {LOCK_TIME_FORMAT}.", severity="error")
            return
        try:
            self.app.scheduler.schedule(fire_at)
        except RequisitionError as exc:
            self.notify(str(exc), severity="error")
            return
        self._render_lock_info()
        self.notify("Auto-lock scheduled.")

    @on(Button.Pressed, "#btn-disarm-lock")
    def handle_disarm_lock(self) -> None:
        if self.app.scheduler.cancel():
            self.notify("Auto-lock cancelled.")
        self._render_lock_info()

    @on(Button.Pressed, "#btn-export")
    @work(exclusive=True)
    async def handle_export(self) -> None:
        now = datetime.now()
        try:
            content = await self.app.service.export_monthly_csv(now.year, now.month)
        except RequisitionError as exc:
            self.notify(str(exc), severity="warning")
            return
        os.makedirs(config.EXPORT_DIR, exist_ok=True)
        path = os.path.join(config.EXPORT_DIR, f"Monthly_Export_{now.year}_{now.month}.csv")
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        _logger.info(f"Monthly export written to {path}")
        self.notify(f"Exported to {path}")

    # ---------------------------
    # Brand view
    # ---------------------------

    @on(Button.Pressed, "#btn-brand-accept")
    def handle_brand_accept(self) -> None:
        self.run_product_action(BatchAction.ACCEPTED)

    @on(Button.Pressed, "#btn-brand-pack")
    def handle_brand_pack(self) -> None:
        self.run_product_action(BatchAction.PACKED)

    @on(Button.Pressed, "#btn-brand-oos")
    def handle_brand_oos(self) -> None:
        self.run_product_action(BatchAction.OUT_OF_STOCK)

    @on(Button.Pressed, "#btn-brand-restore")
    def handle_brand_restore(self) -> None:
        self.run_product_action(BatchAction.RESTORE)

    @work(exclusive=True, group="batch")
    async def run_product_action(self, action: BatchAction) -> None:
        if not self._selected_products:
            return
        if action in (BatchAction.ACCEPTED, BatchAction.PACKED):
            if not await self.app.push_screen_wait(
                ConfirmModal("This also locks every order containing these products. Continue?")
            ):
                return
        try:
            updated = await self.app.service.apply_product_action(
                self._selected_products, action
            )
        except NothingToUpdate:
            self.notify("No orders contain the selected products.", severity="warning")
            return
        except RequisitionError as exc:
            self.notify(str(exc), severity="error")
            return
        self._selected_products.clear()
        self.render_tables()
        self.notify(f"{len(updated)} order(s) updated.")
