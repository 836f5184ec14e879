from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label

from db.models import Order, OrderStatus
from ordering.errors import RequisitionError
from ordering.fulfillment import LOCKED_STATUSES
from utils.messages import OrdersChangedMessage
from utils.pure import describe_quantity, format_currency, format_timestamp, status_label
from views.base_screen import BaseScreen
from views.modal_dialog import ConfirmModal


class MyOrdersScreen(BaseScreen):
    """
    The logged-in user's requisitions, newest first.

    Layout:
    - Orders table at the top.
    - Lines of the highlighted order below, with quantity and cancel controls.
    """

    # Show some hints in footer
    BINDINGS = [
        Binding("plus", "step(1)", "+1", show=True),
        Binding("minus", "step(-1)", "-1", show=True),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._orders: List[Order] = []
        self._selected_id: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield DataTable(id="table-orders")
            yield Label("", id="label-order-detail")
            yield DataTable(id="table-lines")
        with Horizontal(id="hort-order-controls"):
            yield Button("-1", id="btn-sub-qty")
            yield Button("+1", id="btn-add-qty")
            yield Button("Cancel Order", id="btn-cancel-order", variant="error")

    def on_mount(self) -> None:
        orders_table = self.query_one("#table-orders", DataTable)
        orders_table.cursor_type = "row"
        orders_table.zebra_stripes = True
        orders_table.add_columns("Order", "Date", "Mode", "Status", "Total")

        lines_table = self.query_one("#table-lines", DataTable)
        lines_table.cursor_type = "row"
        lines_table.add_columns("Product", "Brand", "Qty", "Unit Price", "Line Total", "Status", "Note")
        self.render_orders()

    @on(ScreenResume)
    @on(OrdersChangedMessage)
    def handle_refresh(self) -> None:
        self.render_orders()

    def render_orders(self) -> None:
        user = self.app.state.user
        self._orders = self.app.service.orders_for(user.uid) if user else []

        table = self.query_one("#table-orders", DataTable)
        table.clear()
        for o in self._orders:
            table.add_row(
                o.id,
                format_timestamp(o.timestamp),
                o.pricing_mode.value.title(),
                status_label(o.status),
                format_currency(o.total_amount),
                key=o.id,
            )

        ids = [o.id for o in self._orders]
        if self._selected_id in ids:
            table.move_cursor(row=ids.index(self._selected_id))
        else:
            self._selected_id = ids[0] if ids else None
        self.render_lines()

    @on(DataTable.RowHighlighted, "#table-orders")
    def handle_order_highlight(self, event: DataTable.RowHighlighted) -> None:
        self._selected_id = event.row_key.value
        self.render_lines()

    def _selected_order(self) -> Optional[Order]:
        return next((o for o in self._orders if o.id == self._selected_id), None)

    def render_lines(self) -> None:
        order = self._selected_order()
        table = self.query_one("#table-lines", DataTable)
        cursor = table.cursor_row
        table.clear()

        detail = self.query_one("#label-order-detail", Label)
        if order is None:
            detail.update("No requisitions yet.")
            self._set_controls(None)
            return

        detail.update(
            f"Order {order.id} · {status_label(order.status)} · "
            f"{order.pricing_mode.value.title()} · Total {format_currency(order.total_amount)}"
        )
        for idx, item in enumerate(order.items):
            table.add_row(
                item.product_name,
                item.brand,
                describe_quantity(item),
                format_currency(item.unit_price),
                format_currency(item.total_price),
                status_label(item.status),
                item.note,
                key=str(idx),
            )
        if table.row_count:
            table.move_cursor(row=min(cursor, table.row_count - 1))
        self._set_controls(order)

    def _set_controls(self, order: Optional[Order]) -> None:
        editable = order is not None and order.status not in LOCKED_STATUSES
        self.query_one("#btn-sub-qty", Button).disabled = not editable
        self.query_one("#btn-add-qty", Button).disabled = not editable
        self.query_one("#btn-cancel-order", Button).disabled = (
            order is None or order.status != OrderStatus.PENDING
        )

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add(self) -> None:
        self.action_step(1)

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub(self) -> None:
        self.action_step(-1)

    @work(exclusive=True, group="order-edit")
    async def action_step(self, delta: int) -> None:
        order = self._selected_order()
        lines = self.query_one("#table-lines", DataTable)
        if order is None or lines.row_count == 0:
            return
        line_index = lines.cursor_row
        item = order.items[line_index]

        if delta < 0 and len(order.items) == 1 and (item.bundle_quantity or item.quantity) <= 1:
            if not await self.app.push_screen_wait(
                ConfirmModal("This removes the last item and cancels the order. Continue?")
            ):
                return

        try:
            updated = await self.app.service.adjust_quantity(
                self.app.state.user, order.id, line_index, delta
            )
        except RequisitionError as exc:
            self.notify(str(exc), severity="error")
            return
        if updated is None:
            self.notify(f"Order {order.id} had no items left and was removed.")

    @on(Button.Pressed, "#btn-cancel-order")
    @work(exclusive=True, group="order-edit")
    async def handle_cancel(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        if not await self.app.push_screen_wait(
            ConfirmModal(f"Cancel order {order.id}?", tone="error")
        ):
            return
        try:
            await self.app.service.cancel_order(self.app.state.user, order.id)
        except RequisitionError as exc:
            self.notify(str(exc), severity="error")
            return
        self.notify(f"Order {order.id} cancelled.")
