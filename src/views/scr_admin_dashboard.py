from textual import on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, MarkdownViewer

from ordering import reports
from utils.messages import ModeSwitchedMessage, OrdersChangedMessage
from utils.pure import format_currency, markdown_table
from views.base_screen import BaseScreen


class AdminDashboardScreen(BaseScreen):
    """
    Totals over every order on record plus a product ranking by units moved.
    """

    descending = True

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(classes="action-bar"):
                yield Button("Sort: most first", id="btn-sort")
            yield MarkdownViewer(id="md-dashboard", show_table_of_contents=False)

    def on_mount(self) -> None:
        self.handle_reload()

    @on(Button.Pressed, "#btn-sort")
    def handle_sort(self) -> None:
        self.descending = not self.descending
        self.query_one("#btn-sort", Button).label = (
            "Sort: most first" if self.descending else "Sort: least first"
        )
        self.handle_reload()

    @on(OrdersChangedMessage)
    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    def handle_reload(self) -> None:
        orders = self.app.service.orders
        summary = reports.dashboard_summary(orders)
        ranking = reports.product_ranking(orders, descending=self.descending)

        summary_md = (
            "### Summary\n\n"
            f"- Orders: {summary['total_orders']}\n"
            f"- Units (paid + free): {summary['total_units']}\n"
            f"- Revenue: {format_currency(summary['total_revenue'])}\n\n"
        )
        rows = [
            [idx, r["brand"], r["name"], r["quantity"]]
            for idx, r in enumerate(ranking, start=1)
        ]
        ranking_md = "### Product Ranking\n\n" + (
            markdown_table(["#", "Brand", "Product", "Units"], rows, ["r", "l", "l", "r"])
            if rows
            else "_No orders yet._"
        )
        self.query_one("#md-dashboard", MarkdownViewer).document.update(
            summary_md + ranking_md
        )
