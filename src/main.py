from typing import List

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from db.models import Order
from ordering.scheduler import AutoLockScheduler
from ordering.service import RequisitionService
from utils import config
from utils.logger import get_logger
from utils.messages import (
    ModeSwitchedMessage,
    OrdersChangedMessage,
    QuitRequestedMessage,
    UserLogoutMessage,
)
from utils.state import GlobalState
from views.modal_dialog import AnnouncementModal
from views.scr_admin_dashboard import AdminDashboardScreen
from views.scr_admin_inventory import AdminInventoryScreen
from views.scr_admin_orders import AdminOrdersScreen
from views.scr_cart import CartScreen
from views.scr_catalog import CatalogScreen
from views.scr_login import LoginScreen
from views.scr_my_orders import MyOrdersScreen

_logger = get_logger(__name__)


class RequisitionApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "shop": CatalogScreen,
        "cart": CartScreen,
        "my_orders": MyOrdersScreen,
        "admin_orders": AdminOrdersScreen,
        "admin_inventory": AdminInventoryScreen,
        "admin_dashboard": AdminDashboardScreen,
    }

    STAFF_MODES = {"shop": "Catalog", "cart": "Cart", "my_orders": "My Orders"}
    ADMIN_MODES = {
        "admin_orders": "Order Triage",
        "admin_inventory": "Inventory",
        "admin_dashboard": "Dashboard",
    }

    CSS_PATH = "styles/app.tcss"

    state: GlobalState
    service: RequisitionService
    scheduler: AutoLockScheduler

    def __init__(self):
        super().__init__()
        self.state = GlobalState()
        self.service = RequisitionService()
        self.scheduler = AutoLockScheduler(
            self.service.lock_all_pending, on_done=self.handle_auto_lock_done
        )
        self._unsubscribe = self.service.subscribe(self.forward_orders)

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        await self.service.refresh()
        self.service.start_polling(config.POLL_SECONDS)
        self.main_flow()

    def forward_orders(self, orders: List[Order]) -> None:
        # messages do not travel down the DOM, so hand them to the active screen
        self.screen.post_message(OrdersChangedMessage(orders))

    def handle_auto_lock_done(self, scheduler: AutoLockScheduler) -> None:
        if scheduler.last_error is not None:
            self.notify(f"Auto-lock failed: {scheduler.last_error}", severity="error")
        # a failed lock never refreshes, so re-render the lock status here
        self.forward_orders(self.service.orders)

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(ModeSwitchedMessage)
    def handle_mode_switched(self, message: ModeSwitchedMessage):
        _logger.debug(f"Mode switched: {message.old_mode} -> {message.new_mode}")

    @on(UserLogoutMessage)
    def handle_user_logout(self):
        _logger.info(f"{self.state.user.name if self.state.user else 'Unknown user'} logged out")
        self.state.end_session()
        self.notify("Logout successful.")
        self.main_flow()

    @on(QuitRequestedMessage)
    def handle_quit(self):
        self.scheduler.cancel()
        self.service.stop_polling()
        self._unsubscribe()
        self.exit()

    @work
    async def main_flow(self):
        await self.push_screen_wait(LoginScreen())

        if not self.state.announcement_seen:
            announcement = await self.service.get_announcement()
            if announcement is not None and announcement.is_active:
                await self.push_screen_wait(AnnouncementModal(announcement))
            self.state.announcement_seen = True

        target = "admin_orders" if self.state.is_admin else "shop"
        self.post_message(ModeSwitchedMessage(self.current_mode, target))
        await self.switch_mode(target)


def run() -> None:
    RequisitionApp().run()


if __name__ == "__main__":
    run()
