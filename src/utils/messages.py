from typing import List

from textual.message import Message

from db.models import Order


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user logs out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired when user logged in, so the screen can refresh
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired whenever a cart line is added, adjusted or removed, or the cart is emptied.
    Post at App level so every screen sees it.
    """

    bubble = True


class PricingModeChangedMessage(Message):
    """
    Fired when the session switches between DAILY and SPECIAL pricing
    """

    bubble = True


class OrdersChangedMessage(Message):
    """
    Carries the full, current order list after every service refresh.
    Receivers replace what they show; there is no incremental merge.
    """

    bubble = True

    def __init__(self, orders: List[Order]) -> None:
        super().__init__()
        self.orders = orders


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
