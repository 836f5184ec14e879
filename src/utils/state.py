from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from db.models import PricingMode, User
from ordering.cart import Cart
from utils import config


def _default_pricing_mode() -> PricingMode:
    try:
        return PricingMode(config.DEFAULT_PRICING_MODE)
    except ValueError:
        return PricingMode.SPECIAL


@dataclass
class GlobalState:
    """
    Session state shared by screens.

    Fields:
      - user: the logged-in roster user, None before login
      - pricing_mode: mode applied to products added to the cart
      - cart: the session cart, dropped on logout
      - announcement_seen: the announcement is shown once per login session
    """

    user: Optional[User] = None
    pricing_mode: PricingMode = field(default_factory=_default_pricing_mode)
    cart: Cart = field(default_factory=Cart)
    announcement_seen: bool = False

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.is_admin

    def start_session(self, user: User) -> None:
        self.user = user
        self.cart = Cart()
        self.announcement_seen = False

    def end_session(self) -> None:
        """Forget the user and the cart. Only called on logout."""
        self.user = None
        self.cart = Cart()
        self.announcement_seen = False
        self.pricing_mode = _default_pricing_mode()

    def toggle_pricing_mode(self) -> PricingMode:
        self.pricing_mode = (
            PricingMode.DAILY
            if self.pricing_mode == PricingMode.SPECIAL
            else PricingMode.SPECIAL
        )
        return self.pricing_mode
