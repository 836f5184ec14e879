# provide dataclass models

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Tuple, Union


class PricingMode(str, Enum):
    DAILY = "DAILY"  # 50% of cost
    SPECIAL = "SPECIAL"  # 80% of cost


class OrderStatus(str, Enum):
    """Shared by orders and order lines. COMPLETED is order-level only."""

    PENDING = "PENDING"
    LOCKED = "LOCKED"
    PACKED = "PACKED"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class User:
    uid: str
    name: str
    role: Literal["admin", "staff"]

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass(frozen=True)
class NoPromotion:
    pass


@dataclass(frozen=True)
class Bundle:
    """Sold in sets of `buy` paid units plus `get` free units."""

    buy: int
    get: int
    note: str = ""
    avg_price_display: Optional[int] = None

    def __post_init__(self):
        if self.buy < 1:
            raise ValueError("Bundle must have at least one paid unit per set.")
        if self.get < 0:
            raise ValueError("Bundle free units cannot be negative.")

    @property
    def units_per_set(self) -> int:
        return self.buy + self.get


Promotion = Union[NoPromotion, Bundle]

NO_PROMOTION = NoPromotion()


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    brand: str
    cost_price: int
    is_active: bool = True
    is_featured: bool = False
    promotion: Promotion = NO_PROMOTION

    @property
    def is_bundle(self) -> bool:
        return isinstance(self.promotion, Bundle)


@dataclass(frozen=True)
class CartItem:
    product_id: str
    quantity: int  # sets for bundle lines, units otherwise
    pricing_mode: PricingMode
    snapshot_price: int  # per-unit price frozen at add time
    promotion: Promotion = NO_PROMOTION  # bundle terms frozen at add time

    @property
    def is_bundle(self) -> bool:
        return isinstance(self.promotion, Bundle)


@dataclass(frozen=True)
class OrderLineItem:
    product_id: str
    product_name: str
    brand: str
    quantity: int  # paid units
    free_quantity: int
    unit_price: int
    total_price: int  # unit_price * quantity, free units excluded
    status: OrderStatus = OrderStatus.PENDING
    note: str = ""
    bundle_quantity: Optional[int] = None  # sets ordered; set only on bundle lines

    @property
    def is_bundle(self) -> bool:
        return self.bundle_quantity is not None

    @property
    def physical_quantity(self) -> int:
        return self.quantity + self.free_quantity


@dataclass(frozen=True)
class Order:
    id: str
    user_id: str
    user_name: str
    timestamp: datetime
    pricing_mode: PricingMode
    status: OrderStatus = OrderStatus.PENDING
    items: Tuple[OrderLineItem, ...] = field(default_factory=tuple)
    total_amount: int = 0


@dataclass(frozen=True)
class Announcement:
    title: str
    content: str
    is_active: bool = True
