"""
Read-only aggregations over orders: the brand view, the dashboard and the
monthly pivot export.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from db.models import Order, OrderStatus
from ordering.checkout import BUNDLE_NAME_SUFFIX

CSV_BOM = "\ufeff"


@dataclass
class BrandViewEntry:
    order_id: str
    user_name: str
    quantity: int
    free_quantity: int
    order_status: OrderStatus
    line_status: OrderStatus


@dataclass
class BrandViewProduct:
    product_id: str
    name: str
    total_units: int = 0  # paid + free
    entries: List[BrandViewEntry] = field(default_factory=list)


def brand_view(orders: Iterable[Order]) -> Dict[str, Dict[str, BrandViewProduct]]:
    """brand -> product id -> every order line of that product."""
    view: Dict[str, Dict[str, BrandViewProduct]] = {}
    for order in orders:
        for item in order.items:
            products = view.setdefault(item.brand, {})
            entry = products.setdefault(
                item.product_id, BrandViewProduct(item.product_id, item.product_name)
            )
            entry.total_units += item.physical_quantity
            entry.entries.append(
                BrandViewEntry(
                    order_id=order.id,
                    user_name=order.user_name,
                    quantity=item.quantity,
                    free_quantity=item.free_quantity,
                    order_status=order.status,
                    line_status=item.status,
                )
            )
    return view


def dashboard_summary(orders: Iterable[Order]) -> Dict[str, int]:
    orders = list(orders)
    return {
        "total_orders": len(orders),
        "total_units": sum(i.physical_quantity for o in orders for i in o.items),
        "total_revenue": sum(o.total_amount for o in orders),
    }


def product_ranking(orders: Iterable[Order], descending: bool = True) -> List[dict]:
    """Physical units moved per product, sorted by quantity."""
    ranking: Dict[str, dict] = {}
    for order in orders:
        for item in order.items:
            row = ranking.setdefault(
                item.product_id,
                {
                    "product_id": item.product_id,
                    "name": item.product_name.replace(BUNDLE_NAME_SUFFIX, ""),
                    "brand": item.brand,
                    "quantity": 0,
                },
            )
            row["quantity"] += item.physical_quantity
    return sorted(ranking.values(), key=lambda r: r["quantity"], reverse=descending)


def orders_in_month(orders: Iterable[Order], year: int, month: int) -> List[Order]:
    return [
        o for o in orders if o.timestamp.year == year and o.timestamp.month == month
    ]


def monthly_pivot(orders: Iterable[Order], year: int, month: int):
    """
    Return (user_columns, rows) for the month. Each row is
    [brand, product name, units per user..., row total, note] where units are
    paid + free. Users are sorted by name, products keep first-seen order.
    """
    monthly = orders_in_month(orders, year, month)
    users = sorted({o.user_name for o in monthly})

    products: Dict[str, dict] = {}
    for order in monthly:
        for item in order.items:
            p = products.setdefault(
                item.product_id,
                {
                    "brand": item.brand,
                    "name": item.product_name,
                    "note": item.note or "",
                    "per_user": {},
                    "total": 0,
                },
            )
            qty = item.physical_quantity
            p["per_user"][order.user_name] = p["per_user"].get(order.user_name, 0) + qty
            p["total"] += qty

    rows = [
        [p["brand"], p["name"], *(p["per_user"].get(u, 0) for u in users), p["total"], p["note"]]
        for p in products.values()
    ]
    return users, rows


def render_monthly_csv(orders: Iterable[Order], year: int, month: int) -> str:
    """Monthly pivot as CSV text, prefixed with a BOM for spreadsheet apps."""
    users, rows = monthly_pivot(orders, year, month)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["Brand", "Product", *users, "Total", "Note"])
    writer.writerows(rows)
    return CSV_BOM + buf.getvalue()
