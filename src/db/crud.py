# src/db/crud.py
from __future__ import annotations

import random
from datetime import datetime
from typing import Iterable, List, Optional

import aiosqlite

from db import models
from db.database import connect
from ordering.errors import BatchWriteError
from utils.logger import get_logger

_logger = get_logger(__name__)


def _to_int(val) -> Optional[int]:
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


# ---------------------------
# Row mapping
# ---------------------------


def _row_to_promotion(row) -> models.Promotion:
    if row["promo_type"] != "BUNDLE":
        return models.NO_PROMOTION
    return models.Bundle(
        buy=int(row["promo_buy"]),
        get=int(row["promo_get"]),
        note=row["promo_note"] or "",
        avg_price_display=_to_int(row["promo_avg_price"]),
    )


def _row_to_product(row) -> models.Product:
    return models.Product(
        id=row["id"],
        name=row["name"],
        brand=row["brand"],
        cost_price=int(row["cost_price"]),
        is_active=bool(row["is_active"]),
        is_featured=bool(row["is_featured"]),
        promotion=_row_to_promotion(row),
    )


def _row_to_line(row) -> models.OrderLineItem:
    return models.OrderLineItem(
        product_id=row["product_id"],
        product_name=row["product_name"],
        brand=row["brand"],
        quantity=int(row["quantity"]),
        free_quantity=int(row["free_quantity"]),
        bundle_quantity=_to_int(row["bundle_quantity"]),
        unit_price=int(row["unit_price"]),
        total_price=int(row["total_price"]),
        status=models.OrderStatus(row["status"]),
        note=row["note"] or "",
    )


def _row_to_order(row, lines: List[models.OrderLineItem]) -> models.Order:
    return models.Order(
        id=row["id"],
        user_id=row["user_id"],
        user_name=row["user_name"],
        timestamp=datetime.fromisoformat(row["ts"]),
        pricing_mode=models.PricingMode(row["pricing_mode"]),
        status=models.OrderStatus(row["status"]),
        items=tuple(lines),
        total_amount=int(row["total_amount"]),
    )


# ---------------------------
# Auth
# ---------------------------


async def login(name: str) -> Optional[models.User]:
    """Return the roster User whose name matches (trimmed, case-insensitive); otherwise None."""
    name = (name or "").strip()
    if not name:
        return None
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT uid, name, role FROM users WHERE LOWER(name) = LOWER(?);",
            (name,),
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return models.User(uid=row["uid"], name=row["name"], role=row["role"])


# ---------------------------
# Announcement
# ---------------------------


async def get_announcement() -> Optional[models.Announcement]:
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT title, content, is_active FROM announcement WHERE id = 1;"
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return models.Announcement(
        title=row["title"], content=row["content"], is_active=bool(row["is_active"])
    )


async def save_announcement(announcement: models.Announcement) -> None:
    async with connect() as conn:
        await conn.execute(
            """
            INSERT INTO announcement (id, title, content, is_active)
            VALUES (1, ?, ?, ?)
            ON CONFLICT (id) DO UPDATE SET
                title = excluded.title,
                content = excluded.content,
                is_active = excluded.is_active;
            """,
            (announcement.title, announcement.content, int(announcement.is_active)),
        )
        await conn.commit()


# ---------------------------
# Products
# ---------------------------


async def get_products() -> List[models.Product]:
    """All catalog products (active or not) ordered by id."""
    async with connect() as conn:
        cur = await conn.execute("SELECT * FROM products ORDER BY id;")
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_product(row) for row in rows]


async def get_product(product_id: str) -> Optional[models.Product]:
    async with connect() as conn:
        cur = await conn.execute("SELECT * FROM products WHERE id = ?;", (product_id,))
        row = await cur.fetchone()
        await cur.close()
    return _row_to_product(row) if row else None


async def generate_product_id() -> str:
    """Generate a product id that isn't already in use."""
    async with connect() as conn:
        while True:
            candidate = f"p{random.randint(1000, 999999)}"
            cur = await conn.execute(
                "SELECT 1 FROM products WHERE id = ?;", (candidate,)
            )
            exists = await cur.fetchone()
            await cur.close()
            if not exists:
                return candidate


async def save_product(product: models.Product) -> None:
    """Insert the product, or overwrite every field of an existing one."""
    promo = product.promotion
    if isinstance(promo, models.Bundle):
        promo_fields = ("BUNDLE", promo.buy, promo.get, promo.avg_price_display, promo.note)
    else:
        promo_fields = (None, None, None, None, None)
    async with connect() as conn:
        await conn.execute(
            """
            INSERT INTO products (id, name, brand, cost_price, is_active, is_featured,
                                  promo_type, promo_buy, promo_get, promo_avg_price, promo_note)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (id) DO UPDATE SET
                name = excluded.name,
                brand = excluded.brand,
                cost_price = excluded.cost_price,
                is_active = excluded.is_active,
                is_featured = excluded.is_featured,
                promo_type = excluded.promo_type,
                promo_buy = excluded.promo_buy,
                promo_get = excluded.promo_get,
                promo_avg_price = excluded.promo_avg_price,
                promo_note = excluded.promo_note;
            """,
            (
                product.id,
                product.name,
                product.brand,
                product.cost_price,
                int(product.is_active),
                int(product.is_featured),
                *promo_fields,
            ),
        )
        await conn.commit()


async def delete_product(product_id: str) -> bool:
    """Remove a product from the catalog. Placed orders keep their snapshots."""
    async with connect() as conn:
        res = await conn.execute("DELETE FROM products WHERE id = ?;", (product_id,))
        await conn.commit()
        return res.rowcount > 0


# ---------------------------
# Orders
# ---------------------------


async def _insert_lines(conn: aiosqlite.Connection, order: models.Order) -> None:
    await conn.executemany(
        """
        INSERT INTO orderlines (ono, line_no, product_id, product_name, brand, quantity,
                                free_quantity, bundle_quantity, unit_price, total_price,
                                status, note)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
        """,
        [
            (
                order.id,
                line_no,
                item.product_id,
                item.product_name,
                item.brand,
                item.quantity,
                item.free_quantity,
                item.bundle_quantity,
                item.unit_price,
                item.total_price,
                item.status.value,
                item.note,
            )
            for line_no, item in enumerate(order.items, start=1)
        ],
    )


async def _overwrite_order(conn: aiosqlite.Connection, order: models.Order) -> bool:
    """Replace the whole stored order document. False if the order doesn't exist."""
    res = await conn.execute(
        """
        UPDATE orders
        SET user_id = ?, user_name = ?, ts = ?, pricing_mode = ?, status = ?, total_amount = ?
        WHERE id = ?;
        """,
        (
            order.user_id,
            order.user_name,
            order.timestamp.isoformat(),
            order.pricing_mode.value,
            order.status.value,
            order.total_amount,
            order.id,
        ),
    )
    if res.rowcount == 0:
        return False
    await conn.execute("DELETE FROM orderlines WHERE ono = ?;", (order.id,))
    await _insert_lines(conn, order)
    return True


async def get_orders() -> List[models.Order]:
    """Every order with its lines, newest first."""
    async with connect() as conn:
        cur = await conn.execute("SELECT * FROM orders ORDER BY ts DESC, id;")
        order_rows = await cur.fetchall()
        await cur.close()
        cur = await conn.execute("SELECT * FROM orderlines ORDER BY ono, line_no;")
        line_rows = await cur.fetchall()
        await cur.close()

    lines_by_order: dict[str, List[models.OrderLineItem]] = {}
    for row in line_rows:
        lines_by_order.setdefault(row["ono"], []).append(_row_to_line(row))
    return [_row_to_order(row, lines_by_order.get(row["id"], [])) for row in order_rows]


async def get_order(order_id: str) -> Optional[models.Order]:
    async with connect() as conn:
        cur = await conn.execute("SELECT * FROM orders WHERE id = ?;", (order_id,))
        order_row = await cur.fetchone()
        await cur.close()
        if not order_row:
            return None
        cur = await conn.execute(
            "SELECT * FROM orderlines WHERE ono = ? ORDER BY line_no;", (order_id,)
        )
        line_rows = await cur.fetchall()
        await cur.close()
    return _row_to_order(order_row, [_row_to_line(row) for row in line_rows])


async def _insert_order(conn: aiosqlite.Connection, order: models.Order) -> None:
    await conn.execute(
        """
        INSERT INTO orders (id, user_id, user_name, ts, pricing_mode, status, total_amount)
        VALUES (?, ?, ?, ?, ?, ?, ?);
        """,
        (
            order.id,
            order.user_id,
            order.user_name,
            order.timestamp.isoformat(),
            order.pricing_mode.value,
            order.status.value,
            order.total_amount,
        ),
    )
    await _insert_lines(conn, order)


async def create_order(order: models.Order) -> None:
    async with connect() as conn:
        await _insert_order(conn, order)
        await conn.commit()
    _logger.debug(f"Created order {order.id} with {len(order.items)} line(s)")


async def create_orders(orders: Iterable[models.Order]) -> int:
    """
    Insert several orders in one transaction (one checkout, one per pricing
    mode). Any failure rolls back every insert and raises BatchWriteError.
    """
    orders = list(orders)
    if not orders:
        return 0
    async with connect() as conn:
        try:
            for order in orders:
                await _insert_order(conn, order)
            await conn.commit()
        except Exception as exc:
            await conn.rollback()
            _logger.error(f"Creating {len(orders)} order(s) failed, rolled back: {exc}")
            raise BatchWriteError([o.id for o in orders], str(exc)) from exc
    _logger.debug(f"Created {len(orders)} order(s) in one transaction")
    return len(orders)


async def update_order(order: models.Order) -> bool:
    """Overwrite a stored order (last writer wins). Return True if it existed."""
    async with connect() as conn:
        updated = await _overwrite_order(conn, order)
        await conn.commit()
    return updated


async def update_order_batch(orders: Iterable[models.Order]) -> int:
    """
    Overwrite several orders in one transaction and return how many existed.
    Orders no longer stored are skipped. Any failure rolls back the whole batch
    and raises BatchWriteError.
    """
    orders = list(orders)
    if not orders:
        return 0
    async with connect() as conn:
        try:
            updated = 0
            for order in orders:
                if await _overwrite_order(conn, order):
                    updated += 1
            await conn.commit()
        except Exception as exc:
            await conn.rollback()
            _logger.error(f"Batch update failed, rolled back: {exc}")
            raise BatchWriteError([o.id for o in orders], str(exc)) from exc
    _logger.info(f"Batch updated {updated} of {len(orders)} order(s)")
    return updated


async def delete_order(order_id: str) -> bool:
    async with connect() as conn:
        res = await conn.execute("DELETE FROM orders WHERE id = ?;", (order_id,))
        await conn.commit()
        return res.rowcount > 0
