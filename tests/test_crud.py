import os
import tempfile
import unittest
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime

from db import crud
from db import database as db_database
from db.models import (
    NO_PROMOTION,
    Announcement,
    Bundle,
    Order,
    OrderLineItem,
    OrderStatus,
    PricingMode,
    Product,
)
from ordering.errors import BatchWriteError


def sample_order(oid: str, ts: datetime, user_id: str = "alice") -> Order:
    lines = (
        OrderLineItem(
            product_id="p4",
            product_name="Hair Color Cream (Reds) (Bundle Set)",
            brand="Wella",
            quantity=2,
            free_quantity=1,
            bundle_quantity=1,
            unit_price=230,
            total_price=460,
            note="Buy 2 get 1 free",
        ),
        OrderLineItem(
            product_id="p1",
            product_name="Washi Masking Tape",
            brand="MT",
            quantity=3,
            free_quantity=0,
            unit_price=80,
            total_price=240,
        ),
    )
    return Order(
        id=oid,
        user_id=user_id,
        user_name=user_id.title(),
        timestamp=ts,
        pricing_mode=PricingMode.SPECIAL,
        items=lines,
        total_amount=700,
    )


class CrudTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        # Point the DB to a temporary file and force re-initialization
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database.DB_PATH = self.db_path
        db_database._initialized = False

    async def asyncSetUp(self):
        # Touch initialization by opening a connection
        async with db_database.connect() as conn:
            cur = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table';"
            )
            await cur.fetchall()
            await cur.close()

    def tearDown(self):
        self.temp_dir.cleanup()

    # ---------- Auth ----------

    async def test_login_by_name(self):
        user = await crud.login("  alice ")
        self.assertIsNotNone(user)
        self.assertEqual(user.uid, "alice")
        self.assertEqual(user.role, "staff")
        self.assertFalse(user.is_admin)

        admin = await crud.login("ADMIN")
        self.assertTrue(admin.is_admin)

        self.assertEqual((await crud.login("carol lin")).name, "Carol Lin")
        self.assertIsNone(await crud.login("Mallory"))
        self.assertIsNone(await crud.login("   "))

    # ---------- Announcement ----------

    async def test_announcement_round_trip(self):
        seeded = await crud.get_announcement()
        self.assertTrue(seeded.is_active)
        self.assertIn("January", seeded.content)

        await crud.save_announcement(Announcement("Closed", "Back on Monday", False))
        saved = await crud.get_announcement()
        self.assertEqual(saved, Announcement("Closed", "Back on Monday", False))

    # ---------- Products ----------

    async def test_products_seed_and_promotions(self):
        products = await crud.get_products()
        self.assertEqual([p.id for p in products], ["p1", "p2", "p3", "p4", "p5", "p6"])

        cream = await crud.get_product("p4")
        self.assertEqual(cream.promotion, Bundle(2, 1, "Buy 2 get 1 free", 153))
        self.assertTrue(cream.is_featured)
        self.assertEqual((await crud.get_product("p2")).promotion, NO_PROMOTION)
        self.assertIsNone(await crud.get_product("nope"))

    async def test_save_and_delete_product(self):
        product = Product("p7", "Brush Pen", "Kuretake", 150, promotion=Bundle(3, 1))
        await crud.save_product(product)
        self.assertEqual(await crud.get_product("p7"), product)

        # overwrite, dropping the promotion
        hidden = Product("p7", "Brush Pen", "Kuretake", 160, is_active=False)
        await crud.save_product(hidden)
        self.assertEqual(await crud.get_product("p7"), hidden)

        self.assertTrue(await crud.delete_product("p7"))
        self.assertFalse(await crud.delete_product("p7"))
        self.assertIsNone(await crud.get_product("p7"))

    async def test_generate_product_id_skips_taken(self):
        # Patch connect so the first candidate appears taken and the second free.
        answers = [(1,), None]

        class FakeCursor:
            async def fetchone(self):
                return answers.pop(0)

            async def close(self):
                return None

        class FakeConn:
            async def execute(self, *_args, **_kwargs):
                return FakeCursor()

        @asynccontextmanager
        async def fake_connect():
            yield FakeConn()

        orig_connect = crud.connect
        try:
            crud.connect = fake_connect  # type: ignore
            pid = await crud.generate_product_id()
        finally:
            crud.connect = orig_connect  # restore
        self.assertRegex(pid, r"^p\d+$")
        self.assertEqual(answers, [])

    # ---------- Orders ----------

    async def test_create_and_read_orders(self):
        older = sample_order("ord_1", datetime(2025, 1, 2, 9, 0))
        newer = sample_order("ord_2", datetime(2025, 1, 3, 9, 0), user_id="bob")
        await crud.create_order(older)
        await crud.create_order(newer)

        self.assertEqual(await crud.get_order("ord_1"), older)
        self.assertIsNone(await crud.get_order("missing"))

        orders = await crud.get_orders()
        self.assertEqual([o.id for o in orders], ["ord_2", "ord_1"])
        self.assertEqual(orders[0].items[0].bundle_quantity, 1)
        self.assertIsNone(orders[0].items[1].bundle_quantity)

    async def test_create_orders_is_all_or_nothing(self):
        a = sample_order("ord_a", datetime(2025, 1, 2))
        self.assertEqual(await crud.create_orders([a]), 1)
        self.assertEqual(await crud.create_orders([]), 0)

        # the duplicate id fails after ord_b was inserted in the same transaction
        b = sample_order("ord_b", datetime(2025, 1, 3))
        with self.assertRaises(BatchWriteError) as ctx:
            await crud.create_orders([b, a])
        self.assertEqual(ctx.exception.order_ids, ["ord_b", "ord_a"])
        self.assertEqual([o.id for o in await crud.get_orders()], ["ord_a"])

    async def test_update_and_delete_order(self):
        order = sample_order("ord_1", datetime(2025, 1, 2))
        await crud.create_order(order)

        shorter = Order(
            id=order.id,
            user_id=order.user_id,
            user_name=order.user_name,
            timestamp=order.timestamp,
            pricing_mode=order.pricing_mode,
            status=OrderStatus.LOCKED,
            items=order.items[1:],
            total_amount=240,
        )
        self.assertTrue(await crud.update_order(shorter))
        self.assertEqual(await crud.get_order("ord_1"), shorter)

        ghost = sample_order("ord_ghost", datetime(2025, 1, 2))
        self.assertFalse(await crud.update_order(ghost))
        self.assertIsNone(await crud.get_order("ord_ghost"))

        self.assertTrue(await crud.delete_order("ord_1"))
        self.assertFalse(await crud.delete_order("ord_1"))
        # lines go with the order
        async with db_database.connect() as conn:
            cur = await conn.execute("SELECT COUNT(*) FROM orderlines;")
            count = (await cur.fetchone())[0]
            await cur.close()
        self.assertEqual(count, 0)

    async def test_update_order_batch(self):
        a = sample_order("ord_a", datetime(2025, 1, 2))
        b = sample_order("ord_b", datetime(2025, 1, 3))
        await crud.create_order(a)
        await crud.create_order(b)

        locked = [
            replace(o, status=OrderStatus.LOCKED)
            for o in (a, b, sample_order("ord_gone", datetime(2025, 1, 4)))
        ]
        self.assertEqual(await crud.update_order_batch(locked), 2)
        self.assertEqual(
            [o.status for o in await crud.get_orders()], [OrderStatus.LOCKED] * 2
        )
        self.assertEqual(await crud.update_order_batch([]), 0)

    async def test_update_order_batch_rolls_back(self):
        a = sample_order("ord_a", datetime(2025, 1, 2))
        b = sample_order("ord_b", datetime(2025, 1, 3))
        await crud.create_order(a)
        await crud.create_order(b)

        orig_overwrite = crud._overwrite_order
        calls = []

        async def failing_overwrite(conn, order):
            calls.append(order.id)
            if len(calls) == 2:
                raise RuntimeError("disk full")
            return await orig_overwrite(conn, order)

        packed = [
            replace(o, status=OrderStatus.PACKED) for o in (a, b)
        ]
        try:
            crud._overwrite_order = failing_overwrite  # type: ignore
            with self.assertRaises(BatchWriteError) as ctx:
                await crud.update_order_batch(packed)
        finally:
            crud._overwrite_order = orig_overwrite  # restore

        self.assertEqual(ctx.exception.order_ids, ["ord_a", "ord_b"])
        self.assertIn("disk full", str(ctx.exception))
        # the first write was rolled back with the rest
        self.assertEqual(
            [o.status for o in await crud.get_orders()], [OrderStatus.PENDING] * 2
        )

    # ---------- Bootstrap ----------

    async def test_partial_schema_is_completed_without_reseeding(self):
        async with db_database.connect() as conn:
            await conn.execute("DROP TABLE announcement;")
            await conn.execute("DELETE FROM products WHERE id = 'p6';")
            await conn.commit()

        db_database._initialized = False
        async with db_database.connect() as conn:
            self.assertEqual(await db_database._missing_tables(conn), [])

        self.assertIsNone(await crud.get_announcement())
        self.assertIsNone(await crud.get_product("p6"))
        self.assertIsNotNone(await crud.login("Alice"))

    # ---------- tiny helper coverage ----------

    def test__to_int_helper(self):
        self.assertEqual(crud._to_int("3"), 3)
        self.assertIsNone(crud._to_int("nan"))
        self.assertIsNone(crud._to_int(None))


if __name__ == "__main__":
    unittest.main()
