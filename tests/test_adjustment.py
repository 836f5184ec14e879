import unittest
from datetime import datetime

from db.models import Order, OrderLineItem, OrderStatus, PricingMode
from ordering.adjustment import adjust_line_quantity
from ordering.errors import PreconditionFailed


def bundle_line(sets: int, unit: int = 230) -> OrderLineItem:
    return OrderLineItem(
        product_id="p4",
        product_name="Hair Color Cream (Bundle Set)",
        brand="Wella",
        quantity=sets * 2,
        free_quantity=sets,
        bundle_quantity=sets,
        unit_price=unit,
        total_price=unit * sets * 2,
        note="Buy 2 get 1 free",
    )


def plain_line(qty: int, unit: int = 80, status=OrderStatus.PENDING) -> OrderLineItem:
    return OrderLineItem(
        product_id="p1",
        product_name="Washi Masking Tape",
        brand="MT",
        quantity=qty,
        free_quantity=0,
        unit_price=unit,
        total_price=unit * qty,
        status=status,
    )


def order_of(*items, status=OrderStatus.PENDING) -> Order:
    return Order(
        id="ord_1",
        user_id="alice",
        user_name="Alice",
        timestamp=datetime(2025, 1, 1),
        pricing_mode=PricingMode.SPECIAL,
        status=status,
        items=tuple(items),
        total_amount=sum(i.total_price for i in items if i.status != OrderStatus.OUT_OF_STOCK),
    )


class AdjustLineQuantityTestCase(unittest.TestCase):
    def test_bundle_decrement_keeps_ratio(self):
        updated = adjust_line_quantity(order_of(bundle_line(2), plain_line(1)), 0, -1)
        item = updated.items[0]
        self.assertEqual((item.bundle_quantity, item.quantity, item.free_quantity), (1, 2, 1))
        self.assertEqual(item.total_price, 460)
        self.assertEqual(updated.total_amount, 540)

    def test_bundle_increment(self):
        updated = adjust_line_quantity(order_of(bundle_line(1)), 0, 2)
        item = updated.items[0]
        self.assertEqual((item.bundle_quantity, item.quantity, item.free_quantity), (3, 6, 3))
        self.assertEqual(updated.total_amount, 1380)

    def test_plain_line(self):
        updated = adjust_line_quantity(order_of(plain_line(3)), 0, 1)
        self.assertEqual(updated.items[0].quantity, 4)
        self.assertEqual(updated.items[0].total_price, 320)
        self.assertEqual(updated.total_amount, 320)

    def test_line_reaching_zero_is_removed(self):
        updated = adjust_line_quantity(order_of(bundle_line(1), plain_line(2)), 0, -1)
        self.assertEqual(len(updated.items), 1)
        self.assertEqual(updated.items[0].product_id, "p1")
        self.assertEqual(updated.total_amount, 160)

    def test_last_line_removed_deletes_order(self):
        self.assertIsNone(adjust_line_quantity(order_of(bundle_line(2)), 0, -2))
        self.assertIsNone(adjust_line_quantity(order_of(plain_line(1)), 0, -1))

    def test_total_skips_out_of_stock_lines(self):
        order = order_of(plain_line(1), plain_line(5, status=OrderStatus.OUT_OF_STOCK))
        updated = adjust_line_quantity(order, 0, 1)
        self.assertEqual(updated.total_amount, 160)

    def test_locked_orders_are_frozen(self):
        for status in (OrderStatus.LOCKED, OrderStatus.PACKED, OrderStatus.COMPLETED):
            with self.assertRaises(PreconditionFailed):
                adjust_line_quantity(order_of(plain_line(2), status=status), 0, 1)

    def test_out_of_stock_line_is_frozen(self):
        order = order_of(plain_line(2, status=OrderStatus.OUT_OF_STOCK))
        with self.assertRaises(PreconditionFailed):
            adjust_line_quantity(order, 0, -1)

    def test_bad_index(self):
        with self.assertRaises(IndexError):
            adjust_line_quantity(order_of(plain_line(2)), 3, 1)

    def test_original_is_untouched(self):
        order = order_of(plain_line(2))
        adjust_line_quantity(order, 0, 1)
        self.assertEqual(order.items[0].quantity, 2)
        self.assertEqual(order.total_amount, 160)


if __name__ == "__main__":
    unittest.main()
