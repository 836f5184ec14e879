import unittest
from datetime import datetime

from db.models import OrderLineItem, OrderStatus, PricingMode, Product, User
from utils.pure import describe_quantity, format_currency, format_timestamp, markdown_table, status_label
from utils.state import GlobalState


class GlobalStateTestCase(unittest.TestCase):
    def test_session_lifecycle(self):
        state = GlobalState()
        self.assertFalse(state.is_admin)
        self.assertEqual(state.pricing_mode, PricingMode.SPECIAL)

        state.start_session(User("admin", "Admin", "admin"))
        self.assertTrue(state.is_admin)
        state.cart.add(Product("p1", "Tape", "MT", 100), state.pricing_mode)
        state.announcement_seen = True

        self.assertEqual(state.toggle_pricing_mode(), PricingMode.DAILY)
        self.assertEqual(state.toggle_pricing_mode(), PricingMode.SPECIAL)

        state.end_session()
        self.assertIsNone(state.user)
        self.assertTrue(state.cart.is_empty)
        self.assertFalse(state.announcement_seen)


class PureHelpersTestCase(unittest.TestCase):
    def test_format(self):
        self.assertEqual(format_currency(1380), "NT$1,380")
        self.assertEqual(format_timestamp(datetime(2025, 1, 5, 9, 7)), "01/05 09:07")
        self.assertEqual(status_label(OrderStatus.LOCKED), "Accepted")
        self.assertEqual(status_label("OUT_OF_STOCK"), "Out of stock")

    def test_describe_quantity(self):
        bundle = OrderLineItem("p4", "Cream", "Wella", 4, 2, 230, 920, bundle_quantity=2)
        plain = OrderLineItem("p1", "Tape", "MT", 3, 0, 80, 240)
        self.assertEqual(describe_quantity(bundle), "4 (+2 free, 2 sets)")
        self.assertEqual(describe_quantity(plain), "3")

    def test_markdown_table(self):
        md = markdown_table(["Name", "Qty"], [["a|b", 2]], ["l", "r"])
        self.assertEqual(md, "| Name | Qty |\n| :--- | ---: |\n| a\\|b | 2 |")
        with self.assertRaises(ValueError):
            markdown_table(["Name"], [], ["l", "r"])


if __name__ == "__main__":
    unittest.main()
