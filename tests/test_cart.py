import unittest

from db.models import Bundle, PricingMode, Product
from ordering.cart import Cart, line_value

TAPE = Product("p1", "Washi Masking Tape", "MT", 100)
CREAM = Product("p4", "Hair Color Cream", "Wella", 230, promotion=Bundle(2, 1, "Buy 2 get 1 free"))


class CartTestCase(unittest.TestCase):
    def setUp(self):
        self.cart = Cart()

    def test_add_snapshots_price(self):
        item = self.cart.add(TAPE, PricingMode.SPECIAL)
        self.assertEqual(item.quantity, 1)
        self.assertEqual(item.snapshot_price, 80)

        # a later catalog change does not touch the line
        self.cart.add(Product("p1", "Washi Masking Tape", "MT", 1000), PricingMode.SPECIAL)
        item = self.cart.get("p1", PricingMode.SPECIAL)
        self.assertEqual(item.quantity, 2)
        self.assertEqual(item.snapshot_price, 80)

    def test_same_product_under_two_modes(self):
        self.cart.add(TAPE, PricingMode.SPECIAL)
        self.cart.add(TAPE, PricingMode.DAILY)
        self.assertEqual(len(self.cart), 2)
        self.assertEqual(self.cart.quantity_of("p1", PricingMode.DAILY), 1)
        self.assertEqual(self.cart.get("p1", PricingMode.DAILY).snapshot_price, 50)
        self.assertEqual(self.cart.total(), 130)

    def test_adjust_to_zero_removes_line(self):
        self.cart.add(TAPE, PricingMode.DAILY)
        self.assertIsNone(self.cart.adjust(TAPE, PricingMode.DAILY, -1))
        self.assertTrue(self.cart.is_empty)
        # decrementing a missing line is a no-op
        self.assertIsNone(self.cart.adjust(TAPE, PricingMode.DAILY, -1))
        self.assertTrue(self.cart.is_empty)

    def test_bundle_lines_count_sets(self):
        self.cart.add(CREAM, PricingMode.DAILY)
        self.cart.add(CREAM, PricingMode.DAILY)
        item = self.cart.get("p4", PricingMode.DAILY)
        self.assertEqual(item.quantity, 2)
        self.assertEqual(item.snapshot_price, 230)
        self.assertEqual(item.promotion, Bundle(2, 1, "Buy 2 get 1 free"))
        self.assertEqual(line_value(item), 920)

    def test_remove_and_clear(self):
        self.cart.add(TAPE, PricingMode.DAILY)
        self.cart.add(CREAM, PricingMode.SPECIAL)
        self.assertTrue(self.cart.remove("p1", PricingMode.DAILY))
        self.assertFalse(self.cart.remove("p1", PricingMode.DAILY))
        self.assertEqual(self.cart.unit_count(), 1)
        self.cart.clear()
        self.assertTrue(self.cart.is_empty)
        self.assertEqual(self.cart.total(), 0)

    def test_by_mode_keeps_insertion_order(self):
        other = Product("p5", "Copic Marker", "Copic", 120)
        self.cart.add(TAPE, PricingMode.SPECIAL)
        self.cart.add(CREAM, PricingMode.DAILY)
        self.cart.add(other, PricingMode.SPECIAL)
        groups = self.cart.by_mode()
        self.assertEqual(list(groups), [PricingMode.SPECIAL, PricingMode.DAILY])
        self.assertEqual([i.product_id for i in groups[PricingMode.SPECIAL]], ["p1", "p5"])


if __name__ == "__main__":
    unittest.main()
