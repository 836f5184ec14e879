import unittest

from db.models import (
    NO_PROMOTION,
    Bundle,
    OrderLineItem,
    OrderStatus,
    PricingMode,
    Product,
)
from ordering import pricing


def line(paid: int, unit: int, status: OrderStatus = OrderStatus.PENDING, free: int = 0):
    return OrderLineItem(
        product_id="p",
        product_name="Item",
        brand="Brand",
        quantity=paid,
        free_quantity=free,
        unit_price=unit,
        total_price=paid * unit,
        status=status,
    )


class PriceTestCase(unittest.TestCase):
    def test_mode_discounts_are_floored(self):
        self.assertEqual(pricing.price(100, PricingMode.DAILY), 50)
        self.assertEqual(pricing.price(100, PricingMode.SPECIAL), 80)
        self.assertEqual(pricing.price(99, PricingMode.DAILY), 49)
        self.assertEqual(pricing.price(99, PricingMode.SPECIAL), 79)
        self.assertEqual(pricing.price(1, PricingMode.DAILY), 0)
        self.assertEqual(pricing.price(0, PricingMode.SPECIAL), 0)

    def test_exact_discount_on_multiples(self):
        self.assertEqual(pricing.price(5, PricingMode.SPECIAL), 4)
        self.assertEqual(pricing.price(15, PricingMode.SPECIAL), 12)
        self.assertEqual(pricing.price(35, PricingMode.SPECIAL), 28)

    def test_monotonic_in_cost(self):
        for mode in PricingMode:
            prices = [pricing.price(c, mode) for c in range(0, 500)]
            self.assertEqual(prices, sorted(prices))

    def test_accepts_mode_value(self):
        self.assertEqual(pricing.price(230, "SPECIAL"), 184)

    def test_negative_cost_rejected(self):
        with self.assertRaises(ValueError):
            pricing.price(-1, PricingMode.DAILY)

    def test_unit_price_ignores_mode_for_bundles(self):
        bundle = Product("p4", "Color Cream", "Wella", 230, promotion=Bundle(2, 1))
        plain = Product("p1", "Tape", "MT", 100, promotion=NO_PROMOTION)
        for mode in PricingMode:
            self.assertEqual(pricing.unit_price(bundle, mode), 230)
        self.assertEqual(pricing.unit_price(plain, PricingMode.DAILY), 50)
        self.assertEqual(pricing.unit_price(plain, PricingMode.SPECIAL), 80)


class BundlePriceTestCase(unittest.TestCase):
    def test_set_price_and_average(self):
        bundle = Bundle(buy=2, get=1)
        self.assertEqual(pricing.bundle_set_price(230, bundle), 460)
        # 460 / 3 = 153.33
        self.assertEqual(pricing.bundle_average_price(230, bundle), 153)
        # 500 / 3 = 166.67
        self.assertEqual(pricing.bundle_average_price(250, bundle), 167)

    def test_average_rounds_half_up(self):
        # 3 * 1 / 2 = 1.5
        self.assertEqual(pricing.bundle_average_price(1, Bundle(buy=3, get=3)), 2)

    def test_invalid_bundle_terms(self):
        with self.assertRaises(ValueError):
            Bundle(buy=0, get=1)
        with self.assertRaises(ValueError):
            Bundle(buy=2, get=-1)


class RecalculateTotalTestCase(unittest.TestCase):
    def test_out_of_stock_lines_excluded(self):
        items = [line(2, 100), line(1, 50, OrderStatus.OUT_OF_STOCK)]
        self.assertEqual(pricing.recalculate_total(items), 200)

    def test_free_units_never_count(self):
        self.assertEqual(pricing.recalculate_total([line(4, 230, free=2)]), 920)

    def test_locked_and_packed_lines_count(self):
        items = [line(1, 10, OrderStatus.LOCKED), line(2, 10, OrderStatus.PACKED)]
        self.assertEqual(pricing.recalculate_total(items), 30)

    def test_empty(self):
        self.assertEqual(pricing.recalculate_total([]), 0)


if __name__ == "__main__":
    unittest.main()
