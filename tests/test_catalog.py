import unittest

from db.models import Bundle, Product
from ordering import catalog

PRODUCTS = [
    Product("p1", "Tape", "MT", 100, is_featured=True),
    Product("p2", "Pencil", "Pentel", 250),
    Product("p3", "Old Stock", "MT", 90, is_active=False),
    Product("p4", "Color Cream", "Wella", 230, promotion=Bundle(2, 1)),
    Product("p5", "Marker", "Copic", 120),
    Product("p6", "Washi Roll", "MT", 60, is_featured=True),
]


class CatalogTestCase(unittest.TestCase):
    def test_bundles_then_featured_then_rest(self):
        shown = [p.id for p in catalog.visible_products(PRODUCTS)]
        self.assertEqual(shown, ["p4", "p1", "p6", "p2", "p5"])

    def test_brand_filter_hides_inactive(self):
        shown = [p.id for p in catalog.visible_products(PRODUCTS, "MT")]
        self.assertEqual(shown, ["p1", "p6"])
        self.assertEqual(catalog.visible_products(PRODUCTS, "Nobody"), [])

    def test_brands(self):
        self.assertEqual(catalog.brands(PRODUCTS), ["MT", "Pentel", "Wella", "Copic"])


if __name__ == "__main__":
    unittest.main()
