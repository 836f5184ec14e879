from typing import Iterable, List, Optional

from db.models import Product


def visible_products(
    products: Iterable[Product], brand: Optional[str] = None
) -> List[Product]:
    """
    Active products, optionally limited to one brand.
    Bundles come first, then featured items, then the rest; ties keep catalog order.
    """
    shown = [p for p in products if p.is_active and (not brand or p.brand == brand)]
    return sorted(shown, key=lambda p: (not p.is_bundle, not p.is_featured))


def brands(products: Iterable[Product]) -> List[str]:
    """Distinct brands in first-seen order."""
    return list(dict.fromkeys(p.brand for p in products))
