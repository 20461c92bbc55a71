"""
Digital key pools and the product catalog.

Example:
    >>> from storefront.keys import KeyPoolManager
    >>>
    >>> pool = KeyPoolManager(store)
    >>> await pool.add_keys(product_id, ["AAAA-1111", "BBBB-2222"])
    >>> key = await pool.allocate_one(product_id, order_id)
"""

from storefront.keys.catalog import Product, ProductCatalog, ProductChanges
from storefront.keys.models import (
    VALID_KEY_TRANSITIONS,
    DigitalKey,
    KeyPoolStats,
    KeyStatus,
    build_keys,
    is_valid_key_transition,
    parse_codes,
)
from storefront.keys.pool import KeyPoolManager

__all__ = [
    "DigitalKey",
    "KeyPoolManager",
    "KeyPoolStats",
    "KeyStatus",
    "Product",
    "ProductCatalog",
    "ProductChanges",
    "VALID_KEY_TRANSITIONS",
    "build_keys",
    "is_valid_key_transition",
    "parse_codes",
]
