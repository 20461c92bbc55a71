"""Serialization helpers for storefront."""

from storefront.serialization.json import StorefrontJSONEncoder, json_dumps, json_loads

__all__ = [
    "StorefrontJSONEncoder",
    "json_dumps",
    "json_loads",
]
