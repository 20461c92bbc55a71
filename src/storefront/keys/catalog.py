"""
Product catalog.

Thin validated layer over the ``products`` collection. Input is checked
with pydantic before any storage call, so a rejected create or update never
touches the container. Key pools are only changed through
``KeyPoolManager``; a product update that tries to overwrite
``digitalKeys`` directly is rejected, since it could resurrect used keys.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from storefront.documents.interface import Document, DocumentStore
from storefront.exceptions import KeyInUseError, ValidationError
from storefront.keys.models import DigitalKey, KeyStatus, build_keys
from storefront.observability import Tracer, create_tracer
from storefront.observability.attributes import ATTR_PRODUCT_ID
from storefront.validation import validate_model

logger = logging.getLogger(__name__)

PRODUCTS = "products"
DEFAULT_IMAGE = "https://placehold.co/800x600/gray/white?text=No+Image"


def _reject_used_keys(document: Document) -> None:
    for raw_key in document.get("digitalKeys") or []:
        if raw_key.get("status") == KeyStatus.USED.value:
            raise KeyInUseError(document["id"], raw_key.get("id", ""), raw_key.get("usedBy"))


class Product(BaseModel):
    """Typed view of a ``products`` document."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    name: str = Field(min_length=1)
    description: str = ""
    price: float = Field(ge=0)
    category: str = Field(min_length=1)
    stock: int = Field(default=0, ge=0)
    image: str = DEFAULT_IMAGE
    gallery: list[str] = Field(default_factory=list)
    featured: bool = False
    is_digital_product: bool = Field(default=False, alias="isDigitalProduct")
    digital_keys: list[DigitalKey] = Field(default_factory=list, alias="digitalKeys")
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude={"id", "created_at", "updated_at"})


class ProductChanges(BaseModel):
    """Validated partial update of a product."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str | None = Field(default=None, min_length=1)
    price: float | None = Field(default=None, ge=0)
    category: str | None = Field(default=None, min_length=1)
    stock: int | None = Field(default=None, ge=0)
    featured: bool | None = None
    is_digital_product: bool | None = Field(default=None, alias="isDigitalProduct")


class ProductCatalog:
    """
    Create, read, update and delete products.

    Example:
        >>> catalog = ProductCatalog(store)
        >>> product = await catalog.create_product(
        ...     {"name": "Game key", "price": 19.9, "category": "games",
        ...      "isDigitalProduct": True},
        ...     key_codes="AAAA-1111\\nBBBB-2222",
        ... )
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._store = store

    async def create_product(
        self,
        fields: Mapping[str, Any],
        key_codes: str | Iterable[str] | None = None,
    ) -> Product:
        """
        Validate and store a new product.

        Args:
            fields: Product fields (camelCase or snake_case)
            key_codes: Initial key codes for a digital product

        Raises:
            ValidationError: If required fields are missing or values are negative
        """
        product = validate_model(Product, {**fields, "digitalKeys": []})
        if key_codes is not None and product.is_digital_product:
            product.digital_keys = build_keys(key_codes)

        with self._tracer.span("storefront.catalog.create_product"):
            created = await self._store.create(PRODUCTS, product.to_document())

        logger.info(
            f"Created product {created['id']}",
            extra={"product_id": created["id"], "key_count": len(product.digital_keys)},
        )
        return Product.model_validate(created)

    async def get_product(self, product_id: str) -> Product | None:
        document = await self._store.get_by_id(PRODUCTS, product_id)
        return Product.model_validate(document) if document is not None else None

    async def list_products(self, category: str | None = None) -> list[Product]:
        documents = await self._store.find(
            PRODUCTS,
            lambda p: category is None or p.get("category") == category,
        )
        return [Product.model_validate(document) for document in documents]

    async def update_product(self, product_id: str, fields: Mapping[str, Any]) -> Product | None:
        """
        Apply a validated partial update.

        Returns:
            The updated product, or None if it does not exist

        Raises:
            ValidationError: If values are invalid or ``digitalKeys`` is present
        """
        if "digitalKeys" in fields or "digital_keys" in fields:
            raise ValidationError(
                "key pools are managed through KeyPoolManager",
                field="digitalKeys",
            )
        changes = validate_model(ProductChanges, fields)
        partial = changes.model_dump(mode="json", by_alias=True, exclude_unset=True)

        with self._tracer.span(
            "storefront.catalog.update_product",
            {ATTR_PRODUCT_ID: product_id},
        ):
            updated = await self._store.update(PRODUCTS, product_id, partial)

        return Product.model_validate(updated) if updated is not None else None

    async def delete_product(self, product_id: str) -> bool:
        """
        Delete a product whose pool holds no used keys.

        Raises:
            KeyInUseError: If any key of the product has been used
        """
        with self._tracer.span(
            "storefront.catalog.delete_product",
            {ATTR_PRODUCT_ID: product_id},
        ):
            return await self._store.delete(PRODUCTS, product_id, _reject_used_keys)


__all__ = [
    "Product",
    "ProductCatalog",
    "ProductChanges",
]
