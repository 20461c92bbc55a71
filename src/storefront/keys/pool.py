"""
Key pool manager.

Allocates keys from a product's ``digitalKeys`` pool. Every change to a pool
is one ``mutate`` call on the ``products`` collection: the current product
is read, the key is selected and flipped, and the whole ``digitalKeys``
array is written back, all inside the collection lock. Two concurrent
allocations against the same product therefore can never pick the same key.

Selection order is the stored pool order (oldest first), giving predictable
draw-down.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from storefront.documents.base import utc_timestamp
from storefront.documents.interface import Document, DocumentStore
from storefront.exceptions import (
    KeyExhaustionError,
    KeyInUseError,
    KeyNotFoundError,
    KeyPoolError,
    NotDigitalProductError,
    ProductNotFoundError,
)
from storefront.keys.models import (
    DigitalKey,
    KeyPoolStats,
    KeyStatus,
    build_keys,
    is_valid_key_transition,
)
from storefront.observability import Tracer, create_tracer
from storefront.observability.attributes import (
    ATTR_KEY_COUNT,
    ATTR_KEY_ID,
    ATTR_ORDER_ID,
    ATTR_PRODUCT_ID,
)

logger = logging.getLogger(__name__)

PRODUCTS = "products"


def _pool(product: Document) -> list[dict[str, Any]]:
    return list(product.get("digitalKeys") or [])


def _transition(
    raw_key: dict[str, Any],
    target: KeyStatus,
    product_id: str,
    **fields: Any,
) -> dict[str, Any]:
    current = KeyStatus(raw_key.get("status", KeyStatus.AVAILABLE.value))
    if not is_valid_key_transition(current, target):
        if current == KeyStatus.USED:
            raise KeyInUseError(product_id, raw_key.get("id", ""), raw_key.get("usedBy"))
        raise KeyPoolError(
            f"Key {raw_key.get('id')} of product {product_id} cannot move "
            f"from '{current.value}' to '{target.value}'"
        )
    return {**raw_key, "status": target.value, **fields}


class KeyPoolManager:
    """
    Allocates, reserves and administers digital keys.

    There is deliberately no way to release a used key: keys are single-use,
    so compensating a failed downstream step is an administrative action.

    Example:
        >>> pool = KeyPoolManager(store)
        >>> key = await pool.allocate_one(product_id, order_id)
        >>> if key is None:
        ...     print("pool exhausted")
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the key pool manager.

        Args:
            store: Document store holding the ``products`` collection
            tracer: Optional tracer for tracing (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._store = store

    async def allocate_one(self, product_id: str, claimant_order_id: str) -> DigitalKey | None:
        """
        Mark the first available key of a product as used by an order.

        Args:
            product_id: Product whose pool to draw from
            claimant_order_id: Order that receives the key (stored in ``usedBy``)

        Returns:
            The allocated key, or None if the product does not exist or has
            no available key
        """
        allocated: DigitalKey | None = None

        def take_first_available(product: Document) -> dict[str, Any] | None:
            nonlocal allocated
            keys = _pool(product)
            for index, raw_key in enumerate(keys):
                if raw_key.get("status") == KeyStatus.AVAILABLE.value:
                    keys[index] = _transition(
                        raw_key,
                        KeyStatus.USED,
                        product_id,
                        usedAt=utc_timestamp(),
                        usedBy=claimant_order_id,
                    )
                    allocated = DigitalKey.model_validate(keys[index])
                    return {"digitalKeys": keys}
            return None

        with self._tracer.span(
            "storefront.keys.allocate_one",
            {ATTR_PRODUCT_ID: product_id, ATTR_ORDER_ID: claimant_order_id},
        ):
            product = await self._store.mutate(PRODUCTS, product_id, take_first_available)

        if product is None:
            logger.warning(
                f"Cannot allocate key: product {product_id} not found",
                extra={"product_id": product_id, "order_id": claimant_order_id},
            )
        elif allocated is None:
            logger.warning(
                f"No available keys for product {product_id}",
                extra={"product_id": product_id, "order_id": claimant_order_id},
            )
        else:
            logger.info(
                f"Allocated key {allocated.id} of product {product_id} to order {claimant_order_id}",
                extra={
                    "product_id": product_id,
                    "key_id": allocated.id,
                    "order_id": claimant_order_id,
                },
            )
        return allocated

    async def require_one(self, product_id: str, claimant_order_id: str) -> DigitalKey:
        """
        Like ``allocate_one``, but a missing key is an error.

        Raises:
            KeyExhaustionError: If no key could be allocated
        """
        key = await self.allocate_one(product_id, claimant_order_id)
        if key is None:
            raise KeyExhaustionError(product_id, requested=1, allocated=0)
        return key

    async def reserve_one(self, product_id: str, claimant_order_id: str) -> DigitalKey | None:
        """
        Hold the first available key of a product for an order.

        The key moves to ``reserved`` with ``usedBy`` set to the claimant;
        ``redeem_reserved`` later turns it into ``used``.

        Returns:
            The reserved key, or None if the product does not exist or has
            no available key
        """
        reserved: DigitalKey | None = None

        def reserve_first_available(product: Document) -> dict[str, Any] | None:
            nonlocal reserved
            keys = _pool(product)
            for index, raw_key in enumerate(keys):
                if raw_key.get("status") == KeyStatus.AVAILABLE.value:
                    keys[index] = _transition(
                        raw_key,
                        KeyStatus.RESERVED,
                        product_id,
                        usedBy=claimant_order_id,
                    )
                    reserved = DigitalKey.model_validate(keys[index])
                    return {"digitalKeys": keys}
            return None

        with self._tracer.span(
            "storefront.keys.reserve_one",
            {ATTR_PRODUCT_ID: product_id, ATTR_ORDER_ID: claimant_order_id},
        ):
            await self._store.mutate(PRODUCTS, product_id, reserve_first_available)

        if reserved is not None:
            logger.info(
                f"Reserved key {reserved.id} of product {product_id} for order {claimant_order_id}",
                extra={
                    "product_id": product_id,
                    "key_id": reserved.id,
                    "order_id": claimant_order_id,
                },
            )
        return reserved

    async def redeem_reserved(
        self,
        product_id: str,
        key_id: str,
        claimant_order_id: str,
    ) -> DigitalKey:
        """
        Turn a reserved key into a used one.

        Raises:
            ProductNotFoundError: If the product does not exist
            KeyNotFoundError: If the key is not in the pool
            KeyInUseError: If the key is already used
            KeyPoolError: If the key is not reserved, or reserved by another order
        """
        redeemed: DigitalKey | None = None

        def redeem(product: Document) -> dict[str, Any]:
            nonlocal redeemed
            keys = _pool(product)
            for index, raw_key in enumerate(keys):
                if raw_key.get("id") != key_id:
                    continue
                if (
                    raw_key.get("status") == KeyStatus.RESERVED.value
                    and raw_key.get("usedBy") != claimant_order_id
                ):
                    raise KeyPoolError(
                        f"Key {key_id} of product {product_id} is reserved "
                        f"for order {raw_key.get('usedBy')}, not {claimant_order_id}"
                    )
                if raw_key.get("status") == KeyStatus.AVAILABLE.value:
                    raise KeyPoolError(f"Key {key_id} of product {product_id} is not reserved")
                keys[index] = _transition(
                    raw_key,
                    KeyStatus.USED,
                    product_id,
                    usedAt=utc_timestamp(),
                    usedBy=claimant_order_id,
                )
                redeemed = DigitalKey.model_validate(keys[index])
                return {"digitalKeys": keys}
            raise KeyNotFoundError(product_id, key_id)

        with self._tracer.span(
            "storefront.keys.redeem_reserved",
            {ATTR_PRODUCT_ID: product_id, ATTR_KEY_ID: key_id, ATTR_ORDER_ID: claimant_order_id},
        ):
            product = await self._store.mutate(PRODUCTS, product_id, redeem)

        if product is None or redeemed is None:
            raise ProductNotFoundError(product_id)
        return redeemed

    async def claimed_by(self, product_id: str, order_id: str) -> list[DigitalKey]:
        """
        Keys of a product already used by an order, in pool order.

        Lets a retried fulfillment pick up keys allocated by an attempt that
        crashed before the order itself was written.
        """
        product = await self._store.get_by_id(PRODUCTS, product_id)
        if product is None:
            return []
        return [
            DigitalKey.model_validate(raw_key)
            for raw_key in _pool(product)
            if raw_key.get("status") == KeyStatus.USED.value and raw_key.get("usedBy") == order_id
        ]

    async def delete_available(self, product_id: str, key_id: str) -> bool:
        """
        Remove a key that has not been used.

        Returns:
            True if the key was removed, False if the product or key does not exist

        Raises:
            KeyInUseError: If the key has already been used
        """
        removed = False

        def remove(product: Document) -> dict[str, Any] | None:
            nonlocal removed
            keys = _pool(product)
            for raw_key in keys:
                if raw_key.get("id") != key_id:
                    continue
                if raw_key.get("status") == KeyStatus.USED.value:
                    raise KeyInUseError(product_id, key_id, raw_key.get("usedBy"))
                removed = True
                return {"digitalKeys": [k for k in keys if k.get("id") != key_id]}
            return None

        with self._tracer.span(
            "storefront.keys.delete_available",
            {ATTR_PRODUCT_ID: product_id, ATTR_KEY_ID: key_id},
        ):
            await self._store.mutate(PRODUCTS, product_id, remove)

        if removed:
            logger.info(
                f"Deleted key {key_id} from product {product_id}",
                extra={"product_id": product_id, "key_id": key_id},
            )
        return removed

    async def add_keys(self, product_id: str, codes: str | Iterable[str]) -> list[DigitalKey]:
        """
        Append new available keys to a product's pool.

        Args:
            product_id: Product to extend
            codes: Key codes, as a list or newline-separated text

        Returns:
            The keys that were added (empty if ``codes`` held nothing)

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        new_keys = build_keys(codes)

        def append(product: Document) -> dict[str, Any] | None:
            if not new_keys:
                return None
            return {"digitalKeys": _pool(product) + [key.to_document() for key in new_keys]}

        with self._tracer.span(
            "storefront.keys.add_keys",
            {ATTR_PRODUCT_ID: product_id, ATTR_KEY_COUNT: len(new_keys)},
        ):
            product = await self._store.mutate(PRODUCTS, product_id, append)

        if product is None:
            raise ProductNotFoundError(product_id)
        logger.info(
            f"Added {len(new_keys)} keys to product {product_id}",
            extra={"product_id": product_id, "key_count": len(new_keys)},
        )
        return new_keys

    async def replace_available(
        self,
        product_id: str,
        codes: str | Iterable[str],
    ) -> list[DigitalKey]:
        """
        Replace the available keys of a pool, keeping used and reserved ones.

        Returns:
            The keys that were added

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        new_keys = build_keys(codes)

        def replace(product: Document) -> dict[str, Any]:
            kept = [k for k in _pool(product) if k.get("status") != KeyStatus.AVAILABLE.value]
            return {"digitalKeys": kept + [key.to_document() for key in new_keys]}

        with self._tracer.span(
            "storefront.keys.replace_available",
            {ATTR_PRODUCT_ID: product_id, ATTR_KEY_COUNT: len(new_keys)},
        ):
            product = await self._store.mutate(PRODUCTS, product_id, replace)

        if product is None:
            raise ProductNotFoundError(product_id)
        logger.info(
            f"Replaced available keys of product {product_id} with {len(new_keys)} new keys",
            extra={"product_id": product_id, "key_count": len(new_keys)},
        )
        return new_keys

    async def get_pool(self, product_id: str) -> tuple[list[DigitalKey], KeyPoolStats]:
        """
        All keys of a digital product with per-status counts.

        Raises:
            ProductNotFoundError: If the product does not exist
            NotDigitalProductError: If the product is not digital
        """
        product = await self._store.get_by_id(PRODUCTS, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        if not product.get("isDigitalProduct"):
            raise NotDigitalProductError(product_id)

        keys = [DigitalKey.model_validate(raw_key) for raw_key in _pool(product)]
        return keys, KeyPoolStats.from_keys(keys)


__all__ = ["KeyPoolManager"]
