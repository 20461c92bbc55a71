"""
Shared pytest fixtures for the storefront tests.

This module provides:
- Store fixtures (memory_store, file_store, data_dir)
- Component fixtures (key_pool, catalog, order_service, notifier, engine)
- Factories for seeding digital products and orders
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import pytest

from storefront.config import FulfillmentConfig, StoreConfig
from storefront.documents import FileDocumentStore, InMemoryDocumentStore
from storefront.fulfillment import FulfillmentEngine, RecordingNotifier
from storefront.keys import KeyPoolManager, ProductCatalog
from storefront.orders import OrderService

# ============================================================================
# Stores
# ============================================================================


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    """Fresh in-memory store for each test."""
    return InMemoryDocumentStore(enable_tracing=False)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Directory holding the container files of ``file_store``."""
    return tmp_path / "database"


@pytest.fixture
def file_store(data_dir: Path) -> FileDocumentStore:
    """File store in a temporary directory, without fsync."""
    return FileDocumentStore(StoreConfig(data_dir=data_dir, fsync=False), enable_tracing=False)


# ============================================================================
# Components
# ============================================================================


@pytest.fixture
def key_pool(file_store: FileDocumentStore) -> KeyPoolManager:
    return KeyPoolManager(file_store, enable_tracing=False)


@pytest.fixture
def catalog(file_store: FileDocumentStore) -> ProductCatalog:
    return ProductCatalog(file_store, enable_tracing=False)


@pytest.fixture
def order_service(file_store: FileDocumentStore) -> OrderService:
    return OrderService(file_store, enable_tracing=False)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def engine(
    file_store: FileDocumentStore,
    key_pool: KeyPoolManager,
    notifier: RecordingNotifier,
) -> FulfillmentEngine:
    return FulfillmentEngine(
        file_store,
        key_pool,
        notifier,
        FulfillmentConfig(),
        enable_tracing=False,
    )


# ============================================================================
# Seed data
# ============================================================================


@pytest.fixture
def make_digital_product(
    catalog: ProductCatalog,
) -> Callable[..., Awaitable[str]]:
    """Factory creating a digital product with the given key codes; returns its id."""

    async def _make(codes: list[str], name: str = "Game key", price: float = 19.9) -> str:
        product = await catalog.create_product(
            {
                "name": name,
                "price": price,
                "category": "games",
                "isDigitalProduct": True,
            },
            key_codes=codes,
        )
        assert product.id is not None
        return product.id

    return _make


@pytest.fixture
def make_order(
    order_service: OrderService,
) -> Callable[..., Awaitable[str]]:
    """Factory creating an order for ``quantity`` units of a product; returns its id."""

    async def _make(
        product_id: str,
        quantity: int = 1,
        name: str = "Game key",
        digital: bool = True,
        **fields: Any,
    ) -> str:
        order = await order_service.create_order(
            {
                "customerName": "Ana",
                "customerEmail": "ana@example.com",
                "items": [
                    {
                        "productId": product_id,
                        "name": name,
                        "quantity": quantity,
                        "isDigitalProduct": digital,
                        "price": 19.9,
                    }
                ],
                "total": 19.9 * quantity,
                **fields,
            }
        )
        assert order.id is not None
        return order.id

    return _make

