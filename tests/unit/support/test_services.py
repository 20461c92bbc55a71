"""Unit tests for component wiring and package exports."""

from __future__ import annotations

from pathlib import Path

import pytest

import storefront
from storefront.config import StoreConfig
from storefront.documents import FileDocumentStore, InMemoryDocumentStore
from storefront.fulfillment import FulfillmentOutcome, RecordingNotifier
from storefront.services import create_services


class TestCreateServices:
    def test_default_store_is_file_backed(self, tmp_path: Path) -> None:
        services = create_services(
            StoreConfig(data_dir=tmp_path, fsync=False),
            enable_tracing=False,
        )

        assert isinstance(services.store, FileDocumentStore)
        assert services.store.config.data_dir == tmp_path

    @pytest.mark.asyncio
    async def test_components_share_the_store(self) -> None:
        store = InMemoryDocumentStore(enable_tracing=False)
        notifier = RecordingNotifier()
        services = create_services(notifier=notifier, store=store, enable_tracing=False)

        product = await services.catalog.create_product(
            {"name": "Game key", "price": 10, "category": "games", "isDigitalProduct": True},
            key_codes=["AAAA"],
        )
        assert product.id is not None
        order = await services.orders.create_order(
            {
                "customerName": "Ana",
                "customerEmail": "ana@example.com",
                "items": [
                    {"productId": product.id, "name": "Game key", "quantity": 1,
                     "isDigitalProduct": True, "price": 10}
                ],
                "total": 10,
            }
        )
        assert order.id is not None
        await services.orders.mark_awaiting_payment(order.id, "pref-1")

        result = await services.fulfillment.handle_payment_event(
            {
                "type": "payment",
                "data": {"id": "1"},
                "external_reference": order.id,
                "status": "approved",
            }
        )

        assert result.outcome == FulfillmentOutcome.PAID
        assert [delivery.keys[0].key for delivery in notifier.deliveries] == ["AAAA"]
        _, stats = await services.key_pool.get_pool(product.id)
        assert stats.used == 1


class TestPackageExports:
    def test_version(self) -> None:
        assert isinstance(storefront.__version__, str)

    def test_all_names_resolve(self) -> None:
        for name in storefront.__all__:
            assert hasattr(storefront, name), name
