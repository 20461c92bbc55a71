"""
In-memory implementation of the document store.

Keeps each collection's serialized container text in a dictionary. Because
it goes through the same encode/decode path and the same locking as the
file store, it behaves identically apart from durability: values come back
as their JSON form, corrupt content is detected, and every load and write
yields to the event loop.

All data is lost when the process terminates.
"""

from __future__ import annotations

import asyncio

from storefront.documents.base import BaseDocumentStore
from storefront.documents.locks import CollectionLockManager
from storefront.observability import Tracer


class InMemoryDocumentStore(BaseDocumentStore):
    """
    In-memory DocumentStore for testing and development.

    Example:
        >>> store = InMemoryDocumentStore(enable_tracing=False)
        >>> await store.create("coupons", {"code": "WELCOME10", "discount": 10})
        >>> await store.find_one("coupons", lambda c: c["code"] == "WELCOME10")

    Note:
        - Use ``reset()`` for test teardown
        - ``seed_raw()`` lets tests install arbitrary (even corrupt) content
    """

    def __init__(
        self,
        *,
        lock_manager: CollectionLockManager | None = None,
        lock_timeout: float | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        super().__init__(
            lock_manager=lock_manager,
            lock_timeout=lock_timeout,
            indent=0,
            tracer=tracer,
            enable_tracing=enable_tracing,
        )
        self._containers: dict[str, str] = {}

    async def _read_raw(self, collection: str) -> str | None:
        await asyncio.sleep(0)
        return self._containers.get(collection)

    async def _write_raw(self, collection: str, content: str) -> None:
        await asyncio.sleep(0)
        self._containers[collection] = content

    def seed_raw(self, collection: str, content: str) -> None:
        """Install raw container content for ``collection``."""
        self._containers[collection] = content

    def reset(self) -> None:
        """Drop every collection."""
        self._containers.clear()

    @property
    def collections(self) -> list[str]:
        """Names of the collections that have a container."""
        return sorted(self._containers)


__all__ = ["InMemoryDocumentStore"]
