"""
Protocol for document stores.

A document store keeps named collections of schema-less documents. Each
collection is persisted as one container; every mutation rewrites the whole
container under a per-collection lock, and every write is atomic with
respect to crashes.

Consumers (the key pool, the fulfillment engine, order services, and any
routing layer that handles users, coupons, currencies or settings) depend on
this protocol, not on a concrete backend.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, TypeAlias, runtime_checkable

Document: TypeAlias = dict[str, Any]
"""A single record: field name to JSON-compatible value, always with ``id``."""

Predicate: TypeAlias = Callable[[Document], bool]
"""Filter function used by ``find`` and ``find_one``."""

Mutation: TypeAlias = Callable[[Document], Mapping[str, Any] | None]
"""Function run under the collection lock by ``mutate``; returns a partial or None."""

DeleteGuard: TypeAlias = Callable[[Document], None]
"""Check run under the collection lock by ``delete``; raises to veto the removal."""


@runtime_checkable
class DocumentStore(Protocol):
    """
    Protocol for keyed-collection storage.

    All methods are async. Lookups by id report "absent" through ``None`` or
    ``False`` rather than exceptions, so callers can branch on the common
    case without an exception path.

    Example:
        >>> store: DocumentStore = FileDocumentStore(StoreConfig(data_dir=tmp))
        >>> order = await store.create("orders", {"status": "pending", "items": []})
        >>> same = await store.get_by_id("orders", order["id"])
        >>> await store.update("orders", order["id"], {"status": "paid"})
    """

    async def get_all(self, collection: str) -> list[Document]:
        """
        Load every document of a collection.

        A missing container is provisioned as an empty collection and
        persisted before returning.

        Raises:
            CorruptStoreError: If the container cannot be parsed
        """
        ...

    async def get_by_id(self, collection: str, id: str) -> Document | None:
        """Get a document by id, or None if it does not exist."""
        ...

    async def create(self, collection: str, fields: Mapping[str, Any]) -> Document:
        """
        Create a document with a fresh unique id and creation timestamps.

        Any ``id``, ``createdAt`` or ``updatedAt`` in ``fields`` is ignored.

        Returns:
            The stored document
        """
        ...

    async def update(
        self,
        collection: str,
        id: str,
        partial: Mapping[str, Any],
    ) -> Document | None:
        """
        Merge ``partial`` into a document and refresh ``updatedAt``.

        Same-named fields are fully replaced; ``id`` is never overwritten.

        Returns:
            The updated document, or None if ``id`` does not exist
        """
        ...

    async def mutate(self, collection: str, id: str, fn: Mutation) -> Document | None:
        """
        Run ``fn`` against the current document inside the collection lock.

        ``fn`` receives a copy of the current document and returns a partial
        to merge (exactly like ``update``) or None for "no change". An
        exception raised by ``fn`` aborts the cycle without writing.

        Returns:
            The resulting document, or None if ``id`` does not exist
        """
        ...

    async def delete(
        self,
        collection: str,
        id: str,
        guard: DeleteGuard | None = None,
    ) -> bool:
        """
        Delete a document. Returns True if one was removed.

        ``guard`` sees the document inside the collection lock; an exception
        from it propagates and nothing is removed.
        """
        ...

    async def find(self, collection: str, predicate: Predicate) -> list[Document]:
        """Return every document matching ``predicate``, in stored order."""
        ...

    async def find_one(self, collection: str, predicate: Predicate) -> Document | None:
        """Return the first document matching ``predicate``, or None."""
        ...

    async def exists(self, collection: str, id: str) -> bool:
        """Check whether a document with ``id`` exists."""
        ...

    async def count(self, collection: str) -> int:
        """Number of documents in the collection."""
        ...

    async def clear(self, collection: str) -> None:
        """Remove every document of the collection."""
        ...


__all__ = [
    "DeleteGuard",
    "Document",
    "DocumentStore",
    "Mutation",
    "Predicate",
]
