"""
Shared read-modify-write machinery for document stores.

Backends only decide where a collection's serialized container lives
(``_read_raw`` / ``_write_raw``). Everything that matters for correctness is
implemented once here:

- id generation and uniqueness checks
- timestamp stamping
- merge semantics of ``update``/``mutate``
- parsing and validation of container content
- the per-collection exclusion scope spanning load, modify and persist
- first-use auto-provisioning of missing containers
"""

from __future__ import annotations

import copy
import logging
import re
import secrets
import string
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import UTC, datetime
from json import JSONDecodeError
from typing import Any

from storefront.documents.interface import DeleteGuard, Document, Mutation, Predicate
from storefront.documents.locks import CollectionLockManager
from storefront.exceptions import CorruptStoreError, ValidationError
from storefront.observability import Tracer, create_tracer
from storefront.observability.attributes import (
    ATTR_COLLECTION,
    ATTR_DOCUMENT_COUNT,
    ATTR_DOCUMENT_ID,
    ATTR_LOCK_WAIT_MS,
)
from storefront.serialization import json_dumps, json_loads

logger = logging.getLogger(__name__)

_COLLECTION_NAME = re.compile(r"^[A-Za-z0-9_-]+$")
_ID_ALPHABET = string.digits + string.ascii_lowercase
_RESERVED_ON_CREATE = frozenset({"id", "createdAt", "updatedAt"})


def utc_timestamp() -> str:
    """Current UTC time as an ISO 8601 string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_id(collection: str) -> str:
    """
    Generate a document id for a collection.

    Format: ``<first 4 chars of collection>-<ms timestamp>-<7 base36 chars>``,
    e.g. ``orde-1718000000000-k3j9x0a``.
    """
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"{collection[:4]}-{int(time.time() * 1000)}-{suffix}"


def validate_collection_name(collection: str) -> None:
    """
    Reject collection names that are not plain identifiers.

    Raises:
        ValidationError: If the name is empty or contains path characters
    """
    if not isinstance(collection, str) or not _COLLECTION_NAME.match(collection):
        raise ValidationError(
            f"invalid collection name {collection!r}; "
            "use letters, digits, '-' and '_' only",
            field="collection",
        )


def merge_document(current: Document, partial: Mapping[str, Any]) -> Document:
    """
    Shallow-merge ``partial`` into ``current``.

    ``id`` and ``createdAt`` are kept from ``current``; ``updatedAt`` is refreshed.
    """
    merged = {**current, **partial}
    merged["id"] = current["id"]
    if "createdAt" in current:
        merged["createdAt"] = current["createdAt"]
    merged["updatedAt"] = utc_timestamp()
    return merged


def _find_index(documents: list[Document], id: str) -> int:
    for index, document in enumerate(documents):
        if document.get("id") == id:
            return index
    return -1


class BaseDocumentStore(ABC):
    """
    Base class for document stores.

    Subclasses implement raw container access; this class implements the
    DocumentStore protocol on top of it.

    Reads take no lock. They rely on backends never exposing a partially
    written container (FileDocumentStore writes to a temp file and renames
    it into place).

    Mutations hold the collection's lock for the whole load-modify-persist
    cycle, so concurrent mutations of the same collection are serialized
    while different collections proceed independently.
    """

    def __init__(
        self,
        *,
        lock_manager: CollectionLockManager | None = None,
        lock_timeout: float | None = None,
        indent: int = 2,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize shared store state.

        Args:
            lock_manager: Lock manager to use (a private one is created if omitted)
            lock_timeout: Max seconds a mutation waits for its collection lock
            indent: JSON indentation of serialized containers
            tracer: Optional tracer (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._locks = lock_manager or CollectionLockManager()
        self._lock_timeout = lock_timeout
        self._indent = indent

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def _read_raw(self, collection: str) -> str | None:
        """Return the serialized container, or None if it does not exist."""

    @abstractmethod
    async def _write_raw(self, collection: str, content: str) -> None:
        """Atomically replace the serialized container."""

    def _describe(self, collection: str) -> Any:
        """Location of a container, used in CorruptStoreError messages."""
        return None

    # ------------------------------------------------------------------
    # Container encoding
    # ------------------------------------------------------------------

    def _decode(self, collection: str, content: str) -> list[Document]:
        try:
            data = json_loads(content)
        except JSONDecodeError as e:
            raise CorruptStoreError(
                collection, f"invalid JSON ({e.msg} at line {e.lineno})", self._describe(collection)
            ) from e

        if not isinstance(data, dict):
            raise CorruptStoreError(
                collection,
                f"expected a JSON object, found {type(data).__name__}",
                self._describe(collection),
            )

        documents = data.get(collection, [])
        if not isinstance(documents, list):
            raise CorruptStoreError(
                collection,
                f"'{collection}' must be a list, found {type(documents).__name__}",
                self._describe(collection),
            )
        for position, document in enumerate(documents):
            if not isinstance(document, dict):
                raise CorruptStoreError(
                    collection,
                    f"entry {position} is {type(document).__name__}, not an object",
                    self._describe(collection),
                )
        return documents

    def _encode(self, collection: str, documents: list[Document]) -> str:
        return json_dumps({collection: documents}, indent=self._indent)

    # ------------------------------------------------------------------
    # Load / persist
    # ------------------------------------------------------------------

    async def _load_locked(self, collection: str) -> list[Document]:
        """Load a collection while holding its lock, provisioning it if absent."""
        content = await self._read_raw(collection)
        if content is None:
            logger.warning(
                f"Collection '{collection}' not found, creating empty container",
                extra={"collection": collection},
            )
            await self._write_raw(collection, self._encode(collection, []))
            return []
        return self._decode(collection, content)

    async def _load(self, collection: str) -> list[Document]:
        content = await self._read_raw(collection)
        if content is not None:
            return self._decode(collection, content)
        async with self._locks.acquire(collection, timeout=self._lock_timeout):
            return await self._load_locked(collection)

    async def _persist(self, collection: str, documents: list[Document]) -> None:
        await self._write_raw(collection, self._encode(collection, documents))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_all(self, collection: str) -> list[Document]:
        """Load every document of a collection (auto-provisions a missing one)."""
        validate_collection_name(collection)
        with self._tracer.span(
            "storefront.store.get_all",
            {ATTR_COLLECTION: collection},
        ):
            return await self._load(collection)

    async def get_by_id(self, collection: str, id: str) -> Document | None:
        """Get a document by id, or None."""
        validate_collection_name(collection)
        with self._tracer.span(
            "storefront.store.get_by_id",
            {ATTR_COLLECTION: collection, ATTR_DOCUMENT_ID: str(id)},
        ):
            documents = await self._load(collection)
            index = _find_index(documents, id)
            return documents[index] if index >= 0 else None

    async def find(self, collection: str, predicate: Predicate) -> list[Document]:
        """Return every document matching ``predicate``."""
        documents = await self.get_all(collection)
        return [document for document in documents if predicate(document)]

    async def find_one(self, collection: str, predicate: Predicate) -> Document | None:
        """Return the first document matching ``predicate``, or None."""
        documents = await self.get_all(collection)
        for document in documents:
            if predicate(document):
                return document
        return None

    async def exists(self, collection: str, id: str) -> bool:
        """Check whether a document with ``id`` exists."""
        return await self.get_by_id(collection, id) is not None

    async def count(self, collection: str) -> int:
        """Number of documents in the collection."""
        return len(await self.get_all(collection))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, collection: str, fields: Mapping[str, Any]) -> Document:
        """
        Create a document with a fresh id and ``createdAt``/``updatedAt`` stamps.

        The id is checked for uniqueness against the collection while the
        collection lock is held, so concurrent creates can never collide.

        Raises:
            ValidationError: If ``fields`` is not a mapping
        """
        validate_collection_name(collection)
        if not isinstance(fields, Mapping):
            raise ValidationError(
                f"document fields must be a mapping, got {type(fields).__name__}"
            )

        with self._tracer.span(
            "storefront.store.create",
            {ATTR_COLLECTION: collection},
        ) as span:
            async with self._locks.acquire(collection, timeout=self._lock_timeout):
                documents = await self._load_locked(collection)
                taken = {document.get("id") for document in documents}

                new_id = generate_id(collection)
                while new_id in taken:
                    new_id = generate_id(collection)

                now = utc_timestamp()
                document: Document = {"id": new_id}
                document.update(
                    (key, value) for key, value in fields.items() if key not in _RESERVED_ON_CREATE
                )
                document["createdAt"] = now
                document["updatedAt"] = now

                documents.append(document)
                await self._persist(collection, documents)

            if span is not None:
                span.set_attribute(ATTR_DOCUMENT_ID, new_id)
                span.set_attribute(ATTR_DOCUMENT_COUNT, len(documents))

        logger.debug(
            f"Created document {new_id} in '{collection}'",
            extra={"collection": collection, "document_id": new_id},
        )
        return copy.deepcopy(document)

    async def update(
        self,
        collection: str,
        id: str,
        partial: Mapping[str, Any],
    ) -> Document | None:
        """
        Merge ``partial`` into the document ``id``; None if it does not exist.

        Raises:
            ValidationError: If ``partial`` is not a mapping
        """
        if not isinstance(partial, Mapping):
            raise ValidationError(
                f"update fields must be a mapping, got {type(partial).__name__}"
            )
        changes = dict(partial)
        return await self.mutate(collection, id, lambda _current: changes)

    async def mutate(self, collection: str, id: str, fn: Mutation) -> Document | None:
        """
        Run ``fn`` on the current document inside the collection lock and merge its result.

        ``fn`` returning None leaves the container untouched. Exceptions from
        ``fn`` propagate and nothing is written.
        """
        validate_collection_name(collection)
        with self._tracer.span(
            "storefront.store.mutate",
            {ATTR_COLLECTION: collection, ATTR_DOCUMENT_ID: str(id)},
        ) as span:
            async with self._locks.acquire(collection, timeout=self._lock_timeout) as lock_info:
                if span is not None:
                    span.set_attribute(ATTR_LOCK_WAIT_MS, lock_info.waited_ms)
                documents = await self._load_locked(collection)
                index = _find_index(documents, id)
                if index < 0:
                    return None

                current = documents[index]
                partial = fn(copy.deepcopy(current))
                if partial is None:
                    return copy.deepcopy(current)

                documents[index] = merge_document(current, partial)
                await self._persist(collection, documents)
                updated = documents[index]

        logger.debug(
            f"Updated document {id} in '{collection}'",
            extra={"collection": collection, "document_id": id, "fields": sorted(partial)},
        )
        return copy.deepcopy(updated)

    async def delete(
        self,
        collection: str,
        id: str,
        guard: DeleteGuard | None = None,
    ) -> bool:
        """
        Delete the document ``id``. Returns True if one was removed.

        ``guard`` runs on the current document inside the collection lock.
        Exceptions from it propagate and nothing is removed.
        """
        validate_collection_name(collection)
        with self._tracer.span(
            "storefront.store.delete",
            {ATTR_COLLECTION: collection, ATTR_DOCUMENT_ID: str(id)},
        ):
            async with self._locks.acquire(collection, timeout=self._lock_timeout):
                documents = await self._load_locked(collection)
                index = _find_index(documents, id)
                if index < 0:
                    return False
                if guard is not None:
                    guard(copy.deepcopy(documents[index]))
                del documents[index]
                await self._persist(collection, documents)

        logger.debug(
            f"Deleted document {id} from '{collection}'",
            extra={"collection": collection, "document_id": id},
        )
        return True

    async def clear(self, collection: str) -> None:
        """Persist an empty container for ``collection``."""
        validate_collection_name(collection)
        with self._tracer.span(
            "storefront.store.clear",
            {ATTR_COLLECTION: collection},
        ):
            async with self._locks.acquire(collection, timeout=self._lock_timeout):
                await self._persist(collection, [])

    @property
    def lock_manager(self) -> CollectionLockManager:
        """The lock manager serializing this store's mutations."""
        return self._locks


__all__ = [
    "BaseDocumentStore",
    "generate_id",
    "merge_document",
    "utc_timestamp",
    "validate_collection_name",
]
