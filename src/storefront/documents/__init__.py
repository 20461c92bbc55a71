"""
Document storage for storefront.

Named collections of schema-less documents with create/read/update/delete
and predicate scans, serialized per collection and persisted atomically.

Example:
    >>> from storefront.documents import FileDocumentStore
    >>> from storefront.config import StoreConfig
    >>>
    >>> store = FileDocumentStore(StoreConfig(data_dir=Path("./database")))
    >>> user = await store.create("users", {"email": "ana@example.com"})
    >>> admins = await store.find("users", lambda u: u.get("role") == "admin")
"""

from storefront.documents.base import (
    BaseDocumentStore,
    generate_id,
    merge_document,
    utc_timestamp,
    validate_collection_name,
)
from storefront.documents.file import FileDocumentStore
from storefront.documents.in_memory import InMemoryDocumentStore
from storefront.documents.interface import (
    DeleteGuard,
    Document,
    DocumentStore,
    Mutation,
    Predicate,
)
from storefront.documents.locks import CollectionLockManager, LockInfo

__all__ = [
    # Protocol and types
    "DeleteGuard",
    "Document",
    "DocumentStore",
    "Mutation",
    "Predicate",
    # Implementations
    "BaseDocumentStore",
    "FileDocumentStore",
    "InMemoryDocumentStore",
    # Locking
    "CollectionLockManager",
    "LockInfo",
    # Helpers
    "generate_id",
    "merge_document",
    "utc_timestamp",
    "validate_collection_name",
]
