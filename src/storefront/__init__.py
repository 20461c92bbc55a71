"""
storefront - Flat-file document store and payment-driven key fulfillment.

This library provides:
- A document store persisting one JSON container per collection, with
  per-collection locking and atomic writes
- Digital key pools with exactly-once allocation
- Orders with a status state machine
- A fulfillment engine that turns payment webhooks into delivered keys
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("storefront-py")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from storefront.config import FulfillmentConfig, StoreConfig
from storefront.documents import (
    CollectionLockManager,
    Document,
    DocumentStore,
    FileDocumentStore,
    InMemoryDocumentStore,
)
from storefront.exceptions import (
    CorruptStoreError,
    KeyExhaustionError,
    KeyInUseError,
    KeyNotFoundError,
    KeyPoolError,
    LockTimeoutError,
    NotDigitalProductError,
    OrderStateError,
    ProductNotFoundError,
    StoreError,
    StorefrontError,
    StoreWriteError,
    ValidationError,
)
from storefront.fulfillment import (
    DeliveryOutcome,
    FulfillmentEngine,
    FulfillmentOutcome,
    FulfillmentResult,
    LoggingNotifier,
    Notifier,
    PaymentEvent,
    PaymentStatus,
    RecordingNotifier,
)
from storefront.keys import (
    DigitalKey,
    KeyPoolManager,
    KeyPoolStats,
    KeyStatus,
    Product,
    ProductCatalog,
)
from storefront.observability import MockTracer, NullTracer, Tracer, create_tracer
from storefront.orders import (
    AssignedKey,
    KeyShortfall,
    Order,
    OrderItem,
    OrderService,
    OrderStats,
    OrderStatus,
)
from storefront.serialization import json_dumps, json_loads
from storefront.services import Services, create_services

__all__ = [
    # Version
    "__version__",
    # Config
    "FulfillmentConfig",
    "StoreConfig",
    # Documents
    "CollectionLockManager",
    "Document",
    "DocumentStore",
    "FileDocumentStore",
    "InMemoryDocumentStore",
    # Keys and catalog
    "DigitalKey",
    "KeyPoolManager",
    "KeyPoolStats",
    "KeyStatus",
    "Product",
    "ProductCatalog",
    # Orders
    "AssignedKey",
    "KeyShortfall",
    "Order",
    "OrderItem",
    "OrderService",
    "OrderStats",
    "OrderStatus",
    # Fulfillment
    "DeliveryOutcome",
    "FulfillmentEngine",
    "FulfillmentOutcome",
    "FulfillmentResult",
    "LoggingNotifier",
    "Notifier",
    "PaymentEvent",
    "PaymentStatus",
    "RecordingNotifier",
    # Wiring
    "Services",
    "create_services",
    # Observability
    "MockTracer",
    "NullTracer",
    "Tracer",
    "create_tracer",
    # Serialization
    "json_dumps",
    "json_loads",
    # Exceptions
    "CorruptStoreError",
    "KeyExhaustionError",
    "KeyInUseError",
    "KeyNotFoundError",
    "KeyPoolError",
    "LockTimeoutError",
    "NotDigitalProductError",
    "OrderStateError",
    "ProductNotFoundError",
    "StoreError",
    "StorefrontError",
    "StoreWriteError",
    "ValidationError",
]
