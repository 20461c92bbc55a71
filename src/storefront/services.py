"""
Wiring of the storefront components.

``create_services`` builds one store and hands it to every component, so
they all share the same collection locks.

Example:
    >>> from storefront.services import create_services
    >>>
    >>> services = create_services(StoreConfig.from_env())
    >>> result = await services.fulfillment.handle_payment_event(payload)
"""

from __future__ import annotations

from dataclasses import dataclass

from storefront.config import FulfillmentConfig, StoreConfig
from storefront.documents.file import FileDocumentStore
from storefront.documents.interface import DocumentStore
from storefront.fulfillment.engine import FulfillmentEngine
from storefront.fulfillment.notifier import Notifier
from storefront.keys.catalog import ProductCatalog
from storefront.keys.pool import KeyPoolManager
from storefront.observability import Tracer, create_tracer
from storefront.orders.service import OrderService


@dataclass(frozen=True)
class Services:
    """The storefront components, sharing one document store."""

    store: DocumentStore
    catalog: ProductCatalog
    key_pool: KeyPoolManager
    orders: OrderService
    fulfillment: FulfillmentEngine


def create_services(
    store_config: StoreConfig | None = None,
    fulfillment_config: FulfillmentConfig | None = None,
    notifier: Notifier | None = None,
    *,
    store: DocumentStore | None = None,
    tracer: Tracer | None = None,
    enable_tracing: bool = True,
) -> Services:
    """
    Build the storefront components.

    Args:
        store_config: Config for the default FileDocumentStore
        fulfillment_config: Config for the fulfillment engine
        notifier: Key delivery collaborator (defaults to LoggingNotifier)
        store: Use this store instead of creating a FileDocumentStore
        tracer: Tracer shared by all components
        enable_tracing: Whether to enable OpenTelemetry tracing (default True)

    Returns:
        Services wired to a single store
    """
    tracer = tracer or create_tracer(__name__, enable_tracing)
    if store is None:
        store = FileDocumentStore(store_config, tracer=tracer)

    key_pool = KeyPoolManager(store, tracer=tracer)
    return Services(
        store=store,
        catalog=ProductCatalog(store, tracer=tracer),
        key_pool=key_pool,
        orders=OrderService(store, tracer=tracer),
        fulfillment=FulfillmentEngine(
            store,
            key_pool,
            notifier,
            fulfillment_config,
            tracer=tracer,
        ),
    )


__all__ = [
    "Services",
    "create_services",
]
