"""
Standard span attributes for storefront.

Attribute constants shared by the record store, the key pool and the
fulfillment engine so spans from all three can be correlated by the same
keys (an order id set by the engine matches the claimant recorded by the
key pool, for example).

Example:
    >>> from storefront.observability.attributes import ATTR_COLLECTION, ATTR_DOCUMENT_ID
    >>>
    >>> with tracer.span(
    ...     "storefront.store.update",
    ...     {ATTR_COLLECTION: "orders", ATTR_DOCUMENT_ID: order_id},
    ... ):
    ...     pass
"""

# =============================================================================
# Record Store Attributes
# =============================================================================

ATTR_COLLECTION = "storefront.collection"
"""Name of the collection being read or written (string)."""

ATTR_DOCUMENT_ID = "storefront.document.id"
"""Identifier of the document being read or written (string)."""

ATTR_DOCUMENT_COUNT = "storefront.document.count"
"""Number of documents returned or persisted (integer)."""

ATTR_LOCK_WAIT_MS = "storefront.lock.wait_ms"
"""Milliseconds spent waiting for a collection lock (float)."""

# =============================================================================
# Catalog / Key Pool Attributes
# =============================================================================

ATTR_PRODUCT_ID = "storefront.product.id"
"""Identifier of the product whose key pool is touched (string)."""

ATTR_KEY_ID = "storefront.key.id"
"""Identifier of a digital key (string)."""

ATTR_KEY_COUNT = "storefront.key.count"
"""Number of keys added, allocated or requested (integer)."""

# =============================================================================
# Order / Payment Attributes
# =============================================================================

ATTR_ORDER_ID = "storefront.order.id"
"""Identifier of the order (string)."""

ATTR_ORDER_STATUS = "storefront.order.status"
"""Status of the order at the time of the span (string)."""

ATTR_PAYMENT_ID = "storefront.payment.id"
"""External payment identifier from the payment provider (string)."""

ATTR_PAYMENT_STATUS = "storefront.payment.status"
"""Payment status reported by the provider (string)."""

ATTR_EVENT_TYPE = "storefront.event.type"
"""Type of the inbound payment notification (string)."""

ATTR_FULFILLMENT_OUTCOME = "storefront.fulfillment.outcome"
"""Outcome of handling a payment event (string)."""

# =============================================================================
# Error Attributes
# =============================================================================

ATTR_ERROR_TYPE = "error.type"
"""Exception class name when an operation fails (string)."""

__all__ = [
    "ATTR_COLLECTION",
    "ATTR_DOCUMENT_ID",
    "ATTR_DOCUMENT_COUNT",
    "ATTR_LOCK_WAIT_MS",
    "ATTR_PRODUCT_ID",
    "ATTR_KEY_ID",
    "ATTR_KEY_COUNT",
    "ATTR_ORDER_ID",
    "ATTR_ORDER_STATUS",
    "ATTR_PAYMENT_ID",
    "ATTR_PAYMENT_STATUS",
    "ATTR_EVENT_TYPE",
    "ATTR_FULFILLMENT_OUTCOME",
    "ATTR_ERROR_TYPE",
]
