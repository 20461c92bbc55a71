"""
Observability utilities for storefront.

Tracing is optional: every component accepts a ``Tracer`` and falls back to
``NullTracer`` when OpenTelemetry is not installed or tracing is disabled.

Example:
    >>> from storefront.observability import create_tracer
    >>>
    >>> class MyComponent:
    ...     def __init__(self, enable_tracing: bool = True):
    ...         self._tracer = create_tracer(__name__, enable_tracing)
"""

from storefront.observability.attributes import (
    ATTR_COLLECTION,
    ATTR_DOCUMENT_COUNT,
    ATTR_DOCUMENT_ID,
    ATTR_ERROR_TYPE,
    ATTR_EVENT_TYPE,
    ATTR_FULFILLMENT_OUTCOME,
    ATTR_KEY_COUNT,
    ATTR_KEY_ID,
    ATTR_LOCK_WAIT_MS,
    ATTR_ORDER_ID,
    ATTR_ORDER_STATUS,
    ATTR_PAYMENT_ID,
    ATTR_PAYMENT_STATUS,
    ATTR_PRODUCT_ID,
)
from storefront.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)
from storefront.observability.tracing import (
    OTEL_AVAILABLE,
)

__all__ = [
    # Tracing utilities
    "OTEL_AVAILABLE",
    # Tracer (composition-based API)
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes - Record store
    "ATTR_COLLECTION",
    "ATTR_DOCUMENT_ID",
    "ATTR_DOCUMENT_COUNT",
    "ATTR_LOCK_WAIT_MS",
    # Attributes - Key pool
    "ATTR_PRODUCT_ID",
    "ATTR_KEY_ID",
    "ATTR_KEY_COUNT",
    # Attributes - Orders / payments
    "ATTR_ORDER_ID",
    "ATTR_ORDER_STATUS",
    "ATTR_PAYMENT_ID",
    "ATTR_PAYMENT_STATUS",
    "ATTR_EVENT_TYPE",
    "ATTR_FULFILLMENT_OUTCOME",
    # Attributes - Errors
    "ATTR_ERROR_TYPE",
]
