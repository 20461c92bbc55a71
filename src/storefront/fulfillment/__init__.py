"""
Payment-driven order fulfillment.

Example:
    >>> from storefront.fulfillment import FulfillmentEngine, FulfillmentOutcome
    >>>
    >>> engine = FulfillmentEngine(store, KeyPoolManager(store), notifier)
    >>> result = await engine.handle_payment_event(payload)
    >>> status, body = result.response()  # always (200, "OK")
"""

from storefront.fulfillment.engine import FulfillmentEngine
from storefront.fulfillment.events import PaymentEvent, PaymentStatus
from storefront.fulfillment.notifier import (
    Delivery,
    DeliveryOutcome,
    LoggingNotifier,
    Notifier,
    RecordingNotifier,
)
from storefront.fulfillment.results import FulfillmentOutcome, FulfillmentResult

__all__ = [
    # Engine
    "FulfillmentEngine",
    "FulfillmentOutcome",
    "FulfillmentResult",
    # Events
    "PaymentEvent",
    "PaymentStatus",
    # Notification
    "Delivery",
    "DeliveryOutcome",
    "LoggingNotifier",
    "Notifier",
    "RecordingNotifier",
]
