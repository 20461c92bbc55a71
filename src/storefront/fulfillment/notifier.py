"""
Notification collaborator.

After keys are allocated the fulfillment engine hands them to a notifier,
which delivers them to the customer out of band (email in production).
Delivery is best effort: a failed delivery is logged and never undoes the
allocation.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from storefront.orders.models import AssignedKey, Order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryOutcome:
    """
    Result of a delivery attempt.

    Attributes:
        success: Whether the keys were handed off
        simulated: True when nothing was actually sent
        message_id: Identifier from the delivery provider, if any
        error: Description of the failure, if any
    """

    success: bool
    simulated: bool = False
    message_id: str | None = None
    error: str | None = None


@runtime_checkable
class Notifier(Protocol):
    """Delivers allocated keys to a customer."""

    async def deliver(
        self,
        customer_email: str,
        customer_name: str,
        keys: Sequence[AssignedKey],
        order: Order,
    ) -> DeliveryOutcome:
        """
        Deliver keys for an order.

        May raise; the fulfillment engine treats exceptions like an
        unsuccessful outcome.
        """
        ...


class LoggingNotifier:
    """
    Notifier that only logs what it would send.

    Used when no delivery provider is configured.
    """

    async def deliver(
        self,
        customer_email: str,
        customer_name: str,
        keys: Sequence[AssignedKey],
        order: Order,
    ) -> DeliveryOutcome:
        logger.warning(
            f"[simulated] Delivering {len(keys)} keys to {customer_email}",
            extra={
                "order_id": order.id,
                "customer_email": customer_email,
                "key_ids": [key.key_id for key in keys],
            },
        )
        return DeliveryOutcome(success=True, simulated=True)


@dataclass
class Delivery:
    """A delivery recorded by RecordingNotifier."""

    customer_email: str
    customer_name: str
    keys: list[AssignedKey]
    order: Order


@dataclass
class RecordingNotifier:
    """
    Notifier that keeps every delivery in memory.

    Set ``fail_with`` to make ``deliver`` raise, or ``succeed`` to False to
    return an unsuccessful outcome.

    Example:
        >>> notifier = RecordingNotifier()
        >>> engine = FulfillmentEngine(store, pool, notifier)
        >>> await engine.handle_payment_event(event)
        >>> assert len(notifier.deliveries) == 1
    """

    deliveries: list[Delivery] = field(default_factory=list)
    fail_with: Exception | None = None
    succeed: bool = True

    async def deliver(
        self,
        customer_email: str,
        customer_name: str,
        keys: Sequence[AssignedKey],
        order: Order,
    ) -> DeliveryOutcome:
        if self.fail_with is not None:
            raise self.fail_with
        self.deliveries.append(Delivery(customer_email, customer_name, list(keys), order))
        if not self.succeed:
            return DeliveryOutcome(success=False, error="delivery rejected")
        return DeliveryOutcome(success=True, message_id=f"msg-{len(self.deliveries)}")

    def clear(self) -> None:
        self.deliveries.clear()


__all__ = [
    "Delivery",
    "DeliveryOutcome",
    "LoggingNotifier",
    "Notifier",
    "RecordingNotifier",
]
