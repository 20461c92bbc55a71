"""Results of handling a payment event."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from storefront.orders.models import AssignedKey, KeyShortfall


class FulfillmentOutcome(Enum):
    """What handling a payment event did."""

    IGNORED = "ignored"
    """Not a payment notification, or a payment status with no mapping."""

    MISSING_REFERENCE = "missing_reference"
    """The event carried no order reference."""

    ORDER_NOT_FOUND = "order_not_found"
    """The referenced order does not exist."""

    PAID = "paid"
    """Keys allocated and the order moved to paid."""

    ALREADY_PAID = "already_paid"
    """Duplicate approval for an order that was already paid."""

    PAYMENT_FAILED = "payment_failed"
    """The order moved to payment_failed."""

    AWAITING_PAYMENT = "awaiting_payment"
    """The order moved to (or stayed in) pending_payment."""

    LATE_EVENT_IGNORED = "late_event_ignored"
    """A stale status for an order that already moved on."""

    ERROR = "error"
    """An internal failure; the event is still acknowledged."""


@dataclass
class FulfillmentResult:
    """
    Result of ``FulfillmentEngine.handle_payment_event``.

    ``acknowledged`` is always True: the event source must be told the event
    was received whatever happened internally, otherwise it keeps retrying.

    Attributes:
        outcome: What happened
        order_id: The referenced order, if any
        payment_id: The provider's payment id, if any
        allocated: Keys delivered to the order
        shortfalls: Digital units that could not be given a key
        notified: Whether the notifier reported a successful delivery
        error: Description of an internal failure
    """

    outcome: FulfillmentOutcome
    order_id: str | None = None
    payment_id: str | None = None
    allocated: list[AssignedKey] = field(default_factory=list)
    shortfalls: list[KeyShortfall] = field(default_factory=list)
    notified: bool = False
    error: str | None = None
    acknowledged: bool = True

    @property
    def is_partial(self) -> bool:
        """True if some digital units went without a key."""
        return bool(self.shortfalls)

    def response(self) -> tuple[int, str]:
        """HTTP status and body the boundary should return to the provider."""
        return 200, "OK"


__all__ = [
    "FulfillmentOutcome",
    "FulfillmentResult",
]
