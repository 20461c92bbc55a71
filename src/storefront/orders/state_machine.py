"""
Order status state machine.

State Machine:
    PENDING         -> PENDING_PAYMENT | PAID | PAYMENT_FAILED | CANCELLED
    PENDING_PAYMENT -> PENDING_PAYMENT | PAID | PAYMENT_FAILED | CANCELLED
    PAYMENT_FAILED  -> PENDING_PAYMENT | PAID | PAYMENT_FAILED | CANCELLED
    CANCELLED       -> PAID
    PAID            -> PROCESSING | COMPLETED
    PROCESSING      -> COMPLETED
    COMPLETED       -> (terminal)

Every unpaid state can reach PAID: an approved payment means money was
captured and the order must be fulfilled. Nothing leaves PAID (or the
states after it) for an unpaid state, so a late rejection can never undo a
fulfilled order.

Provider payment statuses are mapped onto this table by
``resolve_payment_transition``.
"""

from __future__ import annotations

from enum import Enum

from storefront.orders.models import OrderStatus

# Valid order status transitions
VALID_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {
        OrderStatus.PENDING_PAYMENT,
        OrderStatus.PAID,
        OrderStatus.PAYMENT_FAILED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PENDING_PAYMENT: {
        OrderStatus.PENDING_PAYMENT,  # Re-affirmed by pending/in_process events
        OrderStatus.PAID,
        OrderStatus.PAYMENT_FAILED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PAYMENT_FAILED: {
        OrderStatus.PENDING_PAYMENT,  # Customer retries the payment
        OrderStatus.PAID,
        OrderStatus.PAYMENT_FAILED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.CANCELLED: {
        OrderStatus.PAID,
    },
    OrderStatus.PAID: {
        OrderStatus.PROCESSING,
        OrderStatus.COMPLETED,
    },
    OrderStatus.PROCESSING: {
        OrderStatus.COMPLETED,
    },
    OrderStatus.COMPLETED: set(),  # Terminal state
}

PAID_STATES = frozenset({OrderStatus.PAID, OrderStatus.PROCESSING, OrderStatus.COMPLETED})


def is_valid_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    """
    Check if an order status transition is valid.

    Args:
        from_status: Current status
        to_status: Target status

    Returns:
        True if transition is allowed, False otherwise
    """
    return to_status in VALID_TRANSITIONS.get(from_status, set())


def is_paid_or_later(status: OrderStatus) -> bool:
    """True once an order has been paid, including processing and completed."""
    return status in PAID_STATES


class PaymentTransition(Enum):
    """What a payment status means for an order in a given state."""

    PAY = "pay"
    """Allocate keys and move to PAID."""

    ALREADY_PAID = "already_paid"
    """Approved again for a paid order; nothing to do."""

    FAIL = "fail"
    """Move to PAYMENT_FAILED."""

    AWAIT = "await"
    """Move to (or stay in) PENDING_PAYMENT."""

    IGNORE_LATE_EVENT = "ignore_late_event"
    """A stale failure/pending update for an order that moved on."""

    IGNORE_UNKNOWN_STATUS = "ignore_unknown_status"
    """A provider status with no mapping (refunds, chargebacks, ...)."""


APPROVED_STATUSES = frozenset({"approved"})
FAILED_STATUSES = frozenset({"rejected", "cancelled"})
WAITING_STATUSES = frozenset({"pending", "in_process"})


def resolve_payment_transition(current: OrderStatus, payment_status: str | None) -> PaymentTransition:
    """
    Map a provider payment status onto the order state machine.

    Args:
        current: Status the order is in now
        payment_status: Raw status reported by the payment provider

    Returns:
        The transition to perform
    """
    if payment_status in APPROVED_STATUSES:
        if is_paid_or_later(current):
            return PaymentTransition.ALREADY_PAID
        return PaymentTransition.PAY

    if payment_status in FAILED_STATUSES:
        if is_valid_transition(current, OrderStatus.PAYMENT_FAILED):
            return PaymentTransition.FAIL
        return PaymentTransition.IGNORE_LATE_EVENT

    if payment_status in WAITING_STATUSES:
        if is_valid_transition(current, OrderStatus.PENDING_PAYMENT):
            return PaymentTransition.AWAIT
        return PaymentTransition.IGNORE_LATE_EVENT

    return PaymentTransition.IGNORE_UNKNOWN_STATUS


__all__ = [
    "APPROVED_STATUSES",
    "FAILED_STATUSES",
    "PAID_STATES",
    "PaymentTransition",
    "VALID_TRANSITIONS",
    "WAITING_STATUSES",
    "is_paid_or_later",
    "is_valid_transition",
    "resolve_payment_transition",
]
