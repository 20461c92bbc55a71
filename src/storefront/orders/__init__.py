"""
Orders and the order status state machine.

Example:
    >>> from storefront.orders import OrderService, OrderStatus, is_valid_transition
    >>>
    >>> is_valid_transition(OrderStatus.PAID, OrderStatus.PAYMENT_FAILED)
    False
"""

from storefront.orders.models import (
    AssignedKey,
    KeyShortfall,
    Order,
    OrderItem,
    OrderStats,
    OrderStatus,
)
from storefront.orders.service import OrderService
from storefront.orders.state_machine import (
    PAID_STATES,
    VALID_TRANSITIONS,
    PaymentTransition,
    is_paid_or_later,
    is_valid_transition,
    resolve_payment_transition,
)

__all__ = [
    "AssignedKey",
    "KeyShortfall",
    "Order",
    "OrderItem",
    "OrderService",
    "OrderStats",
    "OrderStatus",
    "PAID_STATES",
    "PaymentTransition",
    "VALID_TRANSITIONS",
    "is_paid_or_later",
    "is_valid_transition",
    "resolve_payment_transition",
]
