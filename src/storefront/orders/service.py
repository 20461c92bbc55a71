"""
Order service.

Creates orders, records checkout sessions, applies administrative status
changes through the transition table, and reports order statistics. Payment
driven transitions belong to ``storefront.fulfillment``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from storefront.documents.interface import Document, DocumentStore
from storefront.exceptions import OrderStateError, ValidationError
from storefront.observability import Tracer, create_tracer
from storefront.observability.attributes import ATTR_ORDER_ID, ATTR_ORDER_STATUS
from storefront.orders.models import Order, OrderStats, OrderStatus
from storefront.orders.state_machine import is_valid_transition
from storefront.validation import validate_model

logger = logging.getLogger(__name__)

ORDERS = "orders"

_REQUIRED_FIELDS = ("customerName", "customerEmail")


def _status_of(document: Document) -> OrderStatus:
    return OrderStatus(document.get("status", OrderStatus.PENDING.value))


def _parse_status(value: OrderStatus | str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError as e:
        raise ValidationError(f"unknown order status {value!r}", field="status") from e


class OrderService:
    """
    Order operations over the ``orders`` collection.

    Example:
        >>> orders = OrderService(store)
        >>> order = await orders.create_order({
        ...     "customerName": "Ana",
        ...     "customerEmail": "ana@example.com",
        ...     "items": [{"productId": pid, "name": "Game key", "quantity": 1,
        ...                "isDigitalProduct": True, "price": 19.9}],
        ...     "total": 19.9,
        ... })
        >>> await orders.mark_awaiting_payment(order.id, preference_id="pref-123")
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._store = store

    async def create_order(self, fields: Mapping[str, Any]) -> Order:
        """
        Validate and store a new order.

        ``customerName``, ``customerEmail`` and a non-empty ``items`` list are
        required. Status defaults to ``pending``.

        Raises:
            ValidationError: If required fields are missing or malformed
        """
        for name in _REQUIRED_FIELDS:
            if not fields.get(name):
                raise ValidationError("required field is missing", field=name)
        if not fields.get("items"):
            raise ValidationError("an order needs at least one item", field="items")

        order = validate_model(Order, fields)

        with self._tracer.span("storefront.orders.create_order"):
            created = await self._store.create(ORDERS, order.to_document())

        logger.info(
            f"Created order {created['id']}",
            extra={"order_id": created["id"], "item_count": len(order.items)},
        )
        return Order.model_validate(created)

    async def get_order(self, order_id: str) -> Order | None:
        document = await self._store.get_by_id(ORDERS, order_id)
        return Order.model_validate(document) if document is not None else None

    async def list_orders(
        self,
        status: OrderStatus | str | None = None,
        user_id: str | None = None,
        limit: int | None = None,
    ) -> list[Order]:
        """
        Orders filtered by status and/or user, newest first.

        Args:
            status: Only orders in this status
            user_id: Only orders of this user
            limit: Return at most this many orders
        """
        wanted = _parse_status(status).value if status is not None else None

        def matches(document: Document) -> bool:
            if wanted is not None and document.get("status") != wanted:
                return False
            return user_id is None or document.get("userId") == user_id

        documents = await self._store.find(ORDERS, matches)
        documents.sort(key=lambda d: d.get("createdAt") or "", reverse=True)
        if limit is not None:
            documents = documents[:limit]
        return [Order.model_validate(document) for document in documents]

    async def mark_awaiting_payment(self, order_id: str, preference_id: str) -> Order | None:
        """
        Record a checkout session and move the order to ``pending_payment``.

        Returns:
            The updated order, or None if it does not exist

        Raises:
            OrderStateError: If the order can no longer await payment
        """

        def await_payment(document: Document) -> dict[str, Any]:
            current = _status_of(document)
            if not is_valid_transition(current, OrderStatus.PENDING_PAYMENT):
                raise OrderStateError(order_id, current.value, OrderStatus.PENDING_PAYMENT.value)
            return {
                "status": OrderStatus.PENDING_PAYMENT.value,
                "mercadopagoPreferenceId": preference_id,
            }

        with self._tracer.span(
            "storefront.orders.mark_awaiting_payment",
            {ATTR_ORDER_ID: order_id},
        ):
            updated = await self._store.mutate(ORDERS, order_id, await_payment)

        if updated is None:
            return None
        logger.info(
            f"Order {order_id} awaiting payment (preference {preference_id})",
            extra={"order_id": order_id, "preference_id": preference_id},
        )
        return Order.model_validate(updated)

    async def transition(self, order_id: str, new_status: OrderStatus | str) -> Order | None:
        """
        Apply an administrative status change.

        Returns:
            The updated order, or None if it does not exist

        Raises:
            OrderStateError: If the transition table forbids the move
        """
        target = _parse_status(new_status)

        def apply(document: Document) -> dict[str, Any]:
            current = _status_of(document)
            if not is_valid_transition(current, target):
                raise OrderStateError(order_id, current.value, target.value)
            return {"status": target.value}

        with self._tracer.span(
            "storefront.orders.transition",
            {ATTR_ORDER_ID: order_id, ATTR_ORDER_STATUS: target.value},
        ):
            updated = await self._store.mutate(ORDERS, order_id, apply)

        if updated is None:
            return None
        logger.info(
            f"Order {order_id} moved to {target.value}",
            extra={"order_id": order_id, "status": target.value},
        )
        return Order.model_validate(updated)

    async def payment_status(self, order_id: str) -> dict[str, Any] | None:
        """Status, payment id and checkout preference id of an order."""
        document = await self._store.get_by_id(ORDERS, order_id)
        if document is None:
            return None
        return {
            "status": document.get("status"),
            "paymentId": document.get("mercadopagoPaymentId"),
            "preferenceId": document.get("mercadopagoPreferenceId"),
        }

    async def stats(self) -> OrderStats:
        """Counts per status and revenue of completed orders."""
        documents = await self._store.get_all(ORDERS)
        stats = OrderStats(total=len(documents))
        for document in documents:
            status = document.get("status", OrderStatus.PENDING.value)
            stats.by_status[status] = stats.by_status.get(status, 0) + 1
            if status == OrderStatus.COMPLETED.value:
                stats.total_revenue += float(document.get("total") or 0)
        return stats


__all__ = ["OrderService"]
