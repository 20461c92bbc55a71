"""
Fulfillment engine.

Turns at-least-once payment notifications into exactly-once key allocation.

Handling an event:
    1. Resolve the order from the event's external reference. A missing
       reference or a missing order is acknowledged without side effects.
    2. Map the payment status onto the order state machine
       (``resolve_payment_transition``).
    3. ``approved``: skip if the order is already paid; otherwise allocate
       one key per digital unit, persist the order as paid in one update,
       then notify the customer best effort.
    4. ``rejected``/``cancelled``: move to payment_failed unless paid.
    5. ``pending``/``in_process``: move to pending_payment unless paid.
    6. Always acknowledge, even on internal failure.

Allocation, not notification, is the durable success boundary: once keys
are used they stay with the order even if delivery fails.

Concurrent deliveries of the same event are serialized per order, and the
paid check always runs against a fresh read of the order, so a duplicate
approval can never allocate a second set of keys. Keys that a previous,
interrupted attempt already claimed for the order are reused before new
ones are drawn.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from storefront.config import FulfillmentConfig
from storefront.documents.base import utc_timestamp
from storefront.documents.interface import Document, DocumentStore
from storefront.documents.locks import CollectionLockManager
from storefront.fulfillment.events import PaymentEvent
from storefront.fulfillment.notifier import LoggingNotifier, Notifier
from storefront.fulfillment.results import FulfillmentOutcome, FulfillmentResult
from storefront.keys.models import DigitalKey
from storefront.keys.pool import KeyPoolManager
from storefront.observability import Tracer, create_tracer
from storefront.observability.attributes import (
    ATTR_ERROR_TYPE,
    ATTR_EVENT_TYPE,
    ATTR_FULFILLMENT_OUTCOME,
    ATTR_KEY_COUNT,
    ATTR_ORDER_ID,
    ATTR_PAYMENT_ID,
    ATTR_PAYMENT_STATUS,
)
from storefront.orders.models import AssignedKey, KeyShortfall, Order, OrderStatus
from storefront.orders.state_machine import (
    PaymentTransition,
    is_paid_or_later,
    is_valid_transition,
    resolve_payment_transition,
)

logger = logging.getLogger(__name__)

ORDERS = "orders"


class FulfillmentEngine:
    """
    Drives orders through their payment lifecycle.

    Example:
        >>> engine = FulfillmentEngine(store, KeyPoolManager(store), notifier)
        >>> result = await engine.handle_payment_event(
        ...     {"type": "payment", "data": {"id": "987"},
        ...      "external_reference": order_id, "status": "approved"}
        ... )
        >>> result.outcome
        <FulfillmentOutcome.PAID: 'paid'>
    """

    def __init__(
        self,
        store: DocumentStore,
        key_pool: KeyPoolManager,
        notifier: Notifier | None = None,
        config: FulfillmentConfig | None = None,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the fulfillment engine.

        Args:
            store: Document store holding ``orders`` and ``products``
            key_pool: Key pool manager used for allocation
            notifier: Delivery collaborator (defaults to LoggingNotifier)
            config: Engine configuration
            tracer: Optional tracer for tracing (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._store = store
        self._key_pool = key_pool
        self._notifier = notifier or LoggingNotifier()
        self._config = config or FulfillmentConfig()
        self._order_locks = CollectionLockManager(holder_id="fulfillment")

    async def handle_payment_event(
        self,
        event: PaymentEvent | Mapping[str, Any],
    ) -> FulfillmentResult:
        """
        Process one payment notification. Never raises.

        Args:
            event: A PaymentEvent or a raw webhook payload

        Returns:
            FulfillmentResult; ``acknowledged`` is always True
        """
        order_id: str | None = None
        payment_id: str | None = None
        try:
            if not isinstance(event, PaymentEvent):
                event = PaymentEvent.from_webhook(event)
            order_id = event.order_id
            payment_id = event.external_payment_id

            with self._tracer.span(
                "storefront.fulfillment.handle_payment_event",
                {
                    ATTR_EVENT_TYPE: event.type,
                    ATTR_ORDER_ID: order_id or "",
                    ATTR_PAYMENT_ID: payment_id or "",
                    ATTR_PAYMENT_STATUS: event.status or "",
                },
            ) as span:
                try:
                    result = await self._handle(event)
                except Exception as e:
                    if span is not None:
                        span.set_attribute(ATTR_ERROR_TYPE, type(e).__name__)
                    raise
                if span is not None:
                    span.set_attribute(ATTR_FULFILLMENT_OUTCOME, result.outcome.value)
            return result
        except Exception as e:
            logger.exception(
                f"Error processing payment event for order {order_id}: {e}",
                extra={
                    "order_id": order_id,
                    "payment_id": payment_id,
                    "error_type": type(e).__name__,
                },
            )
            return FulfillmentResult(
                outcome=FulfillmentOutcome.ERROR,
                order_id=order_id,
                payment_id=payment_id,
                error=str(e),
            )

    async def _handle(self, event: PaymentEvent) -> FulfillmentResult:
        if event.type not in self._config.payment_event_types:
            logger.debug(
                f"Ignoring notification of type '{event.type}'",
                extra={"event_type": event.type},
            )
            return FulfillmentResult(outcome=FulfillmentOutcome.IGNORED)

        order_id = event.order_id
        payment_id = event.external_payment_id
        if not order_id:
            logger.error(
                f"Payment {payment_id} has no external reference",
                extra={"payment_id": payment_id},
            )
            return FulfillmentResult(
                outcome=FulfillmentOutcome.MISSING_REFERENCE,
                payment_id=payment_id,
            )

        async with self._order_locks.acquire(f"order:{order_id}"):
            document = await self._store.get_by_id(ORDERS, order_id)
            if document is None:
                logger.error(
                    f"Order {order_id} referenced by payment {payment_id} not found",
                    extra={"order_id": order_id, "payment_id": payment_id},
                )
                return FulfillmentResult(
                    outcome=FulfillmentOutcome.ORDER_NOT_FOUND,
                    order_id=order_id,
                    payment_id=payment_id,
                )

            order = Order.model_validate(document)
            transition = resolve_payment_transition(order.status, event.status)
            if (
                transition == PaymentTransition.AWAIT
                and order.status == OrderStatus.PAYMENT_FAILED
                and not self._config.allow_retry_after_failure
            ):
                transition = PaymentTransition.IGNORE_LATE_EVENT

            logger.info(
                f"Payment {payment_id} is '{event.status}' for order {order_id} "
                f"({order.status.value}): {transition.value}",
                extra={
                    "order_id": order_id,
                    "payment_id": payment_id,
                    "payment_status": event.status,
                    "order_status": order.status.value,
                    "transition": transition.value,
                },
            )

            if transition == PaymentTransition.PAY:
                return await self._fulfill(order_id, order, event)

            if transition == PaymentTransition.ALREADY_PAID:
                return FulfillmentResult(
                    outcome=FulfillmentOutcome.ALREADY_PAID,
                    order_id=order_id,
                    payment_id=payment_id,
                    allocated=list(order.digital_keys),
                    shortfalls=list(order.key_shortfall),
                )

            if transition == PaymentTransition.FAIL:
                return await self._record_status(
                    order_id,
                    event,
                    OrderStatus.PAYMENT_FAILED,
                    FulfillmentOutcome.PAYMENT_FAILED,
                )

            if transition == PaymentTransition.AWAIT:
                return await self._record_status(
                    order_id,
                    event,
                    OrderStatus.PENDING_PAYMENT,
                    FulfillmentOutcome.AWAITING_PAYMENT,
                )

            if transition == PaymentTransition.IGNORE_LATE_EVENT:
                logger.warning(
                    f"Ignoring late '{event.status}' for order {order_id} in {order.status.value}",
                    extra={
                        "order_id": order_id,
                        "payment_id": payment_id,
                        "payment_status": event.status,
                        "order_status": order.status.value,
                    },
                )
                return FulfillmentResult(
                    outcome=FulfillmentOutcome.LATE_EVENT_IGNORED,
                    order_id=order_id,
                    payment_id=payment_id,
                )

            logger.warning(
                f"Unhandled payment status '{event.status}' for order {order_id}",
                extra={"order_id": order_id, "payment_id": payment_id},
            )
            return FulfillmentResult(
                outcome=FulfillmentOutcome.IGNORED,
                order_id=order_id,
                payment_id=payment_id,
            )

    async def _allocate(
        self,
        order_id: str,
        order: Order,
    ) -> tuple[list[AssignedKey], list[KeyShortfall]]:
        allocated: list[AssignedKey] = []
        shortfalls: list[KeyShortfall] = []
        previously_claimed: dict[str, list[DigitalKey]] = {}

        for item in order.digital_items:
            if item.product_id not in previously_claimed:
                previously_claimed[item.product_id] = await self._key_pool.claimed_by(
                    item.product_id, order_id
                )
            reusable = previously_claimed[item.product_id]

            granted = 0
            for _ in range(item.quantity):
                if reusable:
                    key: DigitalKey | None = reusable.pop(0)
                else:
                    key = await self._key_pool.allocate_one(item.product_id, order_id)
                if key is None:
                    break
                granted += 1
                allocated.append(
                    AssignedKey(
                        product_name=item.name,
                        product_id=item.product_id,
                        key=key.code,
                        key_id=key.id,
                    )
                )

            if granted < item.quantity:
                shortfall = KeyShortfall(
                    product_id=item.product_id,
                    product_name=item.name,
                    requested=item.quantity,
                    allocated=granted,
                )
                shortfalls.append(shortfall)
                logger.warning(
                    f"Order {order_id} is short {shortfall.missing} keys for {item.name}",
                    extra={
                        "order_id": order_id,
                        "product_id": item.product_id,
                        "requested": item.quantity,
                        "allocated": granted,
                    },
                )

        return allocated, shortfalls

    async def _fulfill(
        self,
        order_id: str,
        order: Order,
        event: PaymentEvent,
    ) -> FulfillmentResult:
        with self._tracer.span(
            "storefront.fulfillment.allocate_keys",
            {ATTR_ORDER_ID: order_id, ATTR_KEY_COUNT: order.digital_units},
        ):
            allocated, shortfalls = await self._allocate(order_id, order)

        written = False

        def mark_paid(current: Document) -> dict[str, Any] | None:
            nonlocal written
            if is_paid_or_later(OrderStatus(current.get("status", OrderStatus.PENDING.value))):
                return None
            written = True
            return {
                "status": OrderStatus.PAID.value,
                "mercadopagoPaymentId": event.external_payment_id,
                "paymentStatus": event.status,
                "paidAt": utc_timestamp(),
                "digitalKeys": [key.to_document() for key in allocated],
                "keyShortfall": [shortfall.to_document() for shortfall in shortfalls],
            }

        updated = await self._store.mutate(ORDERS, order_id, mark_paid)
        if updated is None:
            logger.error(
                f"Order {order_id} disappeared while allocating {len(allocated)} keys",
                extra={"order_id": order_id, "key_ids": [key.key_id for key in allocated]},
            )
            return FulfillmentResult(
                outcome=FulfillmentOutcome.ERROR,
                order_id=order_id,
                payment_id=event.external_payment_id,
                allocated=allocated,
                shortfalls=shortfalls,
                error="order deleted during fulfillment",
            )

        paid_order = Order.model_validate(updated)
        if not written:
            logger.warning(
                f"Order {order_id} was paid concurrently; keeping its existing keys",
                extra={"order_id": order_id, "key_ids": [key.key_id for key in allocated]},
            )
            return FulfillmentResult(
                outcome=FulfillmentOutcome.ALREADY_PAID,
                order_id=order_id,
                payment_id=event.external_payment_id,
                allocated=list(paid_order.digital_keys),
                shortfalls=list(paid_order.key_shortfall),
            )

        logger.info(
            f"Order {order_id} paid with {len(allocated)} keys",
            extra={
                "order_id": order_id,
                "payment_id": event.external_payment_id,
                "key_count": len(allocated),
                "shortfall_count": len(shortfalls),
            },
        )

        notified = False
        if allocated or self._config.notify_on_empty:
            notified = await self._notify(paid_order, allocated)

        return FulfillmentResult(
            outcome=FulfillmentOutcome.PAID,
            order_id=order_id,
            payment_id=event.external_payment_id,
            allocated=allocated,
            shortfalls=shortfalls,
            notified=notified,
        )

    async def _notify(self, order: Order, keys: list[AssignedKey]) -> bool:
        try:
            outcome = await self._notifier.deliver(
                order.customer_email,
                order.customer_name,
                keys,
                order,
            )
        except Exception as e:
            logger.exception(
                f"Failed to deliver keys for order {order.id}: {e}",
                extra={"order_id": order.id, "customer_email": order.customer_email},
            )
            return False

        if not outcome.success:
            logger.error(
                f"Key delivery for order {order.id} was not accepted: {outcome.error}",
                extra={"order_id": order.id, "customer_email": order.customer_email},
            )
            return False

        logger.info(
            f"Delivered {len(keys)} keys to {order.customer_email}",
            extra={
                "order_id": order.id,
                "simulated": outcome.simulated,
                "message_id": outcome.message_id,
            },
        )
        return True

    async def _record_status(
        self,
        order_id: str,
        event: PaymentEvent,
        target: OrderStatus,
        outcome: FulfillmentOutcome,
    ) -> FulfillmentResult:
        def apply(current: Document) -> dict[str, Any] | None:
            status = OrderStatus(current.get("status", OrderStatus.PENDING.value))
            if not is_valid_transition(status, target):
                return None
            return {
                "status": target.value,
                "mercadopagoPaymentId": event.external_payment_id,
                "paymentStatus": event.status,
            }

        updated = await self._store.mutate(ORDERS, order_id, apply)
        if updated is None or updated.get("status") != target.value:
            return FulfillmentResult(
                outcome=FulfillmentOutcome.LATE_EVENT_IGNORED,
                order_id=order_id,
                payment_id=event.external_payment_id,
            )

        return FulfillmentResult(
            outcome=outcome,
            order_id=order_id,
            payment_id=event.external_payment_id,
        )


__all__ = ["FulfillmentEngine"]
