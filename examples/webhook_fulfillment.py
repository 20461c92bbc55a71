"""
Webhook Fulfillment Example

This example walks a digital order through its payment lifecycle:
- Creating a digital product with a key pool
- Placing an order and starting checkout
- Handling the provider's payment webhooks, including a duplicate
- Inspecting the order and the key pool afterwards

Data is written to a temporary directory, one JSON file per collection.

Run with: python examples/webhook_fulfillment.py
"""

import asyncio
import logging
import tempfile
from pathlib import Path

from storefront import (
    FulfillmentOutcome,
    RecordingNotifier,
    StoreConfig,
    create_services,
)


def webhook(order_id: str, status: str, payment_id: str) -> dict:
    """Payload in the shape the payment provider posts to the webhook endpoint."""
    return {
        "type": "payment",
        "data": {"id": payment_id},
        "external_reference": order_id,
        "status": status,
    }


async def main():
    """Demonstrate exactly-once key fulfillment."""
    print("=" * 60)
    print("Storefront Webhook Fulfillment Example")
    print("=" * 60)

    data_dir = Path(tempfile.mkdtemp(prefix="storefront-"))
    notifier = RecordingNotifier()
    services = create_services(
        StoreConfig(data_dir=data_dir, fsync=False),
        notifier=notifier,
        enable_tracing=False,
    )

    # Create a digital product with three keys
    print("\n1. Creating a digital product")

    product = await services.catalog.create_product(
        {"name": "Space Game (Steam key)", "price": 29.9, "category": "games",
         "isDigitalProduct": True},
        key_codes="AAAA-1111\nBBBB-2222\nCCCC-3333",
    )
    _, stats = await services.key_pool.get_pool(product.id)
    print(f"   Product: {product.id}")
    print(f"   Keys available: {stats.available}")

    # Place an order for two keys and start checkout
    print("\n2. Placing an order for two keys")

    order = await services.orders.create_order(
        {
            "customerName": "Ana",
            "customerEmail": "ana@example.com",
            "items": [
                {"productId": product.id, "name": product.name, "quantity": 2,
                 "isDigitalProduct": True, "price": 29.9}
            ],
            "total": 59.8,
        }
    )
    await services.orders.mark_awaiting_payment(order.id, preference_id="pref-demo")
    print(f"   Order: {order.id}")

    # The provider reports the payment as in process, then approved
    print("\n3. Handling payment webhooks")

    for status in ("in_process", "approved"):
        result = await services.fulfillment.handle_payment_event(
            webhook(order.id, status, payment_id="5550001")
        )
        print(f"   {status:<10} -> {result.outcome.value} (HTTP {result.response()[0]})")

    # The provider redelivers the approval
    duplicate = await services.fulfillment.handle_payment_event(
        webhook(order.id, "approved", payment_id="5550001")
    )
    assert duplicate.outcome == FulfillmentOutcome.ALREADY_PAID
    print(f"   duplicate  -> {duplicate.outcome.value}")

    # A stale rejection arrives late
    late = await services.fulfillment.handle_payment_event(
        webhook(order.id, "rejected", payment_id="5550001")
    )
    print(f"   late reject -> {late.outcome.value}")

    # Inspect the result
    print("\n4. Final state:")

    paid = await services.orders.get_order(order.id)
    _, stats = await services.key_pool.get_pool(product.id)
    print(f"   Order status: {paid.status.value}")
    print(f"   Keys on order: {[key.key for key in paid.digital_keys]}")
    print(f"   Keys used/available: {stats.used}/{stats.available}")
    print(f"   Deliveries sent: {len(notifier.deliveries)}")
    print(f"   Files: {sorted(p.name for p in data_dir.iterdir())}")

    print("\n" + "=" * 60)
    print("Example completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    asyncio.run(main())
