"""
Inbound payment events.

The payment provider notifies the HTTP boundary with payloads shaped like::

    {"type": "payment", "data": {"id": "123"}, "external_reference": "<order id>",
     "status": "approved"}

``PaymentEvent.from_webhook`` turns that payload into a typed event. Events
are ephemeral; they are never stored, and the provider may deliver the same
one more than once.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.exceptions import ValidationError


class PaymentStatus(str, Enum):
    """Payment statuses the fulfillment engine acts on."""

    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    PENDING = "pending"
    IN_PROCESS = "in_process"


class PaymentEvent(BaseModel):
    """
    A provider notification about a payment.

    Attributes:
        type: Notification type (``payment`` for payment updates)
        external_payment_id: The provider's payment id
        external_reference: Our order id, as sent when the checkout was created
        status: Raw payment status reported by the provider
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = "payment"
    external_payment_id: str | None = Field(default=None, alias="externalPaymentId")
    external_reference: str | None = Field(default=None, alias="externalReference")
    status: str | None = None

    @field_validator("external_payment_id", "external_reference", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)

    @property
    def order_id(self) -> str | None:
        return self.external_reference

    @property
    def payment_status(self) -> PaymentStatus | None:
        """The status as a known PaymentStatus, or None if unrecognized."""
        try:
            return PaymentStatus(self.status)
        except ValueError:
            return None

    @classmethod
    def from_webhook(cls, payload: Mapping[str, Any]) -> PaymentEvent:
        """
        Build an event from a provider webhook payload.

        The payment id is read from ``data.id`` (or a top-level ``id``); the
        order reference and status may sit at the top level or inside ``data``.

        Raises:
            ValidationError: If the payload is not a mapping
        """
        if not isinstance(payload, Mapping):
            raise ValidationError(f"webhook payload must be an object, got {type(payload).__name__}")

        data = payload.get("data")
        if not isinstance(data, Mapping):
            data = {}

        return cls(
            type=payload.get("type") or payload.get("topic") or "",
            external_payment_id=data.get("id", payload.get("id")),
            external_reference=payload.get("external_reference", data.get("external_reference")),
            status=payload.get("status", data.get("status")),
        )


__all__ = [
    "PaymentEvent",
    "PaymentStatus",
]
