"""
Order models.

Typed views of ``orders`` documents. Stored field names are camelCase
(``customerEmail``, ``isDigitalProduct``, ``mercadopagoPaymentId``, ...);
Python code uses snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    """Lifecycle status of an order. See ``storefront.orders.state_machine``."""

    PENDING = "pending"
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    PAYMENT_FAILED = "payment_failed"
    CANCELLED = "cancelled"
    PROCESSING = "processing"
    COMPLETED = "completed"


class OrderItem(BaseModel):
    """One line of an order."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    product_id: str = Field(alias="productId")
    name: str = ""
    quantity: int = Field(default=1, ge=1)
    is_digital_product: bool = Field(default=False, alias="isDigitalProduct")
    price: float = Field(default=0, ge=0)


class AssignedKey(BaseModel):
    """Summary of a key delivered to an order, as stored in ``Order.digitalKeys``."""

    model_config = ConfigDict(populate_by_name=True)

    product_name: str = Field(alias="productName")
    product_id: str = Field(alias="productId")
    key: str
    key_id: str = Field(alias="keyId")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class KeyShortfall(BaseModel):
    """Digital units of a line item that could not be given a key."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(alias="productId")
    product_name: str = Field(alias="productName")
    requested: int
    allocated: int

    @property
    def missing(self) -> int:
        return self.requested - self.allocated

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Order(BaseModel):
    """Typed view of an ``orders`` document."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    user_id: str | None = Field(default=None, alias="userId")
    customer_name: str = Field(default="", alias="customerName")
    customer_email: str = Field(default="", alias="customerEmail")
    items: list[OrderItem] = Field(default_factory=list)
    subtotal: float = 0
    tax: float = 0
    shipping: float = 0
    total: float = 0
    status: OrderStatus = OrderStatus.PENDING
    payment_method: str = Field(default="mercadopago", alias="paymentMethod")
    shipping_address: dict[str, Any] = Field(default_factory=dict, alias="shippingAddress")
    mercadopago_preference_id: str | None = Field(default=None, alias="mercadopagoPreferenceId")
    mercadopago_payment_id: str | int | None = Field(default=None, alias="mercadopagoPaymentId")
    payment_status: str | None = Field(default=None, alias="paymentStatus")
    paid_at: str | None = Field(default=None, alias="paidAt")
    digital_keys: list[AssignedKey] = Field(default_factory=list, alias="digitalKeys")
    key_shortfall: list[KeyShortfall] = Field(default_factory=list, alias="keyShortfall")
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")

    @property
    def digital_items(self) -> list[OrderItem]:
        return [item for item in self.items if item.is_digital_product]

    @property
    def digital_units(self) -> int:
        """Number of keys this order needs in total."""
        return sum(item.quantity for item in self.digital_items)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude={"id", "created_at", "updated_at"},
        )


@dataclass
class OrderStats:
    """Order counts per status and revenue of completed orders."""

    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    total_revenue: float = 0.0

    def count(self, status: OrderStatus) -> int:
        return self.by_status.get(status.value, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            **{status.value: self.count(status) for status in OrderStatus},
            "totalRevenue": self.total_revenue,
        }


__all__ = [
    "AssignedKey",
    "KeyShortfall",
    "Order",
    "OrderItem",
    "OrderStats",
    "OrderStatus",
]
