"""Library exceptions for the storefront package."""

from pathlib import Path


class StorefrontError(Exception):
    """Base exception for storefront library."""

    pass


class ValidationError(StorefrontError):
    """
    Raised when input to a create or update is malformed.

    Validation always happens before any storage mutation is attempted,
    so a ValidationError guarantees the container was not touched.

    Attributes:
        field: Name of the offending field, or None for whole-input errors
        reason: Human-readable description of the problem
    """

    def __init__(self, reason: str, field: str | None = None) -> None:
        self.field = field
        self.reason = reason
        field_info = f" (field '{field}')" if field else ""
        super().__init__(f"Validation failed{field_info}: {reason}")


class StoreError(StorefrontError):
    """Raised when there's an error in the record store."""

    pass


class CorruptStoreError(StoreError):
    """
    Raised when a collection container cannot be parsed.

    Attributes:
        collection: Name of the collection whose container is unreadable
        path: Filesystem path of the container, if any
        reason: What was wrong with the content
    """

    def __init__(self, collection: str, reason: str, path: Path | None = None) -> None:
        self.collection = collection
        self.path = path
        self.reason = reason
        location = f" at {path}" if path else ""
        super().__init__(f"Collection '{collection}' is corrupt{location}: {reason}")


class StoreWriteError(StoreError):
    """Raised when persisting a collection container fails."""

    def __init__(self, collection: str, reason: str) -> None:
        self.collection = collection
        self.reason = reason
        super().__init__(f"Failed to persist collection '{collection}': {reason}")


class LockTimeoutError(StoreError):
    """
    Raised when a collection lock cannot be acquired in time.

    Attributes:
        key: The lock key (collection name or scoped key)
        timeout: Seconds waited before giving up
    """

    def __init__(self, key: str, timeout: float) -> None:
        self.key = key
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout}s waiting for lock '{key}'")


class KeyPoolError(StorefrontError):
    """Raised when a key pool operation is not allowed."""

    pass


class ProductNotFoundError(KeyPoolError):
    """Raised by key pool admin operations that require an existing product."""

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class NotDigitalProductError(KeyPoolError):
    """Raised when a key pool operation targets a non-digital product."""

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"Product {product_id} is not a digital product")


class KeyNotFoundError(KeyPoolError):
    """Raised when a key id is not part of a product's pool."""

    def __init__(self, product_id: str, key_id: str) -> None:
        self.product_id = product_id
        self.key_id = key_id
        super().__init__(f"Key {key_id} not found in pool of product {product_id}")


class KeyInUseError(KeyPoolError):
    """
    Raised when attempting to remove or reassign a key that was already used.

    Used keys belong to an order for good; they can never return to the pool.

    Attributes:
        product_id: Product owning the key
        key_id: The used key
        used_by: Order id that consumed the key
    """

    def __init__(self, product_id: str, key_id: str, used_by: str | None = None) -> None:
        self.product_id = product_id
        self.key_id = key_id
        self.used_by = used_by
        owner = f" by order {used_by}" if used_by else ""
        super().__init__(f"Key {key_id} of product {product_id} is already used{owner}")


class KeyExhaustionError(KeyPoolError):
    """
    Describes a digital unit that could not be given a key.

    The fulfillment engine records this as a shortfall on the order rather
    than raising it; it exists so callers of the key pool can raise it when
    they require a key.
    """

    def __init__(self, product_id: str, requested: int, allocated: int) -> None:
        self.product_id = product_id
        self.requested = requested
        self.allocated = allocated
        super().__init__(
            f"Key pool of product {product_id} exhausted: "
            f"requested {requested}, allocated {allocated}"
        )


class OrderStateError(StorefrontError):
    """
    Raised when an explicit order transition is not in the transition table.

    Attributes:
        order_id: The order being transitioned
        current: Status the order is in
        requested: Status that was requested
    """

    def __init__(self, order_id: str, current: str, requested: str) -> None:
        self.order_id = order_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Order {order_id} cannot move from '{current}' to '{requested}'"
        )
