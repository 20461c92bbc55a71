"""
Configuration classes for the record store and the fulfillment engine.

This module provides:
- StoreConfig: Where and how collection containers are persisted
- FulfillmentConfig: Knobs for payment event handling
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")


@dataclass(frozen=True)
class StoreConfig:
    """
    Configuration for a FileDocumentStore.

    Attributes:
        data_dir: Directory holding one ``<collection>.json`` file per collection.
            Created on first write if missing.
        indent: JSON indentation used when persisting containers
        encoding: Text encoding of the container files
        fsync: Whether to fsync the temporary file before renaming it into place.
            Disabling trades crash durability for speed (useful in tests).
        lock_timeout: Max seconds a mutating call waits for its collection lock
            (None = wait forever)

    Example:
        >>> config = StoreConfig(data_dir=Path("./database"))
        >>> config = StoreConfig(data_dir=Path("/tmp/db"), fsync=False, lock_timeout=5.0)
    """

    data_dir: Path = Path("database")
    indent: int = 2
    encoding: str = "utf-8"
    fsync: bool = True
    lock_timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not isinstance(self.data_dir, Path):
            object.__setattr__(self, "data_dir", Path(self.data_dir))

        if self.indent < 0:
            raise ValueError(
                f"indent must be >= 0, got {self.indent}. "
                "Use 2 (default) for readable files or 0 for compact output."
            )

        if self.lock_timeout is not None and self.lock_timeout <= 0:
            raise ValueError(
                f"lock_timeout must be positive, got {self.lock_timeout}. "
                "Use None to wait forever."
            )

    @classmethod
    def from_env(cls, prefix: str = "STOREFRONT_") -> StoreConfig:
        """
        Build a config from environment variables.

        Reads ``<prefix>DATA_DIR``, ``<prefix>LOCK_TIMEOUT`` and ``<prefix>FSYNC``.
        Unset variables keep their defaults.

        Args:
            prefix: Environment variable prefix

        Returns:
            StoreConfig populated from the environment

        Raises:
            ValueError: If a variable holds an unparseable value
        """
        kwargs: dict[str, object] = {}

        data_dir = os.environ.get(f"{prefix}DATA_DIR")
        if data_dir:
            kwargs["data_dir"] = Path(data_dir)

        lock_timeout = os.environ.get(f"{prefix}LOCK_TIMEOUT")
        if lock_timeout:
            try:
                kwargs["lock_timeout"] = float(lock_timeout)
            except ValueError as e:
                raise ValueError(
                    f"{prefix}LOCK_TIMEOUT must be a number of seconds, got {lock_timeout!r}"
                ) from e

        fsync = os.environ.get(f"{prefix}FSYNC")
        if fsync:
            kwargs["fsync"] = _parse_bool(f"{prefix}FSYNC", fsync)

        return cls(**kwargs)  # type: ignore[arg-type]


@dataclass(frozen=True)
class FulfillmentConfig:
    """
    Configuration for the FulfillmentEngine.

    Attributes:
        payment_event_types: Notification types that carry payment updates.
            Anything else is acknowledged and ignored.
        notify_on_empty: Call the notifier even when no key was allocated
            (e.g. an order with only physical items)
        allow_retry_after_failure: Let a ``pending``/``in_process`` event move a
            ``payment_failed`` order back to ``pending_payment``
    """

    payment_event_types: tuple[str, ...] = ("payment",)
    notify_on_empty: bool = False
    allow_retry_after_failure: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.payment_event_types:
            raise ValueError(
                "payment_event_types must not be empty. "
                "Use ('payment',) (default) for the provider's payment notifications."
            )


__all__ = [
    "StoreConfig",
    "FulfillmentConfig",
]
