"""
Digital key models.

A digital product carries an ordered pool of keys (license or activation
codes). Keys move forward only:

    available -> used
    available -> reserved -> used

A used key belongs to the order in ``usedBy`` for good. It is never
returned to the pool and never deleted.
"""

from __future__ import annotations

import secrets
import time
from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from storefront.documents.base import utc_timestamp


class KeyStatus(str, Enum):
    """Lifecycle status of a digital key."""

    AVAILABLE = "available"
    """In the pool, can be allocated or reserved."""

    RESERVED = "reserved"
    """Held for an order, not yet delivered."""

    USED = "used"
    """Delivered to an order (terminal)."""


# Valid key status transitions
VALID_KEY_TRANSITIONS: dict[KeyStatus, set[KeyStatus]] = {
    KeyStatus.AVAILABLE: {KeyStatus.USED, KeyStatus.RESERVED},
    KeyStatus.RESERVED: {KeyStatus.USED},
    KeyStatus.USED: set(),  # Terminal state
}


def is_valid_key_transition(from_status: KeyStatus, to_status: KeyStatus) -> bool:
    """Check if a key status transition is allowed."""
    return to_status in VALID_KEY_TRANSITIONS.get(from_status, set())


class DigitalKey(BaseModel):
    """
    A single key in a product's pool.

    Field names are stored in camelCase (``usedAt``, ``usedBy``,
    ``createdAt``); Python code uses snake_case.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    code: str
    status: KeyStatus = KeyStatus.AVAILABLE
    used_at: str | None = Field(default=None, alias="usedAt")
    used_by: str | None = Field(default=None, alias="usedBy")
    created_at: str | None = Field(default=None, alias="createdAt")

    def to_document(self) -> dict[str, Any]:
        """Serialize to the stored (camelCase) form."""
        return self.model_dump(mode="json", by_alias=True)


class KeyPoolStats(BaseModel):
    """Counts of keys per status in one product's pool."""

    total: int = 0
    available: int = 0
    used: int = 0
    reserved: int = 0

    @classmethod
    def from_keys(cls, keys: Iterable[DigitalKey]) -> KeyPoolStats:
        stats = cls()
        for key in keys:
            stats.total += 1
            if key.status == KeyStatus.AVAILABLE:
                stats.available += 1
            elif key.status == KeyStatus.USED:
                stats.used += 1
            elif key.status == KeyStatus.RESERVED:
                stats.reserved += 1
        return stats


def parse_codes(codes: str | Iterable[str]) -> list[str]:
    """
    Normalize key codes given as a list or as newline-separated text.

    Whitespace is stripped and blank entries are dropped.

    Example:
        >>> parse_codes("AAAA-1111\\n\\n  BBBB-2222 ")
        ['AAAA-1111', 'BBBB-2222']
    """
    if isinstance(codes, str):
        codes = codes.splitlines()
    return [code.strip() for code in codes if code and code.strip()]


def new_key_id(index: int = 0) -> str:
    """Key id of the form ``key-<ms timestamp>-<index>-<random>``."""
    return f"key-{int(time.time() * 1000)}-{index}-{secrets.token_hex(3)}"


def build_keys(codes: str | Iterable[str]) -> list[DigitalKey]:
    """Create ``available`` keys for each code, in the given order."""
    now = utc_timestamp()
    return [
        DigitalKey(id=new_key_id(index), code=code, status=KeyStatus.AVAILABLE, created_at=now)
        for index, code in enumerate(parse_codes(codes))
    ]


__all__ = [
    "DigitalKey",
    "KeyPoolStats",
    "KeyStatus",
    "VALID_KEY_TRANSITIONS",
    "build_keys",
    "is_valid_key_transition",
    "new_key_id",
    "parse_codes",
]
