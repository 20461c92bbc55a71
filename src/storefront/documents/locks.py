"""
Per-collection mutual exclusion for the record store.

Every mutating store call is a read-modify-write over a whole collection
container, with suspension points on both the read and the write. Two such
cycles against the same collection must not interleave, otherwise one
writer's change is silently lost. The lock manager hands out one
``asyncio.Lock`` per key (normally the collection name) and holds it for the
entire cycle.

Scope is a single event loop in a single process. A multi-process
deployment needs a file lock or a transactional store instead.

Usage:
    >>> locks = CollectionLockManager()
    >>> async with locks.acquire("products"):
    ...     documents = await load("products")
    ...     documents.append(new_document)
    ...     await persist("products", documents)
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

from storefront.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockInfo:
    """
    Information about an acquired lock.

    Attributes:
        key: The key the lock was acquired for
        acquired_at: When the lock was acquired
        waited_ms: How long the caller waited for it
        holder_id: Optional identifier for the lock holder (for debugging)
    """

    key: str
    acquired_at: datetime
    waited_ms: float
    holder_id: str | None = None


class CollectionLockManager:
    """
    Hands out one asyncio.Lock per key, created lazily.

    A lock is dropped once no caller holds or waits for it, so scoped keys
    such as ``order:<id>`` do not accumulate.

    Example:
        >>> locks = CollectionLockManager(holder_id="worker-1")
        >>> try:
        ...     async with locks.acquire("orders", timeout=5.0) as info:
        ...         print(info.waited_ms)
        ... except LockTimeoutError:
        ...     print("orders collection is busy")
    """

    def __init__(self, *, holder_id: str | None = None) -> None:
        """
        Initialize the lock manager.

        Args:
            holder_id: Optional identifier reported in LockInfo (for debugging)
        """
        self._holder_id = holder_id
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: str) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    @asynccontextmanager
    async def acquire(
        self,
        key: str,
        *,
        timeout: float | None = None,
    ) -> AsyncIterator[LockInfo]:
        """
        Acquire the lock for ``key`` as a context manager.

        The lock is released when the context exits, whether normally or
        due to an exception.

        Args:
            key: Lock key, normally a collection name
            timeout: Maximum seconds to wait (None = wait forever)

        Yields:
            LockInfo with lock details

        Raises:
            LockTimeoutError: If the lock could not be acquired within timeout
        """
        lock = self._checkout(key)
        started = time.monotonic()

        try:
            if timeout is None:
                await lock.acquire()
            else:
                try:
                    await asyncio.wait_for(lock.acquire(), timeout)
                except TimeoutError:
                    logger.warning(
                        f"Timed out waiting for lock '{key}'",
                        extra={"lock_key": key, "timeout": timeout},
                    )
                    raise LockTimeoutError(key, timeout) from None

            waited_ms = (time.monotonic() - started) * 1000
            try:
                yield LockInfo(
                    key=key,
                    acquired_at=datetime.now(UTC),
                    waited_ms=waited_ms,
                    holder_id=self._holder_id,
                )
            finally:
                lock.release()
        finally:
            self._checkin(key)

    def is_locked(self, key: str) -> bool:
        """Check whether the lock for ``key`` is currently held."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @property
    def keys(self) -> list[str]:
        """Keys currently held or waited on."""
        return list(self._locks)

    def __len__(self) -> int:
        return len(self._locks)


__all__ = [
    "CollectionLockManager",
    "LockInfo",
]
