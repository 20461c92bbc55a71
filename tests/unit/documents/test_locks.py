"""Unit tests for CollectionLockManager."""

from __future__ import annotations

import asyncio

import pytest

from storefront.documents import CollectionLockManager, LockInfo
from storefront.exceptions import LockTimeoutError


class TestCollectionLockManager:
    @pytest.mark.asyncio
    async def test_acquire_yields_lock_info(self) -> None:
        locks = CollectionLockManager(holder_id="worker-1")

        async with locks.acquire("orders") as info:
            assert isinstance(info, LockInfo)
            assert info.key == "orders"
            assert info.holder_id == "worker-1"
            assert locks.is_locked("orders")

        assert not locks.is_locked("orders")

    @pytest.mark.asyncio
    async def test_same_key_is_exclusive(self) -> None:
        locks = CollectionLockManager()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.acquire("orders"):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )

    @pytest.mark.asyncio
    async def test_different_keys_do_not_block(self) -> None:
        locks = CollectionLockManager()

        async with locks.acquire("orders"):
            async with locks.acquire("products", timeout=0.1):
                assert locks.is_locked("products")
                assert sorted(locks.keys) == ["orders", "products"]
                assert len(locks) == 2

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        locks = CollectionLockManager()

        async with locks.acquire("orders"):
            with pytest.raises(LockTimeoutError) as exc_info:
                async with locks.acquire("orders", timeout=0.01):
                    pass

        assert exc_info.value.key == "orders"
        assert exc_info.value.timeout == 0.01
        assert not locks.is_locked("orders")
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_released_on_exception(self) -> None:
        locks = CollectionLockManager()

        with pytest.raises(RuntimeError):
            async with locks.acquire("orders"):
                raise RuntimeError("boom")

        assert not locks.is_locked("orders")

    def test_unknown_key_is_not_locked(self) -> None:
        assert not CollectionLockManager().is_locked("anything")

    @pytest.mark.asyncio
    async def test_idle_locks_are_dropped(self) -> None:
        locks = CollectionLockManager()

        for index in range(100):
            async with locks.acquire(f"order:{index}"):
                pass

        assert len(locks) == 0
        assert locks.keys == []

    @pytest.mark.asyncio
    async def test_lock_kept_while_waiters_remain(self) -> None:
        locks = CollectionLockManager()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.acquire("order:1"):
                events.append(name)
                await asyncio.sleep(0.01)
                assert len(locks) == 1

        await asyncio.gather(worker("a"), worker("b"), worker("c"))

        assert sorted(events) == ["a", "b", "c"]
        assert len(locks) == 0
