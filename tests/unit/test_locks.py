"""Unit tests for KeyedLockManager and lock ordering."""

import asyncio

import pytest

from src.pe_common.errors import BusyError
from src.pe_common.locks import KeyedLockManager, lock_keys


class TestLockKeys:
    def test_orders_before_accounts_sorted(self) -> None:
        keys = lock_keys(order_ids=["o2", "o1"], account_ids=["b", "a", "b"])
        assert keys == ["order:o1", "order:o2", "account:a", "account:b"]

    def test_empty(self) -> None:
        assert lock_keys() == []


class TestKeyedLockManager:
    async def test_hold_and_release(self) -> None:
        locks = KeyedLockManager(timeout_seconds=0.1)
        async with locks.hold(order_ids=["o1"], account_ids=["a"]):
            assert locks.is_locked("order:o1")
            assert locks.is_locked("account:a")
        assert not locks.is_locked("order:o1")
        assert not locks.is_locked("account:a")

    async def test_timeout_raises_busy(self) -> None:
        locks = KeyedLockManager(timeout_seconds=0.05)
        async with locks.hold(account_ids=["a"]):
            with pytest.raises(BusyError):
                async with locks.hold(account_ids=["a"]):
                    pass

    async def test_partial_acquire_released_on_timeout(self) -> None:
        locks = KeyedLockManager(timeout_seconds=0.05)
        async with locks.hold(account_ids=["b"]):
            with pytest.raises(BusyError):
                async with locks.hold(account_ids=["a", "b"]):
                    pass
            # "a" was taken before waiting on "b"; it must be free again
            assert not locks.is_locked("account:a")

    async def test_waiter_proceeds_after_release(self) -> None:
        locks = KeyedLockManager(timeout_seconds=1.0)
        order: list[str] = []

        async def first() -> None:
            async with locks.hold(order_ids=["o1"]):
                await asyncio.sleep(0.02)
                order.append("first")

        async def second() -> None:
            await asyncio.sleep(0)
            async with locks.hold(order_ids=["o1"]):
                order.append("second")

        await asyncio.gather(first(), second())
        assert order == ["first", "second"]


class TestIdleLocksDropped:
    async def test_map_empty_after_hold_exits(self) -> None:
        locks = KeyedLockManager(timeout_seconds=0.1)
        async with locks.hold(order_ids=["o1"], account_ids=["a", "b"]):
            assert len(locks) == 3
        assert len(locks) == 0

    async def test_map_empty_after_timeout(self) -> None:
        locks = KeyedLockManager(timeout_seconds=0.05)
        async with locks.hold(account_ids=["b"]):
            with pytest.raises(BusyError):
                async with locks.hold(account_ids=["a", "b"]):
                    pass
            assert len(locks) == 1
        assert len(locks) == 0

    async def test_lock_kept_while_waiter_queued(self) -> None:
        locks = KeyedLockManager(timeout_seconds=1.0)
        released = asyncio.Event()

        async def holder() -> None:
            async with locks.hold(order_ids=["o1"]):
                await released.wait()

        async def waiter() -> None:
            async with locks.hold(order_ids=["o1"]):
                assert locks.is_locked("order:o1")

        tasks = [asyncio.create_task(holder()), asyncio.create_task(waiter())]
        await asyncio.sleep(0.01)
        assert len(locks) == 1
        released.set()
        await asyncio.gather(*tasks)
        assert len(locks) == 0

    async def test_many_distinct_keys_leave_nothing_behind(self) -> None:
        locks = KeyedLockManager(timeout_seconds=0.1)
        for i in range(50):
            async with locks.hold(order_ids=[f"o{i}"], account_ids=[f"a{i}"]):
                pass
        assert len(locks) == 0
