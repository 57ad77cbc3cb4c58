"""Per-order / per-account mutual exclusion with bounded waits.

Lock ordering is global: order keys first, then account keys sorted by id.
Every mutating operation goes through `hold()`, so two operations touching
overlapping keys always acquire them in the same order and cannot deadlock.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import AsyncExitStack, asynccontextmanager

from src.pe_common.errors import BusyError

logger = logging.getLogger(__name__)


def lock_keys(
    order_ids: Iterable[str] = (), account_ids: Iterable[str] = ()
) -> list[str]:
    """Deduplicated keys in acquisition order."""
    orders = sorted({f"order:{o}" for o in order_ids})
    accounts = sorted({f"account:{a}" for a in account_ids})
    return orders + accounts


class KeyedLockManager:
    """One asyncio.Lock per key, created on first use and dropped when idle."""

    def __init__(self, timeout_seconds: float = 5.0) -> None:
        self._timeout = timeout_seconds
        self._locks: dict[str, asyncio.Lock] = {}
        # holders + waiters per key; the lock is discarded when it hits zero
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: str) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    def is_locked(self, key: str) -> bool:
        return key in self._locks and self._locks[key].locked()

    @asynccontextmanager
    async def hold(
        self,
        order_ids: Iterable[str] = (),
        account_ids: Iterable[str] = (),
    ) -> AsyncIterator[None]:
        """Acquire all keys or none; raises BusyError after the bounded wait."""
        async with AsyncExitStack() as stack:
            for key in lock_keys(order_ids, account_ids):
                lock = self._checkout(key)
                stack.callback(self._checkin, key)
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=self._timeout)
                except TimeoutError:
                    logger.warning("Lock wait timed out: key=%s", key)
                    raise BusyError(key) from None
                stack.callback(lock.release)
            yield
