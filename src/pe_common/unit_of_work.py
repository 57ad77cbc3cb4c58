"""TransactionRunner: lock, open a session, run one atomic unit, map to Result.

Every mutating engine operation follows the same shape:

  1. acquire order/account locks (bounded wait, BusyError on timeout)
  2. open a fresh session AFTER the locks are held, so every read that a
     decision is based on happens inside the transaction
  3. run the body inside `db.begin()`; any exception rolls everything back
  4. non-fatal AppError -> Result.failure, FatalError -> escalate and raise
"""

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.pe_common.errors import AppError, FatalError, InvariantViolationError
from src.pe_common.locks import KeyedLockManager
from src.pe_common.result import Result

logger = logging.getLogger(__name__)

T = TypeVar("T")

HaltCallback = Callable[[list[str], FatalError], Awaitable[None]]


class TransactionRunner:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: KeyedLockManager,
        on_fatal: HaltCallback | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._locks = locks
        self._on_fatal = on_fatal

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    def set_fatal_handler(self, on_fatal: HaltCallback) -> None:
        self._on_fatal = on_fatal

    async def run(
        self,
        operation: str,
        body: Callable[[AsyncSession], Awaitable[T]],
        order_ids: Iterable[str] = (),
        account_ids: Iterable[str] = (),
    ) -> Result[T]:
        account_ids = list(account_ids)
        try:
            async with self._locks.hold(order_ids, account_ids):
                async with self._session_factory() as db:
                    try:
                        async with db.begin():
                            value = await body(db)
                    except IntegrityError as exc:
                        # A DB CHECK (non-negative balance) fired: a guard was bypassed
                        raise InvariantViolationError(
                            f"{operation}: database constraint rejected write ({exc.orig})"
                        ) from exc
        except FatalError as exc:
            # Halt only the accounts the error blames; a bare DB constraint
            # failure cannot say which one, so every locked account is halted
            to_halt = list(exc.account_ids) or account_ids
            logger.critical(
                "%s aborted by fatal error, halting accounts %s: %s",
                operation,
                to_halt,
                exc.message,
            )
            if self._on_fatal is not None and to_halt:
                await self._on_fatal(to_halt, exc)
            raise
        except AppError as exc:
            logger.warning("%s rejected: [%d] %s", operation, exc.code, exc.message)
            return Result.failure(exc)
        return Result.success(value)
