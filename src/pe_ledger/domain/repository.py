"""Repository Protocol: dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.

Every balance mutation is a single guarded UPDATE ... RETURNING; a None
return means the guard (sufficient funds / sufficient frozen / ACTIVE
status) rejected the write and nothing changed.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pe_ledger.domain.models import Account, FlowRecord


class AccountRepositoryProtocol(Protocol):
    async def get_account(self, db: AsyncSession, account_id: str) -> Account | None: ...

    async def get_or_open_account(self, db: AsyncSession, account_id: str) -> Account: ...

    async def apply_delta(
        self,
        db: AsyncSession,
        account_id: str,
        available_delta: int,
        frozen_delta: int,
    ) -> Account | None: ...

    async def mark_halted(self, db: AsyncSession, account_ids: list[str]) -> int: ...

    async def insert_flow(self, db: AsyncSession, flow: FlowRecord) -> FlowRecord: ...

    async def list_flows(
        self,
        db: AsyncSession,
        account_id: str,
        cursor_id: str | None,
        limit: int,
        category: str | None,
    ) -> list[FlowRecord]: ...

    async def sum_flows(self, db: AsyncSession, account_id: str) -> int: ...
