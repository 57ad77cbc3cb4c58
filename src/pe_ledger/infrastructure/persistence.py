"""AccountRepository: concrete implementation of AccountRepositoryProtocol.

All balance-mutating operations are a single guarded UPDATE ... RETURNING.
A result of 0 rows means a constraint was violated (insufficient available /
frozen funds, or the account is halted); the caller re-reads to find out which.

Transaction ownership: The CALLER (application service) is responsible for
starting and committing the transaction via `async with db.begin()`.
"""

from typing import Any

from sqlalchemy import func, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.pe_common.datetime_utils import utc_now
from src.pe_common.enums import AccountStatus
from src.pe_common.errors import InternalError
from src.pe_ledger.domain.models import Account, FlowRecord
from src.pe_ledger.infrastructure.db_models import AccountORM, FlowRecordORM

_ACCOUNT_COLUMNS = (
    AccountORM.account_id,
    AccountORM.available_balance,
    AccountORM.frozen_balance,
    AccountORM.status,
    AccountORM.version,
    AccountORM.created_at,
    AccountORM.updated_at,
)

_FLOW_COLUMNS = (
    FlowRecordORM.id,
    FlowRecordORM.account_id,
    FlowRecordORM.amount,
    FlowRecordORM.direction,
    FlowRecordORM.category,
    FlowRecordORM.balance_after,
    FlowRecordORM.description,
    FlowRecordORM.order_id,
    FlowRecordORM.order_no,
    FlowRecordORM.proof_url,
    FlowRecordORM.created_at,
)


def _row_to_account(row: Any) -> Account:
    return Account(
        account_id=row.account_id,
        available_balance=row.available_balance,
        frozen_balance=row.frozen_balance,
        status=row.status,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_flow(row: Any) -> FlowRecord:
    return FlowRecord(
        id=row.id,
        account_id=row.account_id,
        amount=row.amount,
        direction=row.direction,
        category=row.category,
        balance_after=row.balance_after,
        description=row.description,
        order_id=row.order_id,
        order_no=row.order_no,
        proof_url=row.proof_url,
        created_at=row.created_at,
    )


def _insert_ignore(db: AsyncSession) -> Any:
    """Dialect-specific INSERT that supports ON CONFLICT DO NOTHING."""
    if db.get_bind().dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


class AccountRepository:
    """Concrete repository: all operations atomic at the SQL level."""

    async def get_account(self, db: AsyncSession, account_id: str) -> Account | None:
        result = await db.execute(
            select(*_ACCOUNT_COLUMNS).where(AccountORM.account_id == account_id)
        )
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def get_or_open_account(self, db: AsyncSession, account_id: str) -> Account:
        now = utc_now()
        stmt = (
            _insert_ignore(db)(AccountORM)
            .values(
                account_id=account_id,
                available_balance=0,
                frozen_balance=0,
                status=AccountStatus.ACTIVE.value,
                version=0,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["account_id"])
        )
        await db.execute(stmt)
        account = await self.get_account(db, account_id)
        if account is None:
            raise InternalError(f"Account {account_id} missing right after open")
        return account

    async def apply_delta(
        self,
        db: AsyncSession,
        account_id: str,
        available_delta: int,
        frozen_delta: int,
    ) -> Account | None:
        stmt = (
            update(AccountORM)
            .where(
                AccountORM.account_id == account_id,
                AccountORM.status == AccountStatus.ACTIVE.value,
                AccountORM.available_balance + available_delta >= 0,
                AccountORM.frozen_balance + frozen_delta >= 0,
            )
            .values(
                available_balance=AccountORM.available_balance + available_delta,
                frozen_balance=AccountORM.frozen_balance + frozen_delta,
                version=AccountORM.version + 1,
                updated_at=utc_now(),
            )
            .returning(*_ACCOUNT_COLUMNS)
        )
        result = await db.execute(stmt)
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def mark_halted(self, db: AsyncSession, account_ids: list[str]) -> int:
        result = await db.execute(
            update(AccountORM)
            .where(AccountORM.account_id.in_(account_ids))
            .values(status=AccountStatus.HALTED.value, updated_at=utc_now())
        )
        return result.rowcount or 0

    async def insert_flow(self, db: AsyncSession, flow: FlowRecord) -> FlowRecord:
        result = await db.execute(
            insert(FlowRecordORM)
            .values(
                id=flow.id,
                account_id=flow.account_id,
                amount=flow.amount,
                direction=flow.direction,
                category=flow.category,
                balance_after=flow.balance_after,
                description=flow.description,
                order_id=flow.order_id,
                order_no=flow.order_no,
                proof_url=flow.proof_url,
                created_at=flow.created_at or utc_now(),
            )
            .returning(*_FLOW_COLUMNS)
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Flow insert returned no rows")
        return _row_to_flow(row)

    async def list_flows(
        self,
        db: AsyncSession,
        account_id: str,
        cursor_id: str | None,
        limit: int,
        category: str | None,
    ) -> list[FlowRecord]:
        stmt = select(*_FLOW_COLUMNS).where(FlowRecordORM.account_id == account_id)
        if cursor_id is not None:
            stmt = stmt.where(FlowRecordORM.id < cursor_id)
        if category is not None:
            stmt = stmt.where(FlowRecordORM.category == category)
        stmt = stmt.order_by(FlowRecordORM.id.desc()).limit(limit)
        rows = (await db.execute(stmt)).fetchall()
        return [_row_to_flow(row) for row in rows]

    async def sum_flows(self, db: AsyncSession, account_id: str) -> int:
        result = await db.execute(
            select(func.coalesce(func.sum(FlowRecordORM.amount), 0)).where(
                FlowRecordORM.account_id == account_id
            )
        )
        return int(result.scalar_one())
