"""FundingRepository: top-up and withdrawal requests plus finance totals."""

from datetime import datetime
from typing import Any

from sqlalchemy import insert, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.pe_common.datetime_utils import as_utc, utc_now
from src.pe_common.enums import FundingStatus
from src.pe_funding.domain.models import FinanceOverview, FundingKind, FundingRequest
from src.pe_funding.infrastructure.db_models import TopUpRequestORM, WithdrawalRequestORM

_TABLES: dict[FundingKind, Any] = {
    FundingKind.TOPUP: TopUpRequestORM,
    FundingKind.WITHDRAWAL: WithdrawalRequestORM,
}

_OVERVIEW_SQL = text("""
    SELECT
      (SELECT COALESCE(SUM(platform_fee), 0) FROM orders
        WHERE grabber_id IS NOT NULL AND status <> 'CANCELLED') AS platform_revenue,
      (SELECT COALESCE(SUM(publish_price), 0) FROM orders
        WHERE status IN ('COMPLETED', 'MEDIATING')) AS pending_settlement,
      (SELECT COALESCE(SUM(available_balance + frozen_balance), 0) FROM accounts) AS total_pool,
      (SELECT COALESCE(SUM(amount), 0) FROM withdrawal_requests
        WHERE status = 'PENDING') AS pending_withdrawals
""")


def _row_to_request(kind: FundingKind, row: Any) -> FundingRequest:
    return FundingRequest(
        id=row.id,
        kind=kind.value,
        account_id=row.account_id,
        amount=row.amount,
        status=row.status,
        proof_url=row.proof_url,
        remark=row.remark,
        reject_reason=row.reject_reason,
        audit_user=row.audit_user,
        audit_time=as_utc(row.audit_time) if row.audit_time else None,
        created_at=as_utc(row.created_at) if row.created_at else None,
    )


class FundingRepository:
    async def insert_request(self, db: AsyncSession, request: FundingRequest) -> None:
        table = _TABLES[FundingKind(request.kind)]
        await db.execute(
            insert(table).values(
                id=request.id,
                account_id=request.account_id,
                amount=request.amount,
                status=request.status,
                proof_url=request.proof_url,
                remark=request.remark,
                reject_reason=request.reject_reason,
                audit_user=request.audit_user,
                audit_time=request.audit_time,
                created_at=request.created_at or utc_now(),
            )
        )

    async def get_request(
        self, db: AsyncSession, kind: FundingKind, request_id: str
    ) -> FundingRequest | None:
        table = _TABLES[kind]
        row = (await db.execute(select(table).where(table.id == request_id))).scalar_one_or_none()
        return _row_to_request(kind, row) if row else None

    async def review_request(
        self,
        db: AsyncSession,
        kind: FundingKind,
        request_id: str,
        new_status: str,
        audit_user: str,
        audit_time: datetime,
        proof_url: str | None,
        reject_reason: str | None,
    ) -> FundingRequest | None:
        table = _TABLES[kind]
        values: dict[str, Any] = {
            "status": new_status,
            "audit_user": audit_user,
            "audit_time": audit_time,
            "reject_reason": reject_reason,
        }
        if proof_url is not None:
            values["proof_url"] = proof_url
        stmt = (
            update(table)
            .where(table.id == request_id, table.status == FundingStatus.PENDING.value)
            .values(**values)
            .returning(*table.__table__.c)
        )
        row = (await db.execute(stmt)).fetchone()
        return _row_to_request(kind, row) if row else None

    async def list_requests(
        self,
        db: AsyncSession,
        kind: FundingKind,
        account_id: str | None,
        status: str | None,
        limit: int,
    ) -> list[FundingRequest]:
        table = _TABLES[kind]
        stmt = select(table)
        if account_id is not None:
            stmt = stmt.where(table.account_id == account_id)
        if status is not None:
            stmt = stmt.where(table.status == status)
        stmt = stmt.order_by(table.id.desc()).limit(limit)
        return [_row_to_request(kind, row) for row in (await db.execute(stmt)).scalars()]

    async def finance_overview(self, db: AsyncSession) -> FinanceOverview:
        row = (await db.execute(_OVERVIEW_SQL)).one()
        return FinanceOverview(
            platform_revenue=int(row.platform_revenue),
            pending_settlement=int(row.pending_settlement),
            total_pool=int(row.total_pool),
            pending_withdrawals=int(row.pending_withdrawals),
        )
