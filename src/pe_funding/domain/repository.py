"""Repository Protocol for funding requests.

Reviews are compare-and-set on status PENDING; a None return means the
request was already processed.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pe_funding.domain.models import FinanceOverview, FundingKind, FundingRequest


class FundingRepositoryProtocol(Protocol):
    async def insert_request(self, db: AsyncSession, request: FundingRequest) -> None: ...

    async def get_request(
        self, db: AsyncSession, kind: FundingKind, request_id: str
    ) -> FundingRequest | None: ...

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
    ) -> FundingRequest | None: ...

    async def list_requests(
        self,
        db: AsyncSession,
        kind: FundingKind,
        account_id: str | None,
        status: str | None,
        limit: int,
    ) -> list[FundingRequest]: ...

    async def finance_overview(self, db: AsyncSession) -> FinanceOverview: ...
