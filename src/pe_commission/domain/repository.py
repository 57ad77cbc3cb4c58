"""Repository Protocol for the read-only rule configuration store."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pe_commission.domain.models import CommissionRule


class CommissionRuleRepositoryProtocol(Protocol):
    async def list_active_rules(self, db: AsyncSession) -> list[CommissionRule]: ...
