"""CommissionRuleRepository: reads active rules from commission_rules."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.pe_commission.domain.models import CommissionRule
from src.pe_commission.infrastructure.db_models import CommissionRuleORM


class CommissionRuleRepository:
    async def list_active_rules(self, db: AsyncSession) -> list[CommissionRule]:
        result = await db.execute(
            select(CommissionRuleORM)
            .where(CommissionRuleORM.is_active.is_(True))
            .order_by(CommissionRuleORM.id)
        )
        return [
            CommissionRule(
                id=row.id,
                city_code=row.city_code,
                order_type=row.order_type,
                category=row.category,
                rule_type=row.rule_type,
                rule_value=row.rule_value,
                is_active=row.is_active,
            )
            for row in result.scalars()
        ]

    async def add_rule(self, db: AsyncSession, rule: CommissionRule) -> CommissionRule:
        """Seed helper for migrations and tests; the engine never writes rules."""
        orm = CommissionRuleORM(
            city_code=rule.city_code,
            order_type=rule.order_type,
            category=rule.category,
            rule_type=rule.rule_type,
            rule_value=rule.rule_value,
            is_active=rule.is_active,
        )
        db.add(orm)
        await db.flush()
        return CommissionRule(
            id=orm.id,
            city_code=orm.city_code,
            order_type=orm.order_type,
            category=orm.category,
            rule_type=orm.rule_type,
            rule_value=orm.rule_value,
            is_active=orm.is_active,
        )
