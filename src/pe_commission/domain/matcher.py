"""Commission rule resolution.

Most specific active rule wins; ties go to the lowest rule id. When no rule
matches, a PERCENTAGE default at the configured rate applies.
"""

from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from src.pe_commission.domain.models import CommissionRule, FeeQuote
from src.pe_commission.domain.repository import CommissionRuleRepositoryProtocol
from src.pe_common.cents import percentage_fee, validate_amount
from src.pe_common.enums import SCOPE_ALL, CommissionRuleType
from src.pe_common.errors import InvalidCommissionRuleError


def default_rule(rate_bps: int) -> CommissionRule:
    return CommissionRule(
        id=None,
        city_code=SCOPE_ALL,
        order_type=SCOPE_ALL,
        category=SCOPE_ALL,
        rule_type=CommissionRuleType.PERCENTAGE.value,
        rule_value=rate_bps,
    )


def resolve(
    rules: Iterable[CommissionRule],
    city_code: str,
    order_type: str,
    category: str | None = None,
    default_rate_bps: int = 1000,
) -> CommissionRule:
    candidates = [r for r in rules if r.matches(city_code, order_type, category)]
    if not candidates:
        return default_rule(default_rate_bps)
    return min(candidates, key=lambda r: (-r.specificity, r.id))


def compute_fee(publish_price: int, rule: CommissionRule) -> int:
    if rule.rule_type == CommissionRuleType.PERCENTAGE.value:
        return percentage_fee(publish_price, rule.rule_value)
    if rule.rule_type == CommissionRuleType.FIXED.value:
        return rule.rule_value
    raise InvalidCommissionRuleError(f"unknown rule type {rule.rule_type!r} on rule {rule.id}")


def quote_fee(publish_price: int, rule: CommissionRule) -> FeeQuote:
    validate_amount(publish_price)
    if rule.rule_value < 0:
        raise InvalidCommissionRuleError(f"rule {rule.id} has negative value {rule.rule_value}")
    fee = compute_fee(publish_price, rule)
    return FeeQuote(
        publish_price=publish_price,
        platform_fee=fee,
        grab_price=publish_price + fee,
        rule_id=rule.id,
    )


class CommissionRuleMatcher:
    """Reads the active rule set and resolves the policy for a new order."""

    def __init__(
        self, repo: CommissionRuleRepositoryProtocol, default_rate_bps: int
    ) -> None:
        self._repo = repo
        self._default_rate_bps = default_rate_bps

    async def resolve(
        self,
        db: AsyncSession,
        city_code: str,
        order_type: str,
        category: str | None = None,
    ) -> CommissionRule:
        rules = await self._repo.list_active_rules(db)
        return resolve(rules, city_code, order_type, category, self._default_rate_bps)

    async def quote(
        self,
        db: AsyncSession,
        publish_price: int,
        city_code: str,
        order_type: str,
        category: str | None = None,
    ) -> FeeQuote:
        rule = await self.resolve(db, city_code, order_type, category)
        return quote_fee(publish_price, rule)
