"""Unit tests for commission rule resolution and fee quoting."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pe_commission.domain.matcher import (
    CommissionRuleMatcher,
    compute_fee,
    default_rule,
    quote_fee,
    resolve,
)
from src.pe_commission.domain.models import CommissionRule
from src.pe_common.errors import InvalidCommissionRuleError


def _rule(rule_id: int, **kwargs: Any) -> CommissionRule:
    defaults: dict[str, Any] = {
        "id": rule_id,
        "city_code": "ALL",
        "order_type": "ALL",
        "category": "ALL",
        "rule_type": "PERCENTAGE",
        "rule_value": 1000,
    }
    defaults.update(kwargs)
    return CommissionRule(**defaults)


SEEDED = [
    _rule(1),
    _rule(2, city_code="SH", order_type="上门服务", rule_type="FIXED", rule_value=20_000),
]


class TestResolve:
    def test_scoped_rule_wins(self) -> None:
        # 8000.00 on-site order in Shanghai: FIXED 200.00
        rule = resolve(SEEDED, "SH", "上门服务")
        assert rule.id == 2

    def test_falls_back_to_global(self) -> None:
        assert resolve(SEEDED, "BJ", "上门服务").id == 1

    def test_city_outranks_type_and_category(self) -> None:
        rules = [
            _rule(1, order_type="客咨", category="家电清洗"),
            _rule(2, city_code="SH"),
        ]
        assert resolve(rules, "SH", "客咨", "家电清洗").id == 2

    def test_type_outranks_category(self) -> None:
        rules = [_rule(1, category="家电清洗"), _rule(2, order_type="客咨")]
        assert resolve(rules, "SH", "客咨", "家电清洗").id == 2

    def test_tie_goes_to_lowest_id(self) -> None:
        rules = [_rule(7, city_code="SH"), _rule(3, city_code="SH")]
        assert resolve(rules, "SH", "客咨").id == 3

    def test_inactive_rules_ignored(self) -> None:
        rules = [_rule(1), _rule(2, city_code="SH", is_active=False)]
        assert resolve(rules, "SH", "客咨").id == 1

    def test_category_rule_needs_category(self) -> None:
        rules = [_rule(1, category="家电清洗")]
        assert resolve(rules, "SH", "客咨", None).is_default

    def test_default_when_nothing_matches(self) -> None:
        rule = resolve([], "SH", "客咨", default_rate_bps=500)
        assert rule.is_default
        assert rule.rule_value == 500

    def test_idempotent(self) -> None:
        first = resolve(SEEDED, "SH", "上门服务", "家电清洗")
        second = resolve(SEEDED, "SH", "上门服务", "家电清洗")
        assert first == second


class TestQuote:
    def test_fixed_fee(self) -> None:
        quote = quote_fee(800_000, SEEDED[1])
        assert quote.platform_fee == 20_000
        assert quote.grab_price == 820_000
        assert quote.rule_id == 2

    def test_percentage_fee(self) -> None:
        quote = quote_fee(800_000, default_rule(1000))
        assert quote.platform_fee == 80_000
        assert quote.grab_price == 880_000
        assert quote.rule_id is None

    def test_zero_price_rejected(self) -> None:
        with pytest.raises(ValueError):
            quote_fee(0, SEEDED[0])

    def test_negative_rule_value_rejected(self) -> None:
        with pytest.raises(InvalidCommissionRuleError):
            quote_fee(1000, _rule(9, rule_value=-1))

    def test_unknown_rule_type(self) -> None:
        with pytest.raises(InvalidCommissionRuleError):
            compute_fee(1000, _rule(9, rule_type="TIERED"))

    def test_describe(self) -> None:
        assert SEEDED[0].describe() == "10%"
        assert SEEDED[1].describe() == "fixed 20000 cents"


class TestCommissionRuleMatcher:
    async def test_quote_reads_active_rules(self) -> None:
        repo = AsyncMock()
        repo.list_active_rules.return_value = SEEDED
        matcher = CommissionRuleMatcher(repo, default_rate_bps=1000)
        db = MagicMock()

        quote = await matcher.quote(db, 800_000, "SH", "上门服务", "家电清洗")

        repo.list_active_rules.assert_awaited_once_with(db)
        assert quote.grab_price == 820_000

    async def test_default_rate_from_config(self) -> None:
        repo = AsyncMock()
        repo.list_active_rules.return_value = []
        matcher = CommissionRuleMatcher(repo, default_rate_bps=250)

        rule = await matcher.resolve(MagicMock(), "SH", "客咨")

        assert rule.is_default
        assert rule.rule_value == 250
