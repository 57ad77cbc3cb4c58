"""Domain models for pe_commission: pure dataclasses."""

from dataclasses import dataclass

from src.pe_common.enums import SCOPE_ALL, CommissionRuleType


@dataclass(frozen=True)
class CommissionRule:
    id: int | None              # None for the built-in default
    city_code: str              # exact city or ALL
    order_type: str             # exact order type or ALL
    category: str               # exact skill category or ALL
    rule_type: str              # CommissionRuleType value
    rule_value: int             # PERCENTAGE: basis points, FIXED: cents
    is_active: bool = True

    @property
    def is_default(self) -> bool:
        return self.id is None

    def matches(self, city_code: str, order_type: str, category: str | None) -> bool:
        if not self.is_active:
            return False
        if self.city_code not in (SCOPE_ALL, city_code):
            return False
        if self.order_type not in (SCOPE_ALL, order_type):
            return False
        # A rule scoped to a category never matches an order without one
        return self.category == SCOPE_ALL or self.category == category

    @property
    def specificity(self) -> int:
        """City outranks type, type outranks category."""
        return (
            (4 if self.city_code != SCOPE_ALL else 0)
            + (2 if self.order_type != SCOPE_ALL else 0)
            + (1 if self.category != SCOPE_ALL else 0)
        )

    def describe(self) -> str:
        if self.rule_type == CommissionRuleType.PERCENTAGE.value:
            return f"{self.rule_value / 100:g}%"
        return f"fixed {self.rule_value} cents"


@dataclass(frozen=True)
class FeeQuote:
    """Money fixed on an order at creation."""

    publish_price: int
    platform_fee: int
    grab_price: int
    rule_id: int | None
