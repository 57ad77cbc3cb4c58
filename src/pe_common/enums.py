"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class OrderStatus(str, Enum):
    PUBLISHED = "PUBLISHED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    EXCEPTION = "EXCEPTION"
    MEDIATING = "MEDIATING"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"


class OrderEvent(str, Enum):
    """Triggers accepted by the order state machine."""
    GRAB = "GRAB"
    COMPLETE = "COMPLETE"
    REPORT_EXCEPTION = "REPORT_EXCEPTION"
    CONFIRM_EXCEPTION = "CONFIRM_EXCEPTION"
    APPEAL = "APPEAL"
    RULE_FOR_PUBLISHER = "RULE_FOR_PUBLISHER"
    RULE_FOR_GRABBER = "RULE_FOR_GRABBER"
    SETTLE = "SETTLE"
    FORCE_CANCEL = "FORCE_CANCEL"


class MediationRuling(str, Enum):
    FOR_PUBLISHER = "FOR_PUBLISHER"
    FOR_GRABBER = "FOR_GRABBER"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    HALTED = "HALTED"


class FlowDirection(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class FlowCategory(str, Enum):
    GRAB = "GRAB"
    SETTLEMENT = "SETTLEMENT"
    WITHDRAWAL = "WITHDRAWAL"
    TOPUP = "TOPUP"
    REFUND = "REFUND"


class CommissionRuleType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class FundingStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class NotificationCategory(str, Enum):
    ORDER = "ORDER"
    SYSTEM = "SYSTEM"
    FINANCE = "FINANCE"


# Wildcard scope value for commission rules
SCOPE_ALL = "ALL"
