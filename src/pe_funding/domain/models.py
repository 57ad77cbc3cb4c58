"""Domain models for pe_funding: pure dataclasses."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class FundingKind(str, Enum):
    TOPUP = "TOPUP"
    WITHDRAWAL = "WITHDRAWAL"


@dataclass
class FundingRequest:
    """A top-up or withdrawal awaiting (or past) finance review."""

    id: str
    kind: str                     # FundingKind value
    account_id: str
    amount: int                   # cents
    status: str                   # FundingStatus value
    proof_url: str | None = None
    remark: str | None = None
    reject_reason: str | None = None
    audit_user: str | None = None
    audit_time: datetime | None = None
    created_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == "PENDING"


@dataclass(frozen=True)
class FinanceOverview:
    platform_revenue: int         # fees of grabbed, non-cancelled orders
    pending_settlement: int       # publish prices of COMPLETED / MEDIATING orders
    total_pool: int               # sum of every account's available + frozen
    pending_withdrawals: int
