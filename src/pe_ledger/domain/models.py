"""Domain models for pe_ledger: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Account:
    account_id: str
    available_balance: int   # cents
    frozen_balance: int      # cents
    status: str              # AccountStatus value
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_balance(self) -> int:
        return self.available_balance + self.frozen_balance

    @property
    def is_halted(self) -> bool:
        return self.status == "HALTED"


@dataclass(frozen=True)
class FlowRecord:
    id: str
    account_id: str
    amount: int                      # cents, positive=income negative=expense
    direction: str                   # FlowDirection value
    category: str                    # FlowCategory value
    balance_after: int               # cents, available_balance snapshot after op
    description: str
    order_id: str | None = None
    order_no: str | None = None
    proof_url: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class OrderRef:
    """What the ledger is told about an order, never the order itself."""

    order_id: str
    order_no: str

    def describe(self, prefix: str) -> str:
        return f"{prefix}: {self.order_no}"


@dataclass
class LedgerMutation:
    """Accounts touched by one ledger operation plus the flows it appended."""

    accounts: dict[str, Account]
    flows: list[FlowRecord]

    def account(self, account_id: str) -> Account:
        return self.accounts[account_id]
