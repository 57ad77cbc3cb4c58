"""Pydantic schemas and cursor utilities for pe_ledger API."""

import base64
import json

from pydantic import BaseModel

from src.pe_common.cents import cents_to_display
from src.pe_ledger.domain.models import Account, FlowRecord

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: str) -> str:
    """Encode the last seen id into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> str | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return str(payload["id"])
    except Exception:
        return None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    account_id: str
    status: str
    available_balance_cents: int
    available_balance_display: str
    frozen_balance_cents: int
    frozen_balance_display: str
    total_balance_cents: int
    total_balance_display: str

    @classmethod
    def from_account(cls, account: Account) -> "BalanceResponse":
        return cls(
            account_id=account.account_id,
            status=account.status,
            available_balance_cents=account.available_balance,
            available_balance_display=cents_to_display(account.available_balance),
            frozen_balance_cents=account.frozen_balance,
            frozen_balance_display=cents_to_display(account.frozen_balance),
            total_balance_cents=account.total_balance,
            total_balance_display=cents_to_display(account.total_balance),
        )


class FlowItem(BaseModel):
    id: str
    direction: str
    category: str
    amount_cents: int
    amount_display: str
    balance_after_cents: int
    balance_after_display: str
    description: str
    order_id: str | None
    order_no: str | None
    proof_url: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_flow(cls, flow: FlowRecord) -> "FlowItem":
        return cls(
            id=flow.id,
            direction=flow.direction,
            category=flow.category,
            amount_cents=flow.amount,
            amount_display=cents_to_display(flow.amount),
            balance_after_cents=flow.balance_after,
            balance_after_display=cents_to_display(flow.balance_after),
            description=flow.description,
            order_id=flow.order_id,
            order_no=flow.order_no,
            proof_url=flow.proof_url,
            created_at=flow.created_at.isoformat() if flow.created_at else "",
        )


class FlowPage(BaseModel):
    items: list[FlowItem]
    next_cursor: str | None
    has_more: bool


class ReconciliationResponse(BaseModel):
    account_id: str
    violations: list[str]

    @property
    def ok(self) -> bool:
        return not self.violations
