"""Pydantic schemas for pe_funding API."""

from datetime import datetime

from pydantic import BaseModel

from src.pe_common.cents import cents_to_display
from src.pe_funding.domain.models import FinanceOverview, FundingRequest


class TopUpCreateRequest(BaseModel):
    account_id: str
    amount_cents: int
    proof_url: str | None = None


class ManualTopUpRequest(BaseModel):
    account_id: str
    amount_cents: int
    operator_id: str
    remark: str | None = None
    proof_url: str | None = None


class WithdrawalCreateRequest(BaseModel):
    account_id: str
    amount_cents: int


class ReviewRequest(BaseModel):
    operator_id: str
    approved: bool
    proof_url: str | None = None
    reject_reason: str | None = None


class FundingRequestResponse(BaseModel):
    id: str
    kind: str
    account_id: str
    amount_cents: int
    amount_display: str
    status: str
    proof_url: str | None
    remark: str | None
    reject_reason: str | None
    audit_user: str | None
    audit_time: datetime | None
    created_at: datetime | None

    @classmethod
    def from_request(cls, req: FundingRequest) -> "FundingRequestResponse":
        return cls(
            id=req.id,
            kind=req.kind,
            account_id=req.account_id,
            amount_cents=req.amount,
            amount_display=cents_to_display(req.amount),
            status=req.status,
            proof_url=req.proof_url,
            remark=req.remark,
            reject_reason=req.reject_reason,
            audit_user=req.audit_user,
            audit_time=req.audit_time,
            created_at=req.created_at,
        )


class FinanceOverviewResponse(BaseModel):
    platform_revenue_cents: int
    platform_revenue_display: str
    pending_settlement_cents: int
    pending_settlement_display: str
    total_pool_cents: int
    total_pool_display: str
    pending_withdrawals_cents: int

    @classmethod
    def from_overview(cls, o: FinanceOverview) -> "FinanceOverviewResponse":
        return cls(
            platform_revenue_cents=o.platform_revenue,
            platform_revenue_display=cents_to_display(o.platform_revenue),
            pending_settlement_cents=o.pending_settlement,
            pending_settlement_display=cents_to_display(o.pending_settlement),
            total_pool_cents=o.total_pool,
            total_pool_display=cents_to_display(o.total_pool),
            pending_withdrawals_cents=o.pending_withdrawals,
        )
