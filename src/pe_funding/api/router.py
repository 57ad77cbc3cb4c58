"""pe_funding REST API: top-ups, withdrawals and the finance overview."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request

from src.pe_common.dependencies import get_engine
from src.pe_common.response import ApiResponse, result_response, success_response
from src.pe_funding.application.schemas import (
    FinanceOverviewResponse,
    FundingRequestResponse,
    ManualTopUpRequest,
    ReviewRequest,
    TopUpCreateRequest,
    WithdrawalCreateRequest,
)
from src.pe_funding.domain.models import FundingKind

router = APIRouter(prefix="/funding", tags=["funding"])

EngineDep = Annotated[Any, Depends(get_engine)]


def _stamp(resp: ApiResponse, request: Request) -> ApiResponse:
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/top-ups")
async def request_top_up(
    body: TopUpCreateRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.funding.request_top_up(
        body.account_id, body.amount_cents, body.proof_url
    )
    return result_response(result, request, FundingRequestResponse.from_request)


@router.post("/top-ups/manual")
async def manual_top_up(
    body: ManualTopUpRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.funding.manual_top_up(
        body.account_id, body.amount_cents, body.operator_id, body.remark, body.proof_url
    )
    return result_response(result, request, FundingRequestResponse.from_request)


@router.post("/top-ups/{request_id}/review")
async def review_top_up(
    request_id: str, body: ReviewRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.funding.review_top_up(
        request_id, body.approved, body.operator_id, body.reject_reason
    )
    return result_response(result, request, FundingRequestResponse.from_request)


@router.get("/top-ups")
async def list_top_ups(
    engine: EngineDep,
    request: Request,
    account_id: str | None = Query(None),
    status: str | None = Query(None, description="PENDING / APPROVED / REJECTED"),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    items = await engine.funding.list_requests(FundingKind.TOPUP, account_id, status, limit)
    data = [FundingRequestResponse.from_request(i).model_dump(mode="json") for i in items]
    return _stamp(success_response(data), request)


@router.post("/withdrawals")
async def request_withdrawal(
    body: WithdrawalCreateRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.funding.request_withdrawal(body.account_id, body.amount_cents)
    return result_response(result, request, FundingRequestResponse.from_request)


@router.post("/withdrawals/{request_id}/review")
async def review_withdrawal(
    request_id: str, body: ReviewRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.funding.review_withdrawal(
        request_id, body.approved, body.operator_id, body.proof_url, body.reject_reason
    )
    return result_response(result, request, FundingRequestResponse.from_request)


@router.get("/withdrawals")
async def list_withdrawals(
    engine: EngineDep,
    request: Request,
    account_id: str | None = Query(None),
    status: str | None = Query(None, description="PENDING / APPROVED / REJECTED"),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    items = await engine.funding.list_requests(
        FundingKind.WITHDRAWAL, account_id, status, limit
    )
    data = [FundingRequestResponse.from_request(i).model_dump(mode="json") for i in items]
    return _stamp(success_response(data), request)


@router.get("/overview")
async def finance_overview(engine: EngineDep, request: Request) -> ApiResponse:
    overview = await engine.funding.finance_overview()
    return _stamp(
        success_response(FinanceOverviewResponse.from_overview(overview).model_dump()), request
    )
