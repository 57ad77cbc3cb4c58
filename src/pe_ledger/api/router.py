"""pe_ledger REST API: balances, flow history and reconciliation."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request

from src.pe_common.dependencies import get_engine
from src.pe_common.response import ApiResponse, success_response
from src.pe_ledger.application.schemas import BalanceResponse
from src.pe_ledger.domain.invariants import verify_global_conservation

router = APIRouter(prefix="/accounts", tags=["ledger"])


def _stamp(resp: ApiResponse, request: Request) -> ApiResponse:
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{account_id}/balance")
async def get_balance(
    account_id: str,
    engine: Annotated[Any, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    account = await engine.ledger.get_balance(account_id)
    return _stamp(success_response(BalanceResponse.from_account(account).model_dump()), request)


@router.get("/{account_id}/flows")
async def list_flows(
    account_id: str,
    engine: Annotated[Any, Depends(get_engine)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    category: str | None = Query(None, description="Filter by FlowCategory"),
) -> ApiResponse:
    page = await engine.ledger.list_flows(account_id, cursor, limit, category)
    return _stamp(success_response(page.model_dump()), request)


@router.get("/{account_id}/reconcile")
async def reconcile(
    account_id: str,
    engine: Annotated[Any, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    report = await engine.ledger.reconcile(account_id)
    return _stamp(success_response(report.model_dump()), request)


@router.get("/conservation")
async def conservation(
    engine: Annotated[Any, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    async with engine.session_factory() as db:
        violations = await verify_global_conservation(db)
    return _stamp(success_response({"violations": violations}), request)
