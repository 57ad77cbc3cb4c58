"""pe_order REST API: order lifecycle transitions and queries.

Caller identity travels in the request body; authorization is the host's
concern. Failed Results keep their error's HTTP status.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request

from src.pe_common.dependencies import get_engine
from src.pe_common.response import ApiResponse, result_response, success_response
from src.pe_order.application.schemas import (
    ActorRequest,
    AppealRequest,
    CreateOrderRequest,
    DisputeViewResponse,
    GrabRequest,
    MediationRequest,
    OrderResponse,
    ReportExceptionRequest,
    SettleDueRequest,
    SettlementOutcome,
    SettlementRunResponse,
    TransitionItem,
)

router = APIRouter(prefix="/orders", tags=["orders"])

EngineDep = Annotated[Any, Depends(get_engine)]


def _stamp(resp: ApiResponse, request: Request) -> ApiResponse:
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("")
async def create_order(
    body: CreateOrderRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.orders.create_order(body)
    return result_response(result, request, OrderResponse.from_order)


@router.get("")
async def list_orders(
    engine: EngineDep,
    request: Request,
    publisher_id: str | None = Query(None),
    grabber_id: str | None = Query(None),
    status: str | None = Query(None, description="Filter by OrderStatus"),
    city_code: str | None = Query(None),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    page = await engine.orders.list_orders(
        publisher_id=publisher_id,
        grabber_id=grabber_id,
        status=status,
        city_code=city_code,
        cursor=cursor,
        limit=limit,
    )
    return _stamp(success_response(page.model_dump(mode="json")), request)


@router.post("/settlement-run")
async def settle_due_orders(
    body: SettleDueRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    results = await engine.orders.settle_due_orders(body.now)
    outcomes = [
        SettlementOutcome(
            order_id=order_id,
            settled=r.ok,
            error_code=r.error.code if r.error else None,
            error_message=r.error.message if r.error else None,
        )
        for order_id, r in results.items()
    ]
    settled = sum(1 for o in outcomes if o.settled)
    data = SettlementRunResponse(
        settled=settled, failed=len(outcomes) - settled, outcomes=outcomes
    )
    return _stamp(success_response(data.model_dump()), request)


@router.get("/{order_id}")
async def get_order(
    order_id: str, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.orders.get_order(order_id)
    return result_response(result, request, OrderResponse.from_order)


@router.get("/{order_id}/transitions")
async def list_transitions(order_id: str, engine: EngineDep, request: Request) -> ApiResponse:
    history = await engine.orders.list_transitions(order_id)
    items = [TransitionItem.from_transition(t).model_dump(mode="json") for t in history]
    return _stamp(success_response(items), request)


@router.get("/{order_id}/dispute")
async def dispute_view(
    order_id: str, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.orders.dispute_view(order_id)
    return result_response(result, request, DisputeViewResponse.from_view)


@router.post("/{order_id}/grab")
async def grab_order(
    order_id: str, body: GrabRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.orders.grab_order(order_id, body.grabber_id)
    return result_response(result, request, OrderResponse.from_order)


@router.post("/{order_id}/complete")
async def complete_order(
    order_id: str, body: ActorRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.orders.complete_order(order_id, body.actor_id)
    return result_response(result, request, OrderResponse.from_order)


@router.post("/{order_id}/exception")
async def report_exception(
    order_id: str, body: ReportExceptionRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.orders.report_exception(
        order_id, body.grabber_id, body.reason, body.proofs
    )
    return result_response(result, request, OrderResponse.from_order)


@router.post("/{order_id}/exception/confirm")
async def confirm_exception(
    order_id: str, body: ActorRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.orders.confirm_exception(order_id, body.actor_id)
    return result_response(result, request, OrderResponse.from_order)


@router.post("/{order_id}/exception/appeal")
async def appeal_exception(
    order_id: str, body: AppealRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.orders.appeal_exception(order_id, body.publisher_id, body.reason)
    return result_response(result, request, OrderResponse.from_order)


@router.post("/{order_id}/mediation")
async def resolve_mediation(
    order_id: str, body: MediationRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.orders.resolve_mediation(order_id, body.ruling, body.arbiter_id)
    return result_response(result, request, OrderResponse.from_order)


@router.post("/{order_id}/settle")
async def settle_order(
    order_id: str, body: ActorRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.orders.settle_order(order_id, body.actor_id)
    return result_response(result, request, OrderResponse.from_order)


@router.post("/{order_id}/force-cancel")
async def force_cancel(
    order_id: str, body: ActorRequest, engine: EngineDep, request: Request
) -> ApiResponse:
    result = await engine.orders.force_cancel(order_id, body.actor_id)
    return result_response(result, request, OrderResponse.from_order)
