"""pe_notify REST API: notification inbox and system log."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request

from src.pe_common.dependencies import get_engine
from src.pe_common.errors import NotificationNotFoundError
from src.pe_common.response import ApiResponse, success_response

router = APIRouter(tags=["notifications"])

EngineDep = Annotated[Any, Depends(get_engine)]


def _stamp(resp: ApiResponse, request: Request) -> ApiResponse:
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/notifications")
async def list_notifications(
    engine: EngineDep,
    request: Request,
    account_id: str = Query(..., description="Inbox owner"),
    roles: list[str] = Query([], description="Roles whose broadcasts apply"),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    items = await engine.sink.list_notifications(account_id, roles, limit)
    data = [
        {
            "id": n.id,
            "target": n.target,
            "title": n.title,
            "content": n.content,
            "category": n.category,
            "is_read": n.is_read,
            "created_at": n.created_at.isoformat() if n.created_at else None,
        }
        for n in items
    ]
    return _stamp(success_response(data), request)


@router.post("/notifications/{notification_id}/read")
async def mark_read(notification_id: int, engine: EngineDep, request: Request) -> ApiResponse:
    if not await engine.sink.mark_read(notification_id):
        raise NotificationNotFoundError(notification_id)
    return _stamp(success_response({"id": notification_id, "is_read": True}), request)


@router.get("/system-logs")
async def list_audit_entries(
    engine: EngineDep,
    request: Request,
    module: str | None = Query(None, description="ORDER / LEDGER / FUNDING"),
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse:
    entries = await engine.sink.list_audit_entries(module, limit)
    data = [
        {
            "id": e.id,
            "operator_id": e.operator_id,
            "operator_name": e.operator_name,
            "module": e.module,
            "action": e.action,
            "details": e.details,
            "created_at": e.created_at.isoformat() if e.created_at else None,
        }
        for e in entries
    ]
    return _stamp(success_response(data), request)
