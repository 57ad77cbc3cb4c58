"""Unified API response wrapper.

All API endpoints return this format:
{
    "code": 0,           // 0=success, non-0=error code
    "message": "success",
    "data": { ... },     // null on error
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.pe_common.errors import AppError
from src.pe_common.result import Result


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None) -> ApiResponse:
    return ApiResponse(code=0, message="success", data=data)


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message, data=None)


def error_json(err: AppError, request_id: str | None = None) -> JSONResponse:
    resp = error_response(err.code, err.message)
    if request_id:
        resp.request_id = request_id
    return JSONResponse(status_code=err.http_status, content=resp.model_dump())


def result_response(
    result: Result[Any],
    request: Request,
    mapper: Callable[[Any], Any] | None = None,
) -> ApiResponse:
    """Map an engine Result onto the envelope.

    A failed Result re-raises its AppError so the app-level handler renders
    it with the error's HTTP status.
    """
    request_id = getattr(request.state, "request_id", None)
    if result.error is not None:
        raise result.error
    value = mapper(result.value) if mapper is not None else result.value
    data = value.model_dump(mode="json") if isinstance(value, BaseModel) else value
    resp = success_response(data)
    if request_id:
        resp.request_id = request_id
    return resp
