"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.pe_common.database import async_session_factory, engine
from src.pe_common.errors import AppError
from src.pe_common.middleware.request_log import RequestLogMiddleware
from src.pe_common.response import error_json
from src.pe_funding.api.router import router as funding_router
from src.pe_ledger.api.router import router as ledger_router
from src.pe_notify.api.router import router as notify_router
from src.pe_order.api.router import router as order_router
from src.pe_order.application.service import build_engine

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB connection, assemble the engine. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    app.state.engine = build_engine(async_session_factory, settings)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return error_json(exc, getattr(request.state, "request_id", None))


app.include_router(order_router, prefix="/api/v1")
app.include_router(ledger_router, prefix="/api/v1")
app.include_router(funding_router, prefix="/api/v1")
app.include_router(notify_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
