"""FastAPI dependencies shared by every router."""

from typing import Any

from fastapi import Request


def get_engine(request: Request) -> Any:
    """The engine assembled in the app lifespan (see src.main)."""
    return request.app.state.engine
