"""Explicit success/failure result returned by engine operations.

Business and validation failures travel back to the caller as data, not as
exceptions. Only FatalError escapes an engine boundary.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from src.pe_common.errors import AppError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: AppError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AppError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or re-raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
