"""Repository Protocol for orders and their transition history.

Status changes are compare-and-set: `transition` only writes when the row is
still in `expected_status`, and returns None otherwise.
"""

from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pe_order.domain.models import Order, OrderTransition


class OrderRepositoryProtocol(Protocol):
    async def insert_order(self, db: AsyncSession, order: Order) -> None: ...

    async def get_order(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def transition(
        self,
        db: AsyncSession,
        order_id: str,
        expected_status: str,
        new_status: str,
        changes: dict[str, Any],
    ) -> Order | None: ...

    async def insert_transition(self, db: AsyncSession, transition: OrderTransition) -> None: ...

    async def list_transitions(self, db: AsyncSession, order_id: str) -> list[OrderTransition]: ...

    async def find_active_by_phone(self, db: AsyncSession, customer_phone: str) -> Order | None: ...

    async def list_orders(
        self,
        db: AsyncSession,
        publisher_id: str | None,
        grabber_id: str | None,
        status: str | None,
        city_code: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Order]: ...

    async def list_due_for_settlement(self, db: AsyncSession, cutoff: datetime) -> list[str]: ...
