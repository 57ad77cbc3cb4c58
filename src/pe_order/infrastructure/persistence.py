# src/pe_order/infrastructure/persistence.py
"""OrderRepository: Core statements over the pe_order ORM tables.

Status changes are a single compare-and-set UPDATE ... RETURNING guarded by
the expected status; a None result means another transition won the race or
the caller's snapshot was stale.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.pe_common.datetime_utils import as_utc, utc_now
from src.pe_common.enums import OrderStatus
from src.pe_order.domain.models import Order, OrderTransition
from src.pe_order.infrastructure.db_models import OrderORM, OrderTransitionORM

_ORDER_COLUMNS = tuple(OrderORM.__table__.c)

_DATETIME_FIELDS = (
    "exception_time",
    "appeal_time",
    "grab_time",
    "finish_time",
    "settled_at",
    "cancelled_at",
    "created_at",
    "updated_at",
)


def _opt_utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


def _row_to_order(row: Any) -> Order:
    data = dict(row._mapping)
    for name in _DATETIME_FIELDS:
        data[name] = _opt_utc(data[name])
    data["chat_attachments"] = list(data["chat_attachments"] or [])
    data["exception_proofs"] = list(data["exception_proofs"] or [])
    return Order(**data)


def _row_to_transition(row: Any) -> OrderTransition:
    return OrderTransition(
        id=row.id,
        order_id=row.order_id,
        from_status=row.from_status,
        to_status=row.to_status,
        event=row.event,
        actor_id=row.actor_id,
        detail=row.detail,
        created_at=_opt_utc(row.created_at),
    )


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol."""

    async def insert_order(self, db: AsyncSession, order: Order) -> None:
        now = utc_now()
        await db.execute(
            insert(OrderORM).values(
                id=order.id,
                order_no=order.order_no,
                city_code=order.city_code,
                order_type=order.order_type,
                title=order.title,
                customer_name=order.customer_name,
                customer_phone=order.customer_phone,
                customer_address=order.customer_address,
                customer_source=order.customer_source,
                description=order.description,
                chat_attachments=list(order.chat_attachments),
                publish_price=order.publish_price,
                platform_fee=order.platform_fee,
                grab_price=order.grab_price,
                commission_rule_id=order.commission_rule_id,
                publisher_id=order.publisher_id,
                grabber_id=None,
                status=order.status,
                exception_proofs=[],
                version=0,
                created_at=order.created_at or now,
                updated_at=now,
            )
        )

    async def get_order(self, db: AsyncSession, order_id: str) -> Order | None:
        result = await db.execute(select(*_ORDER_COLUMNS).where(OrderORM.id == order_id))
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def transition(
        self,
        db: AsyncSession,
        order_id: str,
        expected_status: str,
        new_status: str,
        changes: dict[str, Any],
    ) -> Order | None:
        stmt = (
            update(OrderORM)
            .where(OrderORM.id == order_id, OrderORM.status == expected_status)
            .values(
                status=new_status,
                version=OrderORM.version + 1,
                updated_at=utc_now(),
                **changes,
            )
            .returning(*_ORDER_COLUMNS)
        )
        row = (await db.execute(stmt)).fetchone()
        return _row_to_order(row) if row else None

    async def insert_transition(self, db: AsyncSession, transition: OrderTransition) -> None:
        await db.execute(
            insert(OrderTransitionORM).values(
                order_id=transition.order_id,
                from_status=transition.from_status,
                to_status=transition.to_status,
                event=transition.event,
                actor_id=transition.actor_id,
                detail=transition.detail,
                created_at=transition.created_at or utc_now(),
            )
        )

    async def list_transitions(self, db: AsyncSession, order_id: str) -> list[OrderTransition]:
        result = await db.execute(
            select(OrderTransitionORM)
            .where(OrderTransitionORM.order_id == order_id)
            .order_by(OrderTransitionORM.id)
        )
        return [_row_to_transition(row) for row in result.scalars()]

    async def find_active_by_phone(self, db: AsyncSession, customer_phone: str) -> Order | None:
        result = await db.execute(
            select(*_ORDER_COLUMNS)
            .where(
                OrderORM.customer_phone == customer_phone,
                OrderORM.status != OrderStatus.CANCELLED.value,
            )
            .limit(1)
        )
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def list_orders(
        self,
        db: AsyncSession,
        publisher_id: str | None,
        grabber_id: str | None,
        status: str | None,
        city_code: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Order]:
        stmt = select(*_ORDER_COLUMNS)
        if publisher_id is not None:
            stmt = stmt.where(OrderORM.publisher_id == publisher_id)
        if grabber_id is not None:
            stmt = stmt.where(OrderORM.grabber_id == grabber_id)
        if status is not None:
            stmt = stmt.where(OrderORM.status == status)
        if city_code is not None:
            stmt = stmt.where(OrderORM.city_code == city_code)
        if cursor_id is not None:
            stmt = stmt.where(OrderORM.id < cursor_id)
        stmt = stmt.order_by(OrderORM.id.desc()).limit(limit)
        rows = (await db.execute(stmt)).fetchall()
        return [_row_to_order(row) for row in rows]

    async def list_due_for_settlement(self, db: AsyncSession, cutoff: datetime) -> list[str]:
        result = await db.execute(
            select(OrderORM.id)
            .where(
                OrderORM.status == OrderStatus.COMPLETED.value,
                OrderORM.finish_time.is_not(None),
                OrderORM.finish_time <= cutoff,
            )
            .order_by(OrderORM.id)
        )
        return list(result.scalars())
