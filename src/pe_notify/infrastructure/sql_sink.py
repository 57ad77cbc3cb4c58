"""SqlNotificationSink: persists audit lines and notifications.

Each call runs in its own short transaction, separate from the business
transaction that triggered it (the engine calls the sink after commit).
"""

from collections.abc import Iterable
from typing import Any

from sqlalchemy import insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.pe_common.datetime_utils import utc_now
from src.pe_notify.domain.models import (
    BROADCAST_ALL,
    AuditEntry,
    Notification,
    role_target,
)
from src.pe_notify.infrastructure.db_models import NotificationORM, SystemLogORM


def _row_to_notification(row: Any) -> Notification:
    return Notification(
        id=row.id,
        target=row.target,
        title=row.title,
        content=row.content,
        category=row.category,
        is_read=bool(row.is_read),
        created_at=row.created_at,
    )


def _row_to_audit(row: Any) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        operator_id=row.operator_id,
        operator_name=row.operator_name,
        module=row.module,
        action=row.action,
        details=row.details,
        created_at=row.created_at,
    )


class SqlNotificationSink:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # -- push side (NotificationSinkProtocol) --

    async def record(self, entry: AuditEntry) -> None:
        async with self._session_factory() as db, db.begin():
            await db.execute(
                insert(SystemLogORM).values(
                    operator_id=entry.operator_id,
                    operator_name=entry.operator_name,
                    module=entry.module,
                    action=entry.action,
                    details=entry.details,
                    created_at=entry.created_at or utc_now(),
                )
            )

    async def notify(self, account_id: str, title: str, body: str, category: str) -> None:
        await self._insert_notifications([account_id], title, body, category)

    async def broadcast(
        self, roles: Iterable[str], title: str, body: str, category: str
    ) -> None:
        await self._insert_notifications(
            [role_target(r) for r in roles], title, body, category
        )

    async def _insert_notifications(
        self, targets: list[str], title: str, body: str, category: str
    ) -> None:
        if not targets:
            return
        now = utc_now()
        async with self._session_factory() as db, db.begin():
            await db.execute(
                insert(NotificationORM),
                [
                    {
                        "target": t,
                        "title": title,
                        "content": body,
                        "category": category,
                        "is_read": False,
                        "created_at": now,
                    }
                    for t in targets
                ],
            )

    # -- read side --

    async def list_notifications(
        self, account_id: str, roles: Iterable[str] = (), limit: int = 50
    ) -> list[Notification]:
        """Direct notifications plus role broadcasts and ALL, newest first."""
        targets = [account_id, BROADCAST_ALL, *(role_target(r) for r in roles)]
        async with self._session_factory() as db:
            rows = (
                await db.execute(
                    select(NotificationORM)
                    .where(or_(*(NotificationORM.target == t for t in targets)))
                    .order_by(NotificationORM.id.desc())
                    .limit(limit)
                )
            ).scalars().all()
        return [_row_to_notification(r) for r in rows]

    async def mark_read(self, notification_id: int) -> bool:
        async with self._session_factory() as db, db.begin():
            result = await db.execute(
                update(NotificationORM)
                .where(NotificationORM.id == notification_id)
                .values(is_read=True)
            )
            return bool(result.rowcount)

    async def list_audit_entries(
        self, module: str | None = None, limit: int = 100
    ) -> list[AuditEntry]:
        stmt = select(SystemLogORM)
        if module is not None:
            stmt = stmt.where(SystemLogORM.module == module)
        stmt = stmt.order_by(SystemLogORM.id.desc()).limit(limit)
        async with self._session_factory() as db:
            rows = (await db.execute(stmt)).scalars().all()
        return [_row_to_audit(r) for r in rows]
