"""Push-only collaborators consumed by the engine.

The engine only ever pushes audit lines and notifications; it never reads
them back and never lets a delivery failure undo a committed transition.
`SafeSink` is the boundary that enforces that; `SafeDirectory` does the same
for display-name lookups made after commit.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Protocol

from src.pe_notify.domain.models import AuditEntry

logger = logging.getLogger(__name__)


class NotificationSinkProtocol(Protocol):
    async def record(self, entry: AuditEntry) -> None: ...

    async def notify(
        self, account_id: str, title: str, body: str, category: str
    ) -> None: ...

    async def broadcast(
        self, roles: Iterable[str], title: str, body: str, category: str
    ) -> None: ...


class IdentityDirectoryProtocol(Protocol):
    def display_name(self, account_id: str) -> str: ...


class MappingIdentityDirectory:
    """Identity directory backed by a plain mapping; unknown ids fall back to the id."""

    def __init__(self, names: Mapping[str, str] | None = None) -> None:
        self._names = dict(names or {})

    def display_name(self, account_id: str) -> str:
        return self._names.get(account_id, account_id)


class SafeSink:
    """Wraps a sink so that every failure is logged and swallowed."""

    def __init__(self, inner: NotificationSinkProtocol | None) -> None:
        self._inner = inner

    async def record(self, entry: AuditEntry) -> None:
        if self._inner is None:
            return
        try:
            await self._inner.record(entry)
        except Exception:
            logger.exception("Audit sink failed: module=%s action=%s", entry.module, entry.action)

    async def notify(self, account_id: str, title: str, body: str, category: str) -> None:
        if self._inner is None:
            return
        try:
            await self._inner.notify(account_id, title, body, category)
        except Exception:
            logger.exception("Notification to %s failed: %s", account_id, title)

    async def broadcast(
        self, roles: Iterable[str], title: str, body: str, category: str
    ) -> None:
        if self._inner is None:
            return
        roles = list(roles)
        try:
            await self._inner.broadcast(roles, title, body, category)
        except Exception:
            logger.exception("Broadcast to %s failed: %s", roles, title)


class SafeDirectory:
    """Wraps an identity directory; a failed lookup is logged and falls back to the id."""

    def __init__(self, inner: IdentityDirectoryProtocol | None) -> None:
        self._inner = inner

    def display_name(self, account_id: str) -> str:
        if self._inner is None:
            return account_id
        try:
            return self._inner.display_name(account_id)
        except Exception:
            logger.exception("Identity lookup failed for %s", account_id)
            return account_id
