"""Domain models for pe_notify: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

BROADCAST_ALL = "ALL"
ROLE_TARGET_PREFIX = "ROLE:"


def role_target(role: str) -> str:
    """Notification target for a role broadcast: 'ADMIN' -> 'ROLE:ADMIN'."""
    return f"{ROLE_TARGET_PREFIX}{role}"


@dataclass(frozen=True)
class AuditEntry:
    operator_id: str
    operator_name: str
    module: str       # ORDER / LEDGER / FUNDING
    action: str       # e.g. GRAB, EXCEPTION_CONFIRM, TOPUP_APPROVE
    details: str
    created_at: datetime | None = None
    id: int | None = None


@dataclass
class Notification:
    id: int
    target: str       # account id, ROLE:<role>, or ALL
    title: str
    content: str
    category: str     # NotificationCategory value
    is_read: bool
    created_at: datetime | None = None
