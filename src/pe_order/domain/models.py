"""Order domain models: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime

from src.pe_ledger.domain.models import OrderRef


@dataclass
class Order:
    id: str
    order_no: str
    # Scope used for commission resolution
    city_code: str
    order_type: str
    title: str  # skill category
    # Customer lead
    customer_name: str
    customer_phone: str
    customer_address: str
    customer_source: str
    description: str
    # Money, fixed at creation (cents)
    publish_price: int
    platform_fee: int
    grab_price: int
    commission_rule_id: int | None
    # Parties
    publisher_id: str
    grabber_id: str | None = None
    status: str = "PUBLISHED"
    chat_attachments: list[str] = field(default_factory=list)
    # Dispute sub-record
    exception_reason: str | None = None
    exception_proofs: list[str] = field(default_factory=list)
    exception_time: datetime | None = None
    appeal_reason: str | None = None
    appeal_time: datetime | None = None
    # Lifecycle timestamps
    created_at: datetime | None = None
    grab_time: datetime | None = None
    finish_time: datetime | None = None
    settled_at: datetime | None = None
    cancelled_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0

    @property
    def ref(self) -> OrderRef:
        return OrderRef(order_id=self.id, order_no=self.order_no)

    @property
    def is_terminal(self) -> bool:
        return self.status in ("SETTLED", "CANCELLED")

    @property
    def is_escrowed(self) -> bool:
        """publish_price sits in the publisher's frozen balance."""
        return self.status in ("PROCESSING", "COMPLETED", "EXCEPTION", "MEDIATING")

    def parties(self) -> list[str]:
        return [p for p in (self.publisher_id, self.grabber_id) if p]


@dataclass(frozen=True)
class OrderTransition:
    order_id: str
    from_status: str | None
    to_status: str
    event: str
    actor_id: str
    detail: str = ""
    created_at: datetime | None = None
    id: int | None = None


@dataclass(frozen=True)
class DisputeView:
    """UI flags derived from an order's state alone."""

    order_id: str
    status: str
    has_dispute: bool
    awaiting_publisher: bool
    awaiting_arbiter: bool
    can_grab: bool
    is_terminal: bool
    accepted_events: tuple[str, ...]
