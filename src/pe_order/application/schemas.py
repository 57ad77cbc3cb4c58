# src/pe_order/application/schemas.py
from datetime import datetime

from pydantic import BaseModel, Field

from src.pe_common.cents import cents_to_display
from src.pe_common.enums import MediationRuling
from src.pe_order.domain.models import DisputeView, Order, OrderTransition


class CreateOrderRequest(BaseModel):
    publisher_id: str
    city_code: str
    order_type: str
    title: str
    customer_name: str
    customer_phone: str
    customer_address: str = ""
    customer_source: str = ""
    description: str
    publish_price_cents: int
    chat_attachments: list[str] = Field(default_factory=list)


class GrabRequest(BaseModel):
    grabber_id: str


class ActorRequest(BaseModel):
    actor_id: str


class ReportExceptionRequest(BaseModel):
    grabber_id: str
    reason: str
    proofs: list[str] = Field(default_factory=list)


class AppealRequest(BaseModel):
    publisher_id: str
    reason: str


class MediationRequest(BaseModel):
    arbiter_id: str
    ruling: MediationRuling


class SettleDueRequest(BaseModel):
    now: datetime | None = None


class OrderResponse(BaseModel):
    id: str
    order_no: str
    status: str
    city_code: str
    order_type: str
    title: str
    customer_name: str
    customer_phone: str
    customer_address: str
    customer_source: str
    description: str
    chat_attachments: list[str]
    publish_price_cents: int
    platform_fee_cents: int
    grab_price_cents: int
    grab_price_display: str
    commission_rule_id: int | None
    publisher_id: str
    grabber_id: str | None
    exception_reason: str | None
    exception_proofs: list[str]
    exception_time: datetime | None
    appeal_reason: str | None
    appeal_time: datetime | None
    created_at: datetime | None
    grab_time: datetime | None
    finish_time: datetime | None
    settled_at: datetime | None
    cancelled_at: datetime | None
    version: int

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            order_no=order.order_no,
            status=order.status,
            city_code=order.city_code,
            order_type=order.order_type,
            title=order.title,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            customer_address=order.customer_address,
            customer_source=order.customer_source,
            description=order.description,
            chat_attachments=list(order.chat_attachments),
            publish_price_cents=order.publish_price,
            platform_fee_cents=order.platform_fee,
            grab_price_cents=order.grab_price,
            grab_price_display=cents_to_display(order.grab_price),
            commission_rule_id=order.commission_rule_id,
            publisher_id=order.publisher_id,
            grabber_id=order.grabber_id,
            exception_reason=order.exception_reason,
            exception_proofs=list(order.exception_proofs),
            exception_time=order.exception_time,
            appeal_reason=order.appeal_reason,
            appeal_time=order.appeal_time,
            created_at=order.created_at,
            grab_time=order.grab_time,
            finish_time=order.finish_time,
            settled_at=order.settled_at,
            cancelled_at=order.cancelled_at,
            version=order.version,
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    next_cursor: str | None
    has_more: bool


class TransitionItem(BaseModel):
    from_status: str | None
    to_status: str
    event: str
    actor_id: str
    detail: str
    created_at: datetime | None

    @classmethod
    def from_transition(cls, t: OrderTransition) -> "TransitionItem":
        return cls(
            from_status=t.from_status,
            to_status=t.to_status,
            event=t.event,
            actor_id=t.actor_id,
            detail=t.detail,
            created_at=t.created_at,
        )


class DisputeViewResponse(BaseModel):
    order_id: str
    status: str
    has_dispute: bool
    awaiting_publisher: bool
    awaiting_arbiter: bool
    can_grab: bool
    is_terminal: bool
    accepted_events: list[str]

    @classmethod
    def from_view(cls, view: DisputeView) -> "DisputeViewResponse":
        return cls(
            order_id=view.order_id,
            status=view.status,
            has_dispute=view.has_dispute,
            awaiting_publisher=view.awaiting_publisher,
            awaiting_arbiter=view.awaiting_arbiter,
            can_grab=view.can_grab,
            is_terminal=view.is_terminal,
            accepted_events=list(view.accepted_events),
        )


class SettlementOutcome(BaseModel):
    order_id: str
    settled: bool
    error_code: int | None = None
    error_message: str | None = None


class SettlementRunResponse(BaseModel):
    settled: int
    failed: int
    outcomes: list[SettlementOutcome]
