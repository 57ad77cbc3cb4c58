"""Order lifecycle transition table.

Every legal (status, event) pair is listed here; anything else is rejected
before a ledger call is made.

  PUBLISHED --GRAB--> PROCESSING --COMPLETE--> COMPLETED --SETTLE--> SETTLED
  PROCESSING|COMPLETED --REPORT_EXCEPTION--> EXCEPTION
  EXCEPTION --CONFIRM_EXCEPTION--> CANCELLED
  EXCEPTION --APPEAL--> MEDIATING --RULE_FOR_GRABBER--> CANCELLED
  MEDIATING --RULE_FOR_PUBLISHER|SETTLE--> SETTLED
  PROCESSING|EXCEPTION --FORCE_CANCEL--> CANCELLED
"""

from src.pe_common.enums import OrderEvent, OrderStatus
from src.pe_common.errors import InvalidTransitionError, OrderNotClaimableError
from src.pe_order.domain.models import DisputeView, Order

S = OrderStatus
E = OrderEvent

TRANSITIONS: dict[tuple[OrderStatus, OrderEvent], OrderStatus] = {
    (S.PUBLISHED, E.GRAB): S.PROCESSING,
    (S.PROCESSING, E.COMPLETE): S.COMPLETED,
    (S.PROCESSING, E.REPORT_EXCEPTION): S.EXCEPTION,
    (S.COMPLETED, E.REPORT_EXCEPTION): S.EXCEPTION,
    (S.COMPLETED, E.SETTLE): S.SETTLED,
    (S.EXCEPTION, E.CONFIRM_EXCEPTION): S.CANCELLED,
    (S.EXCEPTION, E.APPEAL): S.MEDIATING,
    (S.EXCEPTION, E.FORCE_CANCEL): S.CANCELLED,
    (S.MEDIATING, E.RULE_FOR_GRABBER): S.CANCELLED,
    (S.MEDIATING, E.RULE_FOR_PUBLISHER): S.SETTLED,
    (S.MEDIATING, E.SETTLE): S.SETTLED,
    (S.PROCESSING, E.FORCE_CANCEL): S.CANCELLED,
}

TERMINAL_STATES = frozenset({S.SETTLED, S.CANCELLED})


def next_status(order_id: str, status: str, event: OrderEvent) -> OrderStatus:
    """Target status for `event`, or InvalidTransitionError."""
    target = TRANSITIONS.get((OrderStatus(status), event))
    if target is None:
        if event is E.GRAB:
            raise OrderNotClaimableError(order_id, f"status is {status}", status)
        raise InvalidTransitionError(order_id, status, event.value)
    return target


def accepted_events(status: str) -> tuple[str, ...]:
    current = OrderStatus(status)
    return tuple(e.value for (s, e) in TRANSITIONS if s is current)


def dispute_view(order: Order) -> DisputeView:
    status = OrderStatus(order.status)
    return DisputeView(
        order_id=order.id,
        status=status.value,
        has_dispute=order.exception_reason is not None,
        awaiting_publisher=status is S.EXCEPTION,
        awaiting_arbiter=status is S.MEDIATING,
        can_grab=status is S.PUBLISHED,
        is_terminal=status in TERMINAL_STATES,
        accepted_events=accepted_events(status.value),
    )
