"""Unit tests for the order transition table and dispute view."""

import itertools
from typing import Any

import pytest

from src.pe_common.enums import OrderEvent, OrderStatus
from src.pe_common.errors import InvalidTransitionError, OrderNotClaimableError
from src.pe_order.domain.models import Order
from src.pe_order.domain.state_machine import (
    TERMINAL_STATES,
    TRANSITIONS,
    accepted_events,
    dispute_view,
    next_status,
)

S = OrderStatus
E = OrderEvent

LEGAL = {
    (S.PUBLISHED, E.GRAB): S.PROCESSING,
    (S.PROCESSING, E.COMPLETE): S.COMPLETED,
    (S.PROCESSING, E.REPORT_EXCEPTION): S.EXCEPTION,
    (S.PROCESSING, E.FORCE_CANCEL): S.CANCELLED,
    (S.COMPLETED, E.REPORT_EXCEPTION): S.EXCEPTION,
    (S.COMPLETED, E.SETTLE): S.SETTLED,
    (S.EXCEPTION, E.CONFIRM_EXCEPTION): S.CANCELLED,
    (S.EXCEPTION, E.APPEAL): S.MEDIATING,
    (S.EXCEPTION, E.FORCE_CANCEL): S.CANCELLED,
    (S.MEDIATING, E.RULE_FOR_GRABBER): S.CANCELLED,
    (S.MEDIATING, E.RULE_FOR_PUBLISHER): S.SETTLED,
    (S.MEDIATING, E.SETTLE): S.SETTLED,
}

ILLEGAL = [pair for pair in itertools.product(S, E) if pair not in LEGAL]


def _make_order(**kwargs: Any) -> Order:
    defaults: dict[str, Any] = {
        "id": "order-1",
        "order_no": "ORD20260115000010000000001",
        "city_code": "SH",
        "order_type": "上门服务",
        "title": "家电清洗",
        "customer_name": "Zhang San",
        "customer_phone": "13800000000",
        "customer_address": "",
        "customer_source": "",
        "description": "Deep clean of two AC units",
        "publish_price": 800_000,
        "platform_fee": 20_000,
        "grab_price": 820_000,
        "commission_rule_id": 2,
        "publisher_id": "pub-1",
    }
    defaults.update(kwargs)
    return Order(**defaults)


class TestTransitionTable:
    def test_table_matches_lifecycle(self) -> None:
        assert TRANSITIONS == LEGAL

    @pytest.mark.parametrize("status, event", list(LEGAL))
    def test_legal_pairs(self, status: OrderStatus, event: OrderEvent) -> None:
        assert next_status("o1", status.value, event) is LEGAL[(status, event)]

    @pytest.mark.parametrize("status, event", ILLEGAL)
    def test_every_other_pair_is_rejected(self, status: OrderStatus, event: OrderEvent) -> None:
        with pytest.raises(InvalidTransitionError) as exc_info:
            next_status("o1", status.value, event)
        assert exc_info.value.status == status.value
        assert exc_info.value.event == event.value

    @pytest.mark.parametrize("status", [s for s in S if s is not S.PUBLISHED])
    def test_grab_outside_published_is_not_claimable(self, status: OrderStatus) -> None:
        with pytest.raises(OrderNotClaimableError):
            next_status("o1", status.value, E.GRAB)

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATES))
    def test_terminal_states_accept_nothing(self, status: OrderStatus) -> None:
        assert accepted_events(status.value) == ()

    def test_accepted_events_for_exception(self) -> None:
        assert set(accepted_events("EXCEPTION")) == {
            "CONFIRM_EXCEPTION",
            "APPEAL",
            "FORCE_CANCEL",
        }


class TestDisputeView:
    def test_published(self) -> None:
        view = dispute_view(_make_order())
        assert view.can_grab
        assert not view.has_dispute
        assert not view.is_terminal
        assert view.accepted_events == ("GRAB",)

    def test_exception_awaits_publisher(self) -> None:
        view = dispute_view(
            _make_order(status="EXCEPTION", grabber_id="grab-1", exception_reason="no show")
        )
        assert view.has_dispute
        assert view.awaiting_publisher
        assert not view.awaiting_arbiter
        assert not view.can_grab

    def test_mediating_awaits_arbiter(self) -> None:
        view = dispute_view(
            _make_order(status="MEDIATING", grabber_id="grab-1", exception_reason="no show")
        )
        assert view.awaiting_arbiter
        assert not view.awaiting_publisher

    def test_settled_after_dispute_keeps_history(self) -> None:
        view = dispute_view(
            _make_order(status="SETTLED", grabber_id="grab-1", exception_reason="no show")
        )
        assert view.has_dispute
        assert view.is_terminal
        assert view.accepted_events == ()


class TestOrderModel:
    def test_parties_before_grab(self) -> None:
        assert _make_order().parties() == ["pub-1"]

    def test_escrowed_statuses(self) -> None:
        assert _make_order(status="PROCESSING").is_escrowed
        assert not _make_order(status="PUBLISHED").is_escrowed
        assert not _make_order(status="CANCELLED").is_escrowed
