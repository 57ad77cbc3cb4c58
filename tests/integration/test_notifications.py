"""Integration tests: audit lines and notifications pushed after commit."""

from unittest.mock import AsyncMock

from src.pe_order.application.schemas import CreateOrderRequest
from src.pe_order.application.service import build_engine

PUBLISHER = "partner-pub"
GRABBER = "partner-grab"
ADMIN = "admin-1"
PROOFS = ["https://img.example.com/p1.jpg"]


class TestOrderNotifications:
    async def test_grab_notifies_publisher(self, engine, grabbed) -> None:
        order = await grabbed(800_000)

        inbox = await engine.sink.list_notifications(PUBLISHER)

        grabbed_note = [n for n in inbox if n.title == "Order grabbed"]
        assert len(grabbed_note) == 1
        assert order.order_no in grabbed_note[0].content
        assert "Bright Cleaners" in grabbed_note[0].content
        assert grabbed_note[0].category == "ORDER"

    async def test_appeal_broadcasts_to_arbiters(self, engine, grabbed) -> None:
        order = await grabbed(800_000)
        await engine.orders.report_exception(order.id, GRABBER, "No show", PROOFS)
        await engine.orders.appeal_exception(order.id, PUBLISHER, "Technician was there")

        admin_inbox = await engine.sink.list_notifications(ADMIN, roles=["ADMIN"])
        grabber_inbox = await engine.sink.list_notifications(GRABBER)

        assert any(n.title == "Mediation required" for n in admin_inbox)
        assert any(n.title == "Exception appealed" for n in grabber_inbox)
        # Role broadcasts are not visible without the role
        assert not any(
            n.title == "Mediation required"
            for n in await engine.sink.list_notifications(GRABBER)
        )

    async def test_cancel_notifies_both_parties(self, engine, grabbed) -> None:
        order = await grabbed(800_000)
        await engine.orders.force_cancel(order.id, ADMIN)

        for party in (PUBLISHER, GRABBER):
            inbox = await engine.sink.list_notifications(party)
            assert any(n.title == "Order cancelled" for n in inbox)

    async def test_mark_read(self, engine, grabbed) -> None:
        await grabbed(800_000)
        note = (await engine.sink.list_notifications(PUBLISHER))[0]

        assert await engine.sink.mark_read(note.id)
        assert not await engine.sink.mark_read(999_999)
        refreshed = await engine.sink.list_notifications(PUBLISHER)
        assert next(n for n in refreshed if n.id == note.id).is_read


class TestAudit:
    async def test_transitions_are_audited(self, engine, grabbed) -> None:
        order = await grabbed(800_000)
        await engine.orders.force_cancel(order.id, ADMIN)

        entries = await engine.sink.list_audit_entries("ORDER")

        actions = [e.action for e in entries]
        assert actions[:3] == ["FORCE_CANCEL", "GRAB", "CREATE"]
        assert entries[0].operator_name == "Super Admin"
        assert order.order_no in entries[0].details

    async def test_rejected_transition_is_not_audited(self, engine, publish) -> None:
        order = await publish(800_000)
        await engine.orders.complete_order(order.id, GRABBER)

        actions = [e.action for e in await engine.sink.list_audit_entries("ORDER")]
        assert "COMPLETE" not in actions

    async def test_funding_audited(self, engine, fund) -> None:
        await fund(PUBLISHER, 1000)
        entries = await engine.sink.list_audit_entries("FUNDING")
        assert [e.action for e in entries] == ["TOPUP_MANUAL"]


class TestSinkFailure:
    async def test_sink_failure_does_not_undo_transition(self, engine, fund, seeded_rules) -> None:
        broken = AsyncMock()
        broken.record.side_effect = RuntimeError("log store down")
        broken.notify.side_effect = RuntimeError("log store down")
        engine.orders._sink._inner = broken

        result = await engine.orders.create_order(
            CreateOrderRequest(
                publisher_id=PUBLISHER,
                city_code="SH",
                order_type="上门服务",
                title="家电清洗",
                customer_name="Wang Wu",
                customer_phone="13700000000",
                description="Unclog kitchen drain",
                publish_price_cents=300_000,
            )
        )
        assert result.ok
        await fund(GRABBER, 400_000)

        grabbed = await engine.orders.grab_order(result.value.id, GRABBER)

        assert grabbed.ok
        assert (await engine.ledger.get_balance(GRABBER)).available_balance == 80_000
        broken.notify.assert_awaited()


class _UnreachableDirectory:
    def display_name(self, account_id: str) -> str:
        raise RuntimeError("directory down")


class TestDirectoryFailure:
    async def test_lookup_failure_after_commit_still_returns_result(
        self, session_factory, test_settings, seeded_rules
    ) -> None:
        engine = build_engine(session_factory, test_settings, _UnreachableDirectory())

        created = await engine.orders.create_order(
            CreateOrderRequest(
                publisher_id=PUBLISHER,
                city_code="SH",
                order_type="上门服务",
                title="家电清洗",
                customer_name="Zhao Liu",
                customer_phone="13600000000",
                description="Replace bathroom tap",
                publish_price_cents=300_000,
            )
        )
        assert created.ok
        topped_up = await engine.funding.manual_top_up(GRABBER, 400_000, ADMIN, "seed")
        assert topped_up.ok
        grabbed = await engine.orders.grab_order(created.value.id, GRABBER)

        assert grabbed.ok
        page = await engine.orders.list_orders(publisher_id=PUBLISHER)
        assert len(page.items) == 1
        # Names fall back to the raw ids
        entries = await engine.sink.list_audit_entries("ORDER")
        assert {e.operator_name for e in entries} == {PUBLISHER, GRABBER}
        inbox = await engine.sink.list_notifications(PUBLISHER)
        assert any(GRABBER in n.content for n in inbox if n.title == "Order grabbed")
