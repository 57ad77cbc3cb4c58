"""Integration tests: HTTP surface through httpx against the ASGI app."""

from httpx import AsyncClient

PUBLISHER = "partner-pub"
GRABBER = "partner-grab"
ADMIN = "admin-1"

ORDER_BODY = {
    "publisher_id": PUBLISHER,
    "city_code": "SH",
    "order_type": "上门服务",
    "title": "家电清洗",
    "customer_name": "Zhang San",
    "customer_phone": "13600000000",
    "description": "Deep clean of two split AC units",
    "publish_price_cents": 800_000,
}


async def _top_up(client: AsyncClient, account_id: str, amount: int) -> None:
    resp = await client.post(
        "/api/v1/funding/top-ups/manual",
        json={"account_id": account_id, "amount_cents": amount, "operator_id": ADMIN},
    )
    assert resp.status_code == 200, resp.text


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestOrderApi:
    async def test_full_lifecycle(self, client: AsyncClient, seeded_rules) -> None:
        created = await client.post("/api/v1/orders", json=ORDER_BODY)
        assert created.status_code == 200
        order = created.json()["data"]
        assert order["grab_price_cents"] == 820_000
        assert order["grab_price_display"] == "¥8,200.00"
        order_id = order["id"]

        await _top_up(client, GRABBER, 1_000_000)
        grab = await client.post(f"/api/v1/orders/{order_id}/grab", json={"grabber_id": GRABBER})
        assert grab.json()["data"]["status"] == "PROCESSING"

        done = await client.post(f"/api/v1/orders/{order_id}/complete", json={"actor_id": GRABBER})
        assert done.json()["data"]["status"] == "COMPLETED"

        settled = await client.post(f"/api/v1/orders/{order_id}/settle", json={"actor_id": ADMIN})
        assert settled.json()["data"]["status"] == "SETTLED"

        balance = (await client.get(f"/api/v1/accounts/{PUBLISHER}/balance")).json()["data"]
        assert balance["available_balance_cents"] == 800_000
        assert balance["frozen_balance_cents"] == 0

        history = (await client.get(f"/api/v1/orders/{order_id}/transitions")).json()["data"]
        assert [t["event"] for t in history] == ["CREATE", "GRAB", "COMPLETE", "SETTLE"]

        conservation = (await client.get("/api/v1/accounts/conservation")).json()["data"]
        assert conservation["violations"] == []

    async def test_dispute_flow(self, client: AsyncClient, seeded_rules) -> None:
        order_id = (await client.post("/api/v1/orders", json=ORDER_BODY)).json()["data"]["id"]
        await _top_up(client, GRABBER, 820_000)
        await client.post(f"/api/v1/orders/{order_id}/grab", json={"grabber_id": GRABBER})

        reported = await client.post(
            f"/api/v1/orders/{order_id}/exception",
            json={"grabber_id": GRABBER, "reason": "No show", "proofs": ["https://p/1.jpg"]},
        )
        assert reported.json()["data"]["status"] == "EXCEPTION"

        view = (await client.get(f"/api/v1/orders/{order_id}/dispute")).json()["data"]
        assert view["awaiting_publisher"] is True

        await client.post(
            f"/api/v1/orders/{order_id}/exception/appeal",
            json={"publisher_id": PUBLISHER, "reason": "Customer confirmed the visit"},
        )
        ruled = await client.post(
            f"/api/v1/orders/{order_id}/mediation",
            json={"arbiter_id": ADMIN, "ruling": "FOR_GRABBER"},
        )
        assert ruled.json()["data"]["status"] == "CANCELLED"

        flows = (
            await client.get(f"/api/v1/accounts/{GRABBER}/flows", params={"category": "REFUND"})
        ).json()["data"]
        assert [f["amount_cents"] for f in flows["items"]] == [820_000]

    async def test_business_error_keeps_status_and_code(
        self, client: AsyncClient, seeded_rules
    ) -> None:
        order_id = (await client.post("/api/v1/orders", json=ORDER_BODY)).json()["data"]["id"]

        resp = await client.post(f"/api/v1/orders/{order_id}/grab", json={"grabber_id": GRABBER})

        assert resp.status_code == 422
        body = resp.json()
        assert body["code"] == 2001
        assert body["data"] is None
        assert body["request_id"] == resp.headers["X-Request-ID"]

    async def test_invalid_transition_is_conflict(self, client: AsyncClient, seeded_rules) -> None:
        order_id = (await client.post("/api/v1/orders", json=ORDER_BODY)).json()["data"]["id"]

        resp = await client.post(
            f"/api/v1/orders/{order_id}/complete", json={"actor_id": GRABBER}
        )

        assert resp.status_code == 409
        assert resp.json()["code"] == 4002

    async def test_unknown_order_is_404(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/orders/00000000000000000000")
        assert resp.status_code == 404
        assert resp.json()["code"] == 4001

    async def test_request_id_is_echoed(self, client: AsyncClient) -> None:
        resp = await client.get(
            f"/api/v1/accounts/{GRABBER}/balance", headers={"X-Request-ID": "req_fixed"}
        )
        assert resp.headers["X-Request-ID"] == "req_fixed"
        assert resp.json()["request_id"] == "req_fixed"

    async def test_list_orders(self, client: AsyncClient, seeded_rules) -> None:
        await client.post("/api/v1/orders", json=ORDER_BODY)
        resp = await client.get("/api/v1/orders", params={"status": "PUBLISHED"})
        data = resp.json()["data"]
        assert len(data["items"]) == 1
        assert data["has_more"] is False


class TestFundingApi:
    async def test_withdrawal_review(self, client: AsyncClient) -> None:
        await _top_up(client, PUBLISHER, 300_000)
        created = await client.post(
            "/api/v1/funding/withdrawals", json={"account_id": PUBLISHER, "amount_cents": 100_000}
        )
        request_id = created.json()["data"]["id"]

        reviewed = await client.post(
            f"/api/v1/funding/withdrawals/{request_id}/review",
            json={"operator_id": ADMIN, "approved": True},
        )
        assert reviewed.json()["data"]["status"] == "APPROVED"

        again = await client.post(
            f"/api/v1/funding/withdrawals/{request_id}/review",
            json={"operator_id": ADMIN, "approved": True},
        )
        assert again.status_code == 409
        assert again.json()["code"] == 6002

        overview = (await client.get("/api/v1/funding/overview")).json()["data"]
        assert overview["total_pool_cents"] == 200_000


class TestNotifyApi:
    async def test_inbox_and_mark_read(self, client: AsyncClient) -> None:
        await _top_up(client, PUBLISHER, 1000)

        inbox = (
            await client.get("/api/v1/notifications", params={"account_id": PUBLISHER})
        ).json()["data"]
        assert inbox[0]["category"] == "FINANCE"

        read = await client.post(f"/api/v1/notifications/{inbox[0]['id']}/read")
        assert read.status_code == 200
        missing = await client.post("/api/v1/notifications/999999/read")
        assert missing.status_code == 404
        assert missing.json()["code"] == 5001

        logs = (
            await client.get("/api/v1/system-logs", params={"module": "FUNDING"})
        ).json()["data"]
        assert logs[0]["action"] == "TOPUP_MANUAL"
