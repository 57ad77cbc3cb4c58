"""Shared test fixtures.

Every test that touches the database gets its own SQLite file, one connection
per session, with the schema built from the ORM metadata. DATABASE_URL points
at SQLite before any src import so importing src.main never needs PostgreSQL.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from collections.abc import AsyncIterator, Awaitable, Callable  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine  # noqa: E402

from config.settings import Settings  # noqa: E402
from src.pe_commission.domain.models import CommissionRule  # noqa: E402
from src.pe_commission.infrastructure import db_models as _commission_tables  # noqa: E402, F401
from src.pe_commission.infrastructure.persistence import CommissionRuleRepository  # noqa: E402
from src.pe_common.database import Base, build_session_factory  # noqa: E402
from src.pe_funding.infrastructure import db_models as _funding_tables  # noqa: E402, F401
from src.pe_ledger.infrastructure import db_models as _ledger_tables  # noqa: E402, F401
from src.pe_notify.domain.sink import MappingIdentityDirectory  # noqa: E402
from src.pe_notify.infrastructure import db_models as _notify_tables  # noqa: E402, F401
from src.pe_order.application.schemas import CreateOrderRequest  # noqa: E402
from src.pe_order.application.service import Engine, build_engine  # noqa: E402
from src.pe_order.domain.models import Order  # noqa: E402
from src.pe_order.infrastructure import db_models as _order_tables  # noqa: E402, F401

PUBLISHER = "partner-pub"
GRABBER = "partner-grab"
ADMIN = "admin-1"

_phone_counter = iter(range(10_000_000, 99_999_999))


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        LOCK_TIMEOUT_SECONDS=2.0,
        AUTO_SETTLE_DAYS=3,
        DEFAULT_COMMISSION_RATE_BPS=1000,
    )


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'escrow.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine):  # type: ignore[no-untyped-def]
    return build_session_factory(db_engine)


@pytest.fixture
def engine(session_factory, test_settings: Settings) -> Engine:  # type: ignore[no-untyped-def]
    directory = MappingIdentityDirectory(
        {PUBLISHER: "Acme Home Services", GRABBER: "Bright Cleaners", ADMIN: "Super Admin"}
    )
    return build_engine(session_factory, test_settings, directory)


@pytest.fixture
def add_rule(session_factory) -> Callable[..., Awaitable[CommissionRule]]:  # type: ignore[no-untyped-def]
    repo = CommissionRuleRepository()

    async def _add(
        city_code: str = "ALL",
        order_type: str = "ALL",
        category: str = "ALL",
        rule_type: str = "PERCENTAGE",
        rule_value: int = 1000,
        is_active: bool = True,
    ) -> CommissionRule:
        async with session_factory() as db, db.begin():
            return await repo.add_rule(
                db,
                CommissionRule(
                    id=None,
                    city_code=city_code,
                    order_type=order_type,
                    category=category,
                    rule_type=rule_type,
                    rule_value=rule_value,
                    is_active=is_active,
                ),
            )

    return _add


@pytest.fixture
async def seeded_rules(add_rule) -> list[CommissionRule]:  # type: ignore[no-untyped-def]
    """The production seed: platform-wide 10%, FIXED 200.00 for SH on-site orders."""
    return [
        await add_rule(),
        await add_rule(city_code="SH", order_type="上门服务", rule_type="FIXED", rule_value=20_000),
    ]


@pytest.fixture
def fund(engine: Engine) -> Callable[[str, int], Awaitable[None]]:
    async def _fund(account_id: str, amount: int) -> None:
        result = await engine.funding.manual_top_up(account_id, amount, ADMIN, "test funding")
        assert result.ok, result.error

    return _fund


@pytest.fixture
def publish(engine: Engine, seeded_rules) -> Callable[..., Awaitable[Order]]:  # type: ignore[no-untyped-def]
    async def _publish(publish_price: int = 800_000, **overrides: Any) -> Order:
        fields: dict[str, Any] = {
            "publisher_id": PUBLISHER,
            "city_code": "SH",
            "order_type": "上门服务",
            "title": "家电清洗",
            "customer_name": "Zhang San",
            "customer_phone": f"138{next(_phone_counter)}",
            "customer_address": "1 Century Ave, Pudong",
            "customer_source": "douyin",
            "description": "Deep clean of two split AC units",
            "publish_price_cents": publish_price,
        }
        fields.update(overrides)
        result = await engine.orders.create_order(CreateOrderRequest(**fields))
        assert result.ok, result.error
        return result.value

    return _publish


@pytest.fixture
def grabbed(engine: Engine, fund, publish) -> Callable[..., Awaitable[Order]]:  # type: ignore[no-untyped-def]
    """A PROCESSING order; the grabber is funded with exactly the grab price."""

    async def _grabbed(publish_price: int = 800_000, **overrides: Any) -> Order:
        order = await publish(publish_price, **overrides)
        await fund(GRABBER, order.grab_price)
        result = await engine.orders.grab_order(order.id, GRABBER)
        assert result.ok, result.error
        return result.value

    return _grabbed


@pytest.fixture
async def client(engine: Engine) -> AsyncIterator[AsyncClient]:
    """Async HTTP client around the app with the test engine installed."""
    from src.main import app

    app.state.engine = engine
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
