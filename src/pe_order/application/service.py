# src/pe_order/application/service.py
"""OrderLifecycleService: drives orders through the dispute/settlement
state machine and applies the matching ledger effects.

Every transition is one database transaction holding the order lock and the
locks of both parties' accounts:

  1. re-read the order inside the transaction
  2. look the (status, event) pair up in TRANSITIONS (before any ledger call)
  3. compare-and-set the new status
  4. apply the ledger effect through the shared Ledger primitives
  5. append the transition history row

Audit lines and notifications are pushed after commit through SafeSink.
`build_engine` at the bottom is the composition root for the whole engine.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings, settings as default_settings
from src.pe_commission.domain.matcher import CommissionRuleMatcher
from src.pe_commission.infrastructure.persistence import CommissionRuleRepository
from src.pe_common.datetime_utils import settlement_cutoff, utc_now
from src.pe_common.enums import (
    FlowCategory,
    MediationRuling,
    NotificationCategory,
    OrderEvent,
    OrderStatus,
)
from src.pe_common.errors import (
    BusyError,
    DuplicateCustomerLeadError,
    EmptyAppealReasonError,
    FatalError,
    InvalidTransitionError,
    MissingDisputeEvidenceError,
    OrderNotClaimableError,
    OrderNotFoundError,
    OrderValidationError,
)
from src.pe_common.id_generator import generate_id, generate_order_no
from src.pe_common.locks import KeyedLockManager
from src.pe_common.result import Result
from src.pe_common.unit_of_work import TransactionRunner
from src.pe_funding.application.service import FundingService
from src.pe_ledger.application.schemas import cursor_decode, cursor_encode
from src.pe_ledger.application.service import LedgerService
from src.pe_ledger.domain.ledger import Ledger
from src.pe_notify.domain.models import AuditEntry
from src.pe_notify.domain.sink import (
    IdentityDirectoryProtocol,
    MappingIdentityDirectory,
    NotificationSinkProtocol,
    SafeDirectory,
    SafeSink,
)
from src.pe_notify.infrastructure.sql_sink import SqlNotificationSink
from src.pe_order.application.schemas import (
    CreateOrderRequest,
    OrderListResponse,
    OrderResponse,
)
from src.pe_order.domain.models import DisputeView, Order, OrderTransition
from src.pe_order.domain.repository import OrderRepositoryProtocol
from src.pe_order.domain.state_machine import dispute_view, next_status
from src.pe_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)

CREATE_EVENT = "CREATE"
MIN_DESCRIPTION_LENGTH = 5

# Audit action recorded per event
_AUDIT_ACTIONS: dict[OrderEvent, str] = {
    OrderEvent.GRAB: "GRAB",
    OrderEvent.COMPLETE: "COMPLETE",
    OrderEvent.REPORT_EXCEPTION: "EXCEPTION_REPORT",
    OrderEvent.CONFIRM_EXCEPTION: "EXCEPTION_CONFIRM",
    OrderEvent.APPEAL: "EXCEPTION_APPEAL",
    OrderEvent.RULE_FOR_PUBLISHER: "MEDIATION_FOR_PUBLISHER",
    OrderEvent.RULE_FOR_GRABBER: "MEDIATION_FOR_GRABBER",
    OrderEvent.SETTLE: "SETTLE",
    OrderEvent.FORCE_CANCEL: "FORCE_CANCEL",
}

Changes = Callable[[Order, datetime], dict[str, Any]]
Check = Callable[[Order], None]
Effect = Callable[[AsyncSession, Order], Awaitable[None]]


def _validate_create(req: CreateOrderRequest) -> None:
    if isinstance(req.publish_price_cents, bool) or req.publish_price_cents <= 0:
        raise OrderValidationError("publish price must be a positive number of cents")
    for name in ("publisher_id", "city_code", "order_type", "title", "customer_name",
                 "customer_phone"):
        if not getattr(req, name).strip():
            raise OrderValidationError(f"{name} must not be empty")
    if len(req.description.strip()) < MIN_DESCRIPTION_LENGTH:
        raise OrderValidationError(
            f"description must be at least {MIN_DESCRIPTION_LENGTH} characters"
        )


class OrderLifecycleService:
    def __init__(
        self,
        runner: TransactionRunner,
        ledger: Ledger,
        matcher: CommissionRuleMatcher,
        repo: OrderRepositoryProtocol | None = None,
        sink: NotificationSinkProtocol | None = None,
        directory: IdentityDirectoryProtocol | None = None,
        arbiter_roles: list[str] | None = None,
        auto_settle_days: int = 3,
    ) -> None:
        self._runner = runner
        self._ledger = ledger
        self._matcher = matcher
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()
        self._sink = SafeSink(sink)
        self._directory = SafeDirectory(directory or MappingIdentityDirectory())
        self._arbiter_roles = list(arbiter_roles or ["ADMIN", "OPERATIONS"])
        self._auto_settle_days = auto_settle_days

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_order(self, req: CreateOrderRequest) -> Result[Order]:
        order_id = generate_id()

        async def body(db: AsyncSession) -> Order:
            _validate_create(req)
            phone = req.customer_phone.strip()
            if await self._repo.find_active_by_phone(db, phone) is not None:
                raise DuplicateCustomerLeadError(phone)
            quote = await self._matcher.quote(
                db, req.publish_price_cents, req.city_code, req.order_type, req.title
            )
            now = utc_now()
            order = Order(
                id=order_id,
                order_no=generate_order_no(order_id),
                city_code=req.city_code,
                order_type=req.order_type,
                title=req.title.strip(),
                customer_name=req.customer_name.strip(),
                customer_phone=phone,
                customer_address=req.customer_address,
                customer_source=req.customer_source,
                description=req.description.strip(),
                publish_price=quote.publish_price,
                platform_fee=quote.platform_fee,
                grab_price=quote.grab_price,
                commission_rule_id=quote.rule_id,
                publisher_id=req.publisher_id,
                chat_attachments=list(req.chat_attachments),
                created_at=now,
                updated_at=now,
            )
            await self._repo.insert_order(db, order)
            await self._repo.insert_transition(
                db,
                OrderTransition(
                    order_id=order.id,
                    from_status=None,
                    to_status=OrderStatus.PUBLISHED.value,
                    event=CREATE_EVENT,
                    actor_id=req.publisher_id,
                    detail=f"fee={quote.platform_fee} rule={quote.rule_id}",
                    created_at=now,
                ),
            )
            return order

        # Serialize creates per customer phone so the duplicate check holds
        result: Result[Order] = await self._runner.run(
            "order.create",
            body,
            order_ids=[order_id, f"lead-{req.customer_phone.strip()}"],
        )
        if result.ok:
            order = result.value
            logger.info(
                "Order created: id=%s no=%s publisher=%s price=%d fee=%d",
                order.id,
                order.order_no,
                order.publisher_id,
                order.publish_price,
                order.platform_fee,
            )
            await self._audit(req.publisher_id, "CREATE", f"Published order {order.order_no}")
        return result

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def grab_order(self, order_id: str, grabber_id: str) -> Result[Order]:
        def check(order: Order) -> None:
            if grabber_id == order.publisher_id:
                raise OrderNotClaimableError(order.id, "publisher cannot grab own order")

        async def effect(db: AsyncSession, order: Order) -> None:
            # Debit first: if it fails the escrow credit never happens
            await self._ledger.debit(
                db, grabber_id, order.grab_price, FlowCategory.GRAB.value, order.ref
            )
            await self._ledger.credit_to_frozen(
                db, order.publisher_id, order.publish_price, FlowCategory.GRAB.value, order.ref
            )

        return await self._transition(
            order_id,
            OrderEvent.GRAB,
            grabber_id,
            changes=lambda o, now: {"grabber_id": grabber_id, "grab_time": now},
            check=check,
            effect=effect,
            extra_accounts=[grabber_id],
        )

    async def complete_order(self, order_id: str, actor_id: str) -> Result[Order]:
        return await self._transition(
            order_id,
            OrderEvent.COMPLETE,
            actor_id,
            changes=lambda o, now: {"finish_time": now},
        )

    async def report_exception(
        self, order_id: str, grabber_id: str, reason: str, proofs: list[str]
    ) -> Result[Order]:
        reason = (reason or "").strip()
        proofs = [p for p in (proofs or []) if p and p.strip()]

        def check(order: Order) -> None:
            if not reason:
                raise MissingDisputeEvidenceError("reason must not be empty")
            if not proofs:
                raise MissingDisputeEvidenceError("at least one proof is required")

        return await self._transition(
            order_id,
            OrderEvent.REPORT_EXCEPTION,
            grabber_id,
            changes=lambda o, now: {
                "exception_reason": reason,
                "exception_proofs": proofs,
                "exception_time": now,
            },
            check=check,
            detail=reason,
        )

    async def confirm_exception(self, order_id: str, actor_id: str) -> Result[Order]:
        return await self._cancel(order_id, OrderEvent.CONFIRM_EXCEPTION, actor_id)

    async def appeal_exception(
        self, order_id: str, publisher_id: str, reason: str
    ) -> Result[Order]:
        reason = (reason or "").strip()

        def check(order: Order) -> None:
            if not reason:
                raise EmptyAppealReasonError()

        return await self._transition(
            order_id,
            OrderEvent.APPEAL,
            publisher_id,
            changes=lambda o, now: {"appeal_reason": reason, "appeal_time": now},
            check=check,
            detail=reason,
        )

    async def resolve_mediation(
        self, order_id: str, ruling: MediationRuling | str, arbiter_id: str
    ) -> Result[Order]:
        ruling = MediationRuling(ruling)
        if ruling is MediationRuling.FOR_GRABBER:
            return await self._cancel(order_id, OrderEvent.RULE_FOR_GRABBER, arbiter_id)
        return await self._settle(order_id, OrderEvent.RULE_FOR_PUBLISHER, arbiter_id)

    async def settle_order(self, order_id: str, actor_id: str = "system") -> Result[Order]:
        return await self._settle(order_id, OrderEvent.SETTLE, actor_id)

    async def force_cancel(self, order_id: str, admin_id: str) -> Result[Order]:
        return await self._cancel(order_id, OrderEvent.FORCE_CANCEL, admin_id)

    async def settle_due_orders(self, now: datetime | None = None) -> dict[str, Result[Order]]:
        """Settle every COMPLETED order finished at least AUTO_SETTLE_DAYS ago."""
        cutoff = settlement_cutoff(now or utc_now(), self._auto_settle_days)
        async with self._runner.session_factory() as db:
            due = await self._repo.list_due_for_settlement(db, cutoff)
        results: dict[str, Result[Order]] = {}
        for order_id in due:
            try:
                results[order_id] = await self.settle_order(order_id, "system")
            except FatalError as exc:
                # Accounts are already halted; keep settling the rest
                results[order_id] = Result.failure(exc)
        settled = sum(1 for r in results.values() if r.ok)
        logger.info(
            "Settlement run: cutoff=%s due=%d settled=%d failed=%d",
            cutoff.isoformat(),
            len(due),
            settled,
            len(due) - settled,
        )
        return results

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_order(self, order_id: str) -> Result[Order]:
        async with self._runner.session_factory() as db:
            order = await self._repo.get_order(db, order_id)
        if order is None:
            return Result.failure(OrderNotFoundError(order_id))
        return Result.success(order)

    async def list_orders(
        self,
        publisher_id: str | None = None,
        grabber_id: str | None = None,
        status: str | None = None,
        city_code: str | None = None,
        cursor: str | None = None,
        limit: int = 20,
    ) -> OrderListResponse:
        async with self._runner.session_factory() as db:
            orders = await self._repo.list_orders(
                db,
                publisher_id=publisher_id,
                grabber_id=grabber_id,
                status=status,
                city_code=city_code,
                cursor_id=cursor_decode(cursor),
                limit=limit + 1,
            )
        has_more = len(orders) > limit
        orders = orders[:limit]
        next_cursor = cursor_encode(orders[-1].id) if has_more and orders else None
        return OrderListResponse(
            items=[OrderResponse.from_order(o) for o in orders],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def list_transitions(self, order_id: str) -> list[OrderTransition]:
        async with self._runner.session_factory() as db:
            return await self._repo.list_transitions(db, order_id)

    async def dispute_view(self, order_id: str) -> Result[DisputeView]:
        found = await self.get_order(order_id)
        if not found.ok:
            return Result.failure(found.error)
        return Result.success(dispute_view(found.value))

    # ------------------------------------------------------------------
    # Shared transitions
    # ------------------------------------------------------------------

    async def _settle(self, order_id: str, event: OrderEvent, actor_id: str) -> Result[Order]:
        async def effect(db: AsyncSession, order: Order) -> None:
            await self._ledger.release_frozen_to_available(
                db,
                order.publisher_id,
                order.publish_price,
                FlowCategory.SETTLEMENT.value,
                order.ref,
            )

        return await self._transition(
            order_id,
            event,
            actor_id,
            changes=lambda o, now: {"settled_at": now},
            effect=effect,
        )

    async def _cancel(self, order_id: str, event: OrderEvent, actor_id: str) -> Result[Order]:
        async def effect(db: AsyncSession, order: Order) -> None:
            # Publisher's escrow is voided; grabber gets the full grab price
            # back, so the platform absorbs its fee
            await self._ledger.release_frozen_as_void(
                db,
                order.publisher_id,
                order.grabber_id,
                order.publish_price,
                order.grab_price,
                order.ref,
            )

        return await self._transition(
            order_id,
            event,
            actor_id,
            changes=lambda o, now: {"cancelled_at": now},
            effect=effect,
        )

    async def _transition(
        self,
        order_id: str,
        event: OrderEvent,
        actor_id: str,
        changes: Changes,
        check: Check | None = None,
        effect: Effect | None = None,
        extra_accounts: list[str] | None = None,
        detail: str = "",
    ) -> Result[Order]:
        # Unlocked snapshot only tells us which account locks to take
        async with self._runner.session_factory() as db:
            snapshot = await self._repo.get_order(db, order_id)
        if snapshot is None:
            return Result.failure(OrderNotFoundError(order_id))
        locked_accounts = set(snapshot.parties()) | set(extra_accounts or [])

        async def body(db: AsyncSession) -> tuple[Order, str]:
            order = await self._repo.get_order(db, order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            target = next_status(order.id, order.status, event)
            if not set(order.parties()) <= locked_accounts:
                # Grabbed between snapshot and lock: caller retries
                raise BusyError(f"order:{order_id}")
            if check is not None:
                check(order)
            now = utc_now()
            updated = await self._repo.transition(
                db, order.id, order.status, target.value, changes(order, now)
            )
            if updated is None:
                raise InvalidTransitionError(order.id, order.status, event.value)
            if effect is not None:
                await effect(db, updated)
            await self._repo.insert_transition(
                db,
                OrderTransition(
                    order_id=order.id,
                    from_status=order.status,
                    to_status=target.value,
                    event=event.value,
                    actor_id=actor_id,
                    detail=detail,
                    created_at=now,
                ),
            )
            return updated, order.status

        outcome: Result[tuple[Order, str]] = await self._runner.run(
            f"order.{event.value.lower()}",
            body,
            order_ids=[order_id],
            account_ids=sorted(locked_accounts),
        )
        if not outcome.ok:
            return Result.failure(outcome.error)
        order, from_status = outcome.value
        logger.info(
            "Order %s: %s -> %s by %s (event=%s)",
            order.order_no,
            from_status,
            order.status,
            actor_id,
            event.value,
        )
        await self._after_commit(order, event, actor_id, from_status)
        return Result.success(order)

    # ------------------------------------------------------------------
    # Side effects (after commit, never fail the transition)
    # ------------------------------------------------------------------

    async def _audit(self, actor_id: str, action: str, details: str) -> None:
        await self._sink.record(
            AuditEntry(
                operator_id=actor_id,
                operator_name=self._directory.display_name(actor_id),
                module="ORDER",
                action=action,
                details=details,
            )
        )

    async def _after_commit(
        self, order: Order, event: OrderEvent, actor_id: str, from_status: str
    ) -> None:
        await self._audit(
            actor_id,
            _AUDIT_ACTIONS[event],
            f"Order {order.order_no}: {from_status} -> {order.status}",
        )
        category = NotificationCategory.ORDER.value
        publisher, grabber = order.publisher_id, order.grabber_id
        no = order.order_no
        if event is OrderEvent.GRAB:
            await self._sink.notify(
                publisher, "Order grabbed",
                f"Order {no} was grabbed by {self._directory.display_name(actor_id)}", category,
            )
        elif event is OrderEvent.COMPLETE:
            await self._sink.notify(publisher, "Order completed", f"Order {no} is complete", category)
        elif event is OrderEvent.REPORT_EXCEPTION:
            await self._sink.notify(
                publisher, "Exception reported",
                f"Order {no}: {order.exception_reason}. Confirm or appeal.", category,
            )
        elif event is OrderEvent.APPEAL:
            await self._sink.notify(
                grabber, "Exception appealed", f"Order {no} escalated to mediation", category
            )
            await self._sink.broadcast(
                self._arbiter_roles, "Mediation required",
                f"Order {no} needs a ruling: {order.appeal_reason}", category,
            )
        elif order.status == OrderStatus.CANCELLED.value:
            await self._sink.notify(
                grabber, "Order cancelled",
                f"Order {no} cancelled, {order.grab_price} cents refunded", category,
            )
            await self._sink.notify(publisher, "Order cancelled", f"Order {no} cancelled", category)
        elif order.status == OrderStatus.SETTLED.value:
            await self._sink.notify(
                publisher, "Order settled",
                f"Order {no} settled, {order.publish_price} cents released", category,
            )
            await self._sink.notify(grabber, "Order settled", f"Order {no} settled", category)


# ---------------------------------------------------------------------------
# Composition root
# ---------------------------------------------------------------------------


@dataclass
class Engine:
    session_factory: async_sessionmaker[AsyncSession]
    locks: KeyedLockManager
    runner: TransactionRunner
    sink: SqlNotificationSink
    ledger: LedgerService
    matcher: CommissionRuleMatcher
    orders: OrderLifecycleService
    funding: FundingService
    directory: IdentityDirectoryProtocol = field(default_factory=MappingIdentityDirectory)


def build_engine(
    session_factory: async_sessionmaker[AsyncSession],
    config: Settings | None = None,
    directory: IdentityDirectoryProtocol | None = None,
) -> Engine:
    config = config or default_settings
    directory = directory or MappingIdentityDirectory()
    locks = KeyedLockManager(config.LOCK_TIMEOUT_SECONDS)
    runner = TransactionRunner(session_factory, locks)
    sink = SqlNotificationSink(session_factory)
    ledger = LedgerService(runner, sink=sink, directory=directory)
    runner.set_fatal_handler(ledger.halt_accounts)
    matcher = CommissionRuleMatcher(CommissionRuleRepository(), config.DEFAULT_COMMISSION_RATE_BPS)
    orders = OrderLifecycleService(
        runner,
        ledger.ledger,
        matcher,
        sink=sink,
        directory=directory,
        arbiter_roles=config.ARBITER_ROLES,
        auto_settle_days=config.AUTO_SETTLE_DAYS,
    )
    funding = FundingService(runner, ledger.ledger, sink=sink, directory=directory)
    return Engine(
        session_factory=session_factory,
        locks=locks,
        runner=runner,
        sink=sink,
        ledger=ledger,
        matcher=matcher,
        orders=orders,
        funding=funding,
        directory=directory,
    )
