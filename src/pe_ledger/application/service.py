"""LedgerService: public, self-contained ledger operations.

Each mutating method takes the account locks, runs one ledger primitive in
its own transaction and returns a Result. The Order State Machine does not
go through here: it calls the same primitives (`service.ledger`) inside its
own transaction so that a whole transition commits as one unit.

Read operations (balance, flows, reconciliation) run without locks against
whatever is committed; never use them to decide a mutation.
"""

import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from src.pe_common.enums import AccountStatus
from src.pe_common.errors import FatalError
from src.pe_common.result import Result
from src.pe_common.unit_of_work import TransactionRunner
from src.pe_ledger.application.schemas import (
    FlowItem,
    FlowPage,
    ReconciliationResponse,
    cursor_decode,
    cursor_encode,
)
from src.pe_ledger.domain.invariants import verify_account_invariants
from src.pe_ledger.domain.ledger import Ledger
from src.pe_ledger.domain.models import Account, LedgerMutation, OrderRef
from src.pe_ledger.domain.repository import AccountRepositoryProtocol
from src.pe_ledger.infrastructure.persistence import AccountRepository
from src.pe_notify.domain.models import AuditEntry
from src.pe_notify.domain.sink import (
    IdentityDirectoryProtocol,
    MappingIdentityDirectory,
    NotificationSinkProtocol,
    SafeDirectory,
    SafeSink,
)

logger = logging.getLogger(__name__)

SYSTEM_OPERATOR = "system"


class LedgerService:
    def __init__(
        self,
        runner: TransactionRunner,
        repo: AccountRepositoryProtocol | None = None,
        sink: NotificationSinkProtocol | None = None,
        directory: IdentityDirectoryProtocol | None = None,
    ) -> None:
        self._runner = runner
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()
        self._ledger = Ledger(self._repo)
        self._sink = SafeSink(sink)
        self._directory = SafeDirectory(directory or MappingIdentityDirectory())

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_balance(self, account_id: str) -> Account:
        async with self._runner.session_factory() as db:
            account = await self._repo.get_account(db, account_id)
        if account is None:
            # Accounts open lazily on first movement; report an empty wallet
            return Account(
                account_id=account_id,
                available_balance=0,
                frozen_balance=0,
                status=AccountStatus.ACTIVE.value,
                version=0,
            )
        return account

    async def list_flows(
        self,
        account_id: str,
        cursor: str | None = None,
        limit: int = 20,
        category: str | None = None,
    ) -> FlowPage:
        cursor_id = cursor_decode(cursor)
        async with self._runner.session_factory() as db:
            # Fetch limit+1 to detect has_more without a COUNT(*) query
            flows = await self._repo.list_flows(db, account_id, cursor_id, limit + 1, category)
        has_more = len(flows) > limit
        page = flows[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return FlowPage(
            items=[FlowItem.from_flow(f) for f in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def replay_balance(self, account_id: str) -> int:
        """Available balance rebuilt from the flow log alone."""
        async with self._runner.session_factory() as db:
            return await self._repo.sum_flows(db, account_id)

    async def reconcile(self, account_id: str) -> ReconciliationResponse:
        async with self._runner.session_factory() as db:
            violations = await verify_account_invariants(db, account_id)
        return ReconciliationResponse(account_id=account_id, violations=violations)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def debit(
        self,
        account_id: str,
        amount: int,
        category: str,
        order_ref: OrderRef | None = None,
        operator_id: str = SYSTEM_OPERATOR,
    ) -> Result[LedgerMutation]:
        async def body(db: AsyncSession) -> LedgerMutation:
            return await self._ledger.debit(db, account_id, amount, category, order_ref)

        return await self._mutate("DEBIT", body, [account_id], operator_id, amount, order_ref)

    async def credit_to_frozen(
        self,
        account_id: str,
        amount: int,
        category: str,
        order_ref: OrderRef | None = None,
        operator_id: str = SYSTEM_OPERATOR,
    ) -> Result[LedgerMutation]:
        async def body(db: AsyncSession) -> LedgerMutation:
            return await self._ledger.credit_to_frozen(db, account_id, amount, category, order_ref)

        return await self._mutate(
            "CREDIT_TO_FROZEN", body, [account_id], operator_id, amount, order_ref
        )

    async def release_frozen_to_available(
        self,
        account_id: str,
        amount: int,
        category: str,
        order_ref: OrderRef | None = None,
        operator_id: str = SYSTEM_OPERATOR,
    ) -> Result[LedgerMutation]:
        async def body(db: AsyncSession) -> LedgerMutation:
            return await self._ledger.release_frozen_to_available(
                db, account_id, amount, category, order_ref
            )

        return await self._mutate(
            "RELEASE_FROZEN", body, [account_id], operator_id, amount, order_ref
        )

    async def release_frozen_as_void(
        self,
        payer_id: str,
        payee_id: str,
        void_amount: int,
        refund_amount: int,
        order_ref: OrderRef | None = None,
        operator_id: str = SYSTEM_OPERATOR,
    ) -> Result[LedgerMutation]:
        async def body(db: AsyncSession) -> LedgerMutation:
            return await self._ledger.release_frozen_as_void(
                db, payer_id, payee_id, void_amount, refund_amount, order_ref
            )

        return await self._mutate(
            "VOID_AND_REFUND", body, [payer_id, payee_id], operator_id, refund_amount, order_ref
        )

    async def credit(
        self,
        account_id: str,
        amount: int,
        category: str,
        order_ref: OrderRef | None = None,
        operator_id: str = SYSTEM_OPERATOR,
        description: str | None = None,
        proof_url: str | None = None,
    ) -> Result[LedgerMutation]:
        async def body(db: AsyncSession) -> LedgerMutation:
            return await self._ledger.credit(
                db, account_id, amount, category, order_ref, description, proof_url
            )

        return await self._mutate("CREDIT", body, [account_id], operator_id, amount, order_ref)

    async def _mutate(
        self,
        action: str,
        body: Callable[[AsyncSession], Awaitable[LedgerMutation]],
        account_ids: list[str],
        operator_id: str,
        amount: int,
        order_ref: OrderRef | None,
    ) -> Result[LedgerMutation]:
        result: Result[LedgerMutation] = await self._runner.run(
            f"ledger.{action.lower()}", body, account_ids=account_ids
        )
        if result.ok:
            ref = f" order={order_ref.order_no}" if order_ref else ""
            await self._sink.record(
                AuditEntry(
                    operator_id=operator_id,
                    operator_name=self._directory.display_name(operator_id),
                    module="LEDGER",
                    action=action,
                    details=f"{action} {amount} cents on {', '.join(account_ids)}{ref}",
                )
            )
        return result

    # ------------------------------------------------------------------
    # Escalation
    # ------------------------------------------------------------------

    async def halt_accounts(self, account_ids: list[str], error: FatalError) -> None:
        """Stop all further mutation on accounts a fatal failure left broken."""
        async with self._runner.session_factory() as db, db.begin():
            halted = await self._repo.mark_halted(db, account_ids)
        logger.critical("Halted %d account(s) %s after: %s", halted, account_ids, error.message)
        await self._sink.record(
            AuditEntry(
                operator_id=SYSTEM_OPERATOR,
                operator_name=SYSTEM_OPERATOR,
                module="LEDGER",
                action="HALT",
                details=f"Accounts {', '.join(account_ids)} halted: {error.message}",
            )
        )
