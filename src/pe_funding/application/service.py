"""FundingService: money entering and leaving the system.

Top-ups credit available balance once finance approves them. Withdrawals
hold the amount in frozen balance at request time; approval pays it out of
the system, rejection returns it to available.
"""

import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from src.pe_common.cents import cents_to_display, validate_amount
from src.pe_common.datetime_utils import utc_now
from src.pe_common.enums import FlowCategory, FundingStatus, NotificationCategory
from src.pe_common.errors import (
    InvalidAmountError,
    RequestAlreadyProcessedError,
    RequestNotFoundError,
)
from src.pe_common.id_generator import generate_id
from src.pe_common.result import Result
from src.pe_common.unit_of_work import TransactionRunner
from src.pe_funding.domain.models import FinanceOverview, FundingKind, FundingRequest
from src.pe_funding.domain.repository import FundingRepositoryProtocol
from src.pe_funding.infrastructure.persistence import FundingRepository
from src.pe_ledger.domain.ledger import Ledger
from src.pe_notify.domain.models import AuditEntry
from src.pe_notify.domain.sink import (
    IdentityDirectoryProtocol,
    MappingIdentityDirectory,
    NotificationSinkProtocol,
    SafeDirectory,
    SafeSink,
)

logger = logging.getLogger(__name__)

ReviewEffect = Callable[[AsyncSession, FundingRequest], Awaitable[None]]


def _check_amount(amount: int) -> None:
    try:
        validate_amount(amount)
    except ValueError:
        raise InvalidAmountError(amount) from None


class FundingService:
    def __init__(
        self,
        runner: TransactionRunner,
        ledger: Ledger,
        repo: FundingRepositoryProtocol | None = None,
        sink: NotificationSinkProtocol | None = None,
        directory: IdentityDirectoryProtocol | None = None,
    ) -> None:
        self._runner = runner
        self._ledger = ledger
        self._repo: FundingRepositoryProtocol = repo or FundingRepository()
        self._sink = SafeSink(sink)
        self._directory = SafeDirectory(directory or MappingIdentityDirectory())

    # ------------------------------------------------------------------
    # Top-ups
    # ------------------------------------------------------------------

    async def request_top_up(
        self, account_id: str, amount: int, proof_url: str | None = None
    ) -> Result[FundingRequest]:
        async def body(db: AsyncSession) -> FundingRequest:
            _check_amount(amount)
            request = FundingRequest(
                id=generate_id(),
                kind=FundingKind.TOPUP.value,
                account_id=account_id,
                amount=amount,
                status=FundingStatus.PENDING.value,
                proof_url=proof_url,
                created_at=utc_now(),
            )
            await self._repo.insert_request(db, request)
            return request

        result = await self._runner.run("funding.request_top_up", body, account_ids=[account_id])
        if result.ok:
            await self._after(
                account_id, account_id, "TOPUP_REQUEST", result.value,
                "Top-up submitted", f"Top-up of {cents_to_display(amount)} awaits review",
            )
        return result

    async def review_top_up(
        self,
        request_id: str,
        approved: bool,
        operator_id: str,
        reject_reason: str | None = None,
    ) -> Result[FundingRequest]:
        async def effect(db: AsyncSession, request: FundingRequest) -> None:
            if approved:
                await self._ledger.credit(
                    db,
                    request.account_id,
                    request.amount,
                    FlowCategory.TOPUP.value,
                    description=f"Top-up approved: {request.id}",
                    proof_url=request.proof_url,
                )

        result = await self._review(
            FundingKind.TOPUP, request_id, approved, operator_id, None, reject_reason, effect
        )
        if result.ok:
            request = result.value
            verdict = "approved" if approved else f"rejected: {reject_reason or '-'}"
            await self._after(
                operator_id, request.account_id,
                "TOPUP_APPROVE" if approved else "TOPUP_REJECT", request,
                "Top-up reviewed", f"Top-up of {cents_to_display(request.amount)} {verdict}",
            )
        return result

    async def manual_top_up(
        self,
        account_id: str,
        amount: int,
        operator_id: str,
        remark: str | None = None,
        proof_url: str | None = None,
    ) -> Result[FundingRequest]:
        """Finance credits an account directly; recorded as an approved request."""

        async def body(db: AsyncSession) -> FundingRequest:
            _check_amount(amount)
            now = utc_now()
            request = FundingRequest(
                id=generate_id(),
                kind=FundingKind.TOPUP.value,
                account_id=account_id,
                amount=amount,
                status=FundingStatus.APPROVED.value,
                proof_url=proof_url,
                remark=remark,
                audit_user=operator_id,
                audit_time=now,
                created_at=now,
            )
            await self._repo.insert_request(db, request)
            await self._ledger.credit(
                db,
                account_id,
                amount,
                FlowCategory.TOPUP.value,
                description=remark or f"Manual top-up: {request.id}",
                proof_url=proof_url,
            )
            return request

        result = await self._runner.run("funding.manual_top_up", body, account_ids=[account_id])
        if result.ok:
            await self._after(
                operator_id, account_id, "TOPUP_MANUAL", result.value,
                "Account credited", f"{cents_to_display(amount)} credited by finance",
            )
        return result

    # ------------------------------------------------------------------
    # Withdrawals
    # ------------------------------------------------------------------

    async def request_withdrawal(self, account_id: str, amount: int) -> Result[FundingRequest]:
        async def body(db: AsyncSession) -> FundingRequest:
            _check_amount(amount)
            request = FundingRequest(
                id=generate_id(),
                kind=FundingKind.WITHDRAWAL.value,
                account_id=account_id,
                amount=amount,
                status=FundingStatus.PENDING.value,
                created_at=utc_now(),
            )
            await self._ledger.hold_for_withdrawal(db, account_id, amount, request.id)
            await self._repo.insert_request(db, request)
            return request

        result = await self._runner.run(
            "funding.request_withdrawal", body, account_ids=[account_id]
        )
        if result.ok:
            await self._after(
                account_id, account_id, "WITHDRAW_REQUEST", result.value,
                "Withdrawal submitted", f"{cents_to_display(amount)} held pending review",
            )
        return result

    async def review_withdrawal(
        self,
        request_id: str,
        approved: bool,
        operator_id: str,
        proof_url: str | None = None,
        reject_reason: str | None = None,
    ) -> Result[FundingRequest]:
        async def effect(db: AsyncSession, request: FundingRequest) -> None:
            await self._ledger.release_withdrawal_hold(
                db, request.account_id, request.amount, request.id, approved, proof_url
            )

        result = await self._review(
            FundingKind.WITHDRAWAL, request_id, approved, operator_id,
            proof_url, reject_reason, effect,
        )
        if result.ok:
            request = result.value
            verdict = "paid out" if approved else f"rejected: {reject_reason or '-'}"
            await self._after(
                operator_id, request.account_id,
                "WITHDRAW_APPROVE" if approved else "WITHDRAW_REJECT", request,
                "Withdrawal reviewed",
                f"Withdrawal of {cents_to_display(request.amount)} {verdict}",
            )
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_requests(
        self,
        kind: FundingKind,
        account_id: str | None = None,
        status: str | None = None,
        limit: int = 50,
    ) -> list[FundingRequest]:
        async with self._runner.session_factory() as db:
            return await self._repo.list_requests(db, kind, account_id, status, limit)

    async def finance_overview(self) -> FinanceOverview:
        async with self._runner.session_factory() as db:
            return await self._repo.finance_overview(db)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _review(
        self,
        kind: FundingKind,
        request_id: str,
        approved: bool,
        operator_id: str,
        proof_url: str | None,
        reject_reason: str | None,
        effect: ReviewEffect,
    ) -> Result[FundingRequest]:
        async with self._runner.session_factory() as db:
            snapshot = await self._repo.get_request(db, kind, request_id)
        if snapshot is None:
            return Result.failure(RequestNotFoundError(request_id))

        async def body(db: AsyncSession) -> FundingRequest:
            current = await self._repo.get_request(db, kind, request_id)
            if current is None:
                raise RequestNotFoundError(request_id)
            if not current.is_pending:
                raise RequestAlreadyProcessedError(request_id, current.status)
            new_status = FundingStatus.APPROVED if approved else FundingStatus.REJECTED
            reviewed = await self._repo.review_request(
                db,
                kind,
                request_id,
                new_status.value,
                operator_id,
                utc_now(),
                proof_url,
                None if approved else reject_reason,
            )
            if reviewed is None:
                raise RequestAlreadyProcessedError(request_id, current.status)
            await effect(db, reviewed)
            return reviewed

        return await self._runner.run(
            f"funding.review_{kind.value.lower()}",
            body,
            order_ids=[f"funding-{request_id}"],
            account_ids=[snapshot.account_id],
        )

    async def _after(
        self,
        operator_id: str,
        account_id: str,
        action: str,
        request: FundingRequest,
        title: str,
        content: str,
    ) -> None:
        logger.info(
            "Funding %s: request=%s account=%s amount=%d status=%s",
            action,
            request.id,
            account_id,
            request.amount,
            request.status,
        )
        await self._sink.record(
            AuditEntry(
                operator_id=operator_id,
                operator_name=self._directory.display_name(operator_id),
                module="FUNDING",
                action=action,
                details=f"{content} (request {request.id}, account {account_id})",
            )
        )
        await self._sink.notify(account_id, title, content, NotificationCategory.FINANCE.value)
