"""Ledger primitives: run inside the caller's transaction.

Each primitive is one guarded balance update plus at most one flow record.
They raise AppError subclasses; the caller's TransactionRunner turns those
into Results and rolls the whole unit back.

Flow records mirror available-balance movements only. Money that enters or
leaves the frozen balance without touching available (escrow credit, escrow
void, withdrawal payout) has no flow, so replaying an account's flows always
reproduces its available balance.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pe_common.cents import validate_amount
from src.pe_common.datetime_utils import utc_now
from src.pe_common.enums import FlowCategory, FlowDirection
from src.pe_common.errors import (
    AccountHaltedError,
    InconsistentStateError,
    InsufficientFundsError,
    InvalidAmountError,
    InvariantViolationError,
)
from src.pe_common.id_generator import generate_id
from src.pe_ledger.domain.models import Account, FlowRecord, LedgerMutation, OrderRef
from src.pe_ledger.domain.repository import AccountRepositoryProtocol

logger = logging.getLogger(__name__)

_DESCRIPTIONS: dict[str, str] = {
    FlowCategory.GRAB.value: "Grab payment",
    FlowCategory.SETTLEMENT.value: "Settlement income",
    FlowCategory.REFUND.value: "Refund for cancelled order",
    FlowCategory.TOPUP.value: "Top-up credited",
    FlowCategory.WITHDRAWAL.value: "Withdrawal",
}


def _describe(category: str, order_ref: OrderRef | None, description: str | None) -> str:
    if description:
        return description
    prefix = _DESCRIPTIONS.get(category, category)
    return order_ref.describe(prefix) if order_ref else prefix


def check_non_negative(account: Account) -> None:
    """Post-condition of every ledger write."""
    if account.available_balance < 0 or account.frozen_balance < 0:
        raise InvariantViolationError(
            f"account {account.account_id} went negative: "
            f"available={account.available_balance} frozen={account.frozen_balance}",
            account.account_id,
        )


def _check_amount(amount: int) -> None:
    try:
        validate_amount(amount)
    except ValueError:
        raise InvalidAmountError(amount) from None


class Ledger:
    def __init__(self, repo: AccountRepositoryProtocol) -> None:
        self._repo = repo

    @property
    def repo(self) -> AccountRepositoryProtocol:
        return self._repo

    async def _apply(
        self,
        db: AsyncSession,
        account_id: str,
        available_delta: int,
        frozen_delta: int,
    ) -> Account:
        before = await self._repo.get_or_open_account(db, account_id)
        if before.is_halted:
            raise AccountHaltedError(account_id)
        account = await self._repo.apply_delta(db, account_id, available_delta, frozen_delta)
        if account is None:
            # Guard rejected the write: re-read to report the real reason
            current = await self._repo.get_account(db, account_id) or before
            if current.is_halted:
                raise AccountHaltedError(account_id)
            if current.available_balance + available_delta < 0:
                raise InsufficientFundsError(-available_delta, current.available_balance)
            raise InconsistentStateError(
                f"account {account_id} frozen={current.frozen_balance} "
                f"cannot release {-frozen_delta}",
                account_id,
            )
        check_non_negative(account)
        return account

    async def _append_flow(
        self,
        db: AsyncSession,
        account: Account,
        amount: int,
        category: str,
        order_ref: OrderRef | None,
        description: str | None,
        proof_url: str | None,
    ) -> FlowRecord:
        flow = FlowRecord(
            id=generate_id(),
            account_id=account.account_id,
            amount=amount,
            direction=(FlowDirection.INCOME if amount > 0 else FlowDirection.EXPENSE).value,
            category=FlowCategory(category).value,
            balance_after=account.available_balance,
            description=_describe(category, order_ref, description),
            order_id=order_ref.order_id if order_ref else None,
            order_no=order_ref.order_no if order_ref else None,
            proof_url=proof_url,
            created_at=utc_now(),
        )
        return await self._repo.insert_flow(db, flow)

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    async def debit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        category: str,
        order_ref: OrderRef | None = None,
        description: str | None = None,
    ) -> LedgerMutation:
        """available -= amount, EXPENSE flow. InsufficientFunds if available < amount."""
        _check_amount(amount)
        account = await self._apply(db, account_id, -amount, 0)
        flow = await self._append_flow(db, account, -amount, category, order_ref, description, None)
        return LedgerMutation(accounts={account_id: account}, flows=[flow])

    async def credit_to_frozen(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        category: str,
        order_ref: OrderRef | None = None,
    ) -> LedgerMutation:
        """frozen += amount. No flow: escrowed funds are not yet earned."""
        _check_amount(amount)
        account = await self._apply(db, account_id, 0, amount)
        logger.debug(
            "Escrow credit: account=%s amount=%d category=%s order=%s",
            account_id,
            amount,
            category,
            order_ref.order_no if order_ref else None,
        )
        return LedgerMutation(accounts={account_id: account}, flows=[])

    async def release_frozen_to_available(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        category: str,
        order_ref: OrderRef | None = None,
    ) -> LedgerMutation:
        """frozen -> available, INCOME flow. InconsistentState if frozen < amount."""
        _check_amount(amount)
        account = await self._apply(db, account_id, amount, -amount)
        flow = await self._append_flow(db, account, amount, category, order_ref, None, None)
        return LedgerMutation(accounts={account_id: account}, flows=[flow])

    async def release_frozen_as_void(
        self,
        db: AsyncSession,
        payer_id: str,
        payee_id: str,
        void_amount: int,
        refund_amount: int,
        order_ref: OrderRef | None = None,
    ) -> LedgerMutation:
        """Void payer's escrow (frozen only, no flow) and refund payee (REFUND flow).

        refund_amount may exceed void_amount: the difference is the platform
        fee that was never escrowed and is given back out of platform revenue.
        """
        _check_amount(void_amount)
        _check_amount(refund_amount)
        payer = await self._apply(db, payer_id, 0, -void_amount)
        refund = await self.credit(
            db, payee_id, refund_amount, FlowCategory.REFUND.value, order_ref
        )
        accounts = {payer_id: payer, **refund.accounts}
        return LedgerMutation(accounts=accounts, flows=refund.flows)

    async def credit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        category: str,
        order_ref: OrderRef | None = None,
        description: str | None = None,
        proof_url: str | None = None,
    ) -> LedgerMutation:
        """available += amount, INCOME flow."""
        _check_amount(amount)
        account = await self._apply(db, account_id, amount, 0)
        flow = await self._append_flow(
            db, account, amount, category, order_ref, description, proof_url
        )
        return LedgerMutation(accounts={account_id: account}, flows=[flow])

    # ------------------------------------------------------------------
    # Withdrawal holds
    # ------------------------------------------------------------------

    async def hold_for_withdrawal(
        self, db: AsyncSession, account_id: str, amount: int, request_id: str
    ) -> LedgerMutation:
        """available -> frozen with an EXPENSE WITHDRAWAL flow at request time."""
        _check_amount(amount)
        account = await self._apply(db, account_id, -amount, amount)
        flow = await self._append_flow(
            db,
            account,
            -amount,
            FlowCategory.WITHDRAWAL.value,
            None,
            f"Withdrawal requested: {request_id}",
            None,
        )
        return LedgerMutation(accounts={account_id: account}, flows=[flow])

    async def release_withdrawal_hold(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        request_id: str,
        approved: bool,
        proof_url: str | None = None,
    ) -> LedgerMutation:
        """Approved: hold leaves the system. Rejected: hold returns to available."""
        _check_amount(amount)
        if approved:
            account = await self._apply(db, account_id, 0, -amount)
            logger.info(
                "Withdrawal paid out: account=%s amount=%d request=%s proof=%s",
                account_id,
                amount,
                request_id,
                proof_url,
            )
            return LedgerMutation(accounts={account_id: account}, flows=[])
        account = await self._apply(db, account_id, amount, -amount)
        flow = await self._append_flow(
            db,
            account,
            amount,
            FlowCategory.WITHDRAWAL.value,
            None,
            f"Withdrawal rejected, funds returned: {request_id}",
            None,
        )
        return LedgerMutation(accounts={account_id: account}, flows=[flow])
