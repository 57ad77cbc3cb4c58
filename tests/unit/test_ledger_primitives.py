"""Unit tests for Ledger primitives with a mocked repository."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pe_common.errors import (
    AccountHaltedError,
    InconsistentStateError,
    InsufficientFundsError,
    InvalidAmountError,
    InvariantViolationError,
)
from src.pe_ledger.domain.ledger import Ledger
from src.pe_ledger.domain.models import Account, OrderRef

REF = OrderRef(order_id="o1", order_no="ORD20260115000010000000001")


def _make_account(**kwargs: Any) -> Account:
    defaults: dict[str, Any] = {
        "account_id": "acc-1",
        "available_balance": 1_000_000,
        "frozen_balance": 0,
        "status": "ACTIVE",
        "version": 1,
    }
    defaults.update(kwargs)
    return Account(**defaults)


def _make_repo(before: Account, after: Account | None) -> AsyncMock:
    repo = AsyncMock()
    repo.get_or_open_account.return_value = before
    repo.get_account.return_value = before
    repo.apply_delta.return_value = after
    repo.insert_flow.side_effect = lambda db, flow: flow
    return repo


class TestDebit:
    async def test_debit_writes_expense_flow(self) -> None:
        after = _make_account(available_balance=180_000)
        repo = _make_repo(_make_account(), after)
        ledger = Ledger(repo)

        mutation = await ledger.debit(MagicMock(), "acc-1", 820_000, "GRAB", REF)

        repo.apply_delta.assert_awaited_once()
        assert repo.apply_delta.await_args.args[1:] == ("acc-1", -820_000, 0)
        (flow,) = mutation.flows
        assert flow.amount == -820_000
        assert flow.direction == "EXPENSE"
        assert flow.category == "GRAB"
        assert flow.balance_after == 180_000
        assert flow.order_no == REF.order_no
        assert flow.description == f"Grab payment: {REF.order_no}"

    async def test_insufficient_funds(self) -> None:
        repo = _make_repo(_make_account(available_balance=1000), None)
        ledger = Ledger(repo)

        with pytest.raises(InsufficientFundsError) as exc_info:
            await ledger.debit(MagicMock(), "acc-1", 820_000, "GRAB", REF)

        assert exc_info.value.available == 1000
        repo.insert_flow.assert_not_awaited()

    async def test_halted_account_rejected(self) -> None:
        repo = _make_repo(_make_account(status="HALTED"), None)
        ledger = Ledger(repo)

        with pytest.raises(AccountHaltedError):
            await ledger.debit(MagicMock(), "acc-1", 100, "GRAB")
        repo.apply_delta.assert_not_awaited()

    @pytest.mark.parametrize("amount", [0, -1])
    async def test_invalid_amount(self, amount: int) -> None:
        repo = _make_repo(_make_account(), None)
        with pytest.raises(InvalidAmountError):
            await Ledger(repo).debit(MagicMock(), "acc-1", amount, "GRAB")
        repo.get_or_open_account.assert_not_awaited()


class TestFrozenMovements:
    async def test_credit_to_frozen_has_no_flow(self) -> None:
        repo = _make_repo(_make_account(), _make_account(frozen_balance=800_000))

        mutation = await Ledger(repo).credit_to_frozen(MagicMock(), "acc-1", 800_000, "GRAB", REF)

        assert mutation.flows == []
        assert mutation.account("acc-1").frozen_balance == 800_000
        repo.insert_flow.assert_not_awaited()

    async def test_release_to_available_writes_income(self) -> None:
        repo = _make_repo(
            _make_account(frozen_balance=800_000),
            _make_account(available_balance=1_800_000),
        )

        mutation = await Ledger(repo).release_frozen_to_available(
            MagicMock(), "acc-1", 800_000, "SETTLEMENT", REF
        )

        assert repo.apply_delta.await_args.args[1:] == ("acc-1", 800_000, -800_000)
        assert mutation.flows[0].direction == "INCOME"
        assert mutation.flows[0].category == "SETTLEMENT"

    async def test_release_more_than_frozen_is_inconsistent(self) -> None:
        repo = _make_repo(_make_account(frozen_balance=100), None)

        with pytest.raises(InconsistentStateError) as exc_info:
            await Ledger(repo).release_frozen_to_available(
                MagicMock(), "acc-1", 800_000, "SETTLEMENT", REF
            )
        assert exc_info.value.account_ids == ("acc-1",)

    async def test_negative_returned_row_is_invariant_violation(self) -> None:
        repo = _make_repo(_make_account(), _make_account(available_balance=-1))

        with pytest.raises(InvariantViolationError) as exc_info:
            await Ledger(repo).credit(MagicMock(), "acc-1", 100, "TOPUP")
        assert exc_info.value.account_ids == ("acc-1",)


class TestVoid:
    async def test_void_and_refund(self) -> None:
        payer = _make_account(account_id="pub", frozen_balance=800_000)
        payee = _make_account(account_id="grab", available_balance=180_000)
        repo = AsyncMock()
        repo.get_or_open_account.side_effect = [payer, payee]
        repo.apply_delta.side_effect = [
            _make_account(account_id="pub", frozen_balance=0),
            _make_account(account_id="grab", available_balance=1_000_000),
        ]
        repo.insert_flow.side_effect = lambda db, flow: flow

        mutation = await Ledger(repo).release_frozen_as_void(
            MagicMock(), "pub", "grab", 800_000, 820_000, REF
        )

        deltas = [c.args[1:] for c in repo.apply_delta.await_args_list]
        assert deltas == [("pub", 0, -800_000), ("grab", 820_000, 0)]
        (flow,) = mutation.flows
        assert flow.account_id == "grab"
        assert flow.category == "REFUND"
        assert flow.amount == 820_000
        assert set(mutation.accounts) == {"pub", "grab"}


class TestWithdrawalHold:
    async def test_hold_moves_available_to_frozen(self) -> None:
        repo = _make_repo(
            _make_account(), _make_account(available_balance=900_000, frozen_balance=100_000)
        )

        mutation = await Ledger(repo).hold_for_withdrawal(MagicMock(), "acc-1", 100_000, "w1")

        assert repo.apply_delta.await_args.args[1:] == ("acc-1", -100_000, 100_000)
        assert mutation.flows[0].category == "WITHDRAWAL"
        assert mutation.flows[0].amount == -100_000

    async def test_approved_payout_has_no_flow(self) -> None:
        repo = _make_repo(_make_account(frozen_balance=100_000), _make_account())

        mutation = await Ledger(repo).release_withdrawal_hold(
            MagicMock(), "acc-1", 100_000, "w1", approved=True
        )

        assert repo.apply_delta.await_args.args[1:] == ("acc-1", 0, -100_000)
        assert mutation.flows == []

    async def test_rejected_returns_funds(self) -> None:
        repo = _make_repo(_make_account(frozen_balance=100_000), _make_account())

        mutation = await Ledger(repo).release_withdrawal_hold(
            MagicMock(), "acc-1", 100_000, "w1", approved=False
        )

        assert repo.apply_delta.await_args.args[1:] == ("acc-1", 100_000, -100_000)
        assert mutation.flows[0].amount == 100_000
