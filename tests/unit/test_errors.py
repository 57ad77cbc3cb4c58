"""Unit tests for pe_common.errors: codes, HTTP statuses and hierarchy."""

import pytest

from src.pe_common.errors import (
    AccountHaltedError,
    AppError,
    BusyError,
    DuplicateCustomerLeadError,
    FatalError,
    InconsistentStateError,
    InsufficientFundsError,
    InvalidTransitionError,
    InvariantViolationError,
    OrderNotClaimableError,
    OrderNotFoundError,
    RequestAlreadyProcessedError,
)


class TestErrorCodes:
    @pytest.mark.parametrize(
        "error, code, status",
        [
            (InsufficientFundsError(100, 50), 2001, 422),
            (AccountHaltedError("a1"), 2003, 423),
            (OrderNotFoundError("o1"), 4001, 404),
            (InvalidTransitionError("o1", "SETTLED", "COMPLETE"), 4002, 409),
            (OrderNotClaimableError("o1", "already grabbed", "PROCESSING"), 4003, 409),
            (DuplicateCustomerLeadError("13800000000"), 4007, 409),
            (RequestAlreadyProcessedError("r1", "APPROVED"), 6002, 409),
            (BusyError("order:o1"), 9001, 503),
            (InconsistentStateError("frozen underflow"), 9003, 500),
        ],
    )
    def test_code_and_status(self, error: AppError, code: int, status: int) -> None:
        assert error.code == code
        assert error.http_status == status

    def test_insufficient_funds_carries_amounts(self) -> None:
        err = InsufficientFundsError(required=820000, available=1000)
        assert err.required == 820000
        assert err.available == 1000
        assert "820000" in err.message


class TestHierarchy:
    def test_not_claimable_is_invalid_transition(self) -> None:
        err = OrderNotClaimableError("o1", "already grabbed", "PROCESSING")
        assert isinstance(err, InvalidTransitionError)
        assert err.event == "GRAB"
        assert err.status == "PROCESSING"

    def test_fatal_errors(self) -> None:
        assert isinstance(InconsistentStateError("x"), FatalError)
        assert isinstance(InvariantViolationError("x"), FatalError)

    def test_fatal_errors_name_the_broken_account(self) -> None:
        assert InconsistentStateError("x", "acc-1").account_ids == ("acc-1",)
        assert InvariantViolationError("x").account_ids == ()

    def test_business_errors_are_not_fatal(self) -> None:
        assert not isinstance(InsufficientFundsError(1, 0), FatalError)
        assert not isinstance(BusyError("k"), FatalError)
