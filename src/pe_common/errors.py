"""Unified error codes and custom exceptions.

Error code ranges:
  2xxx: Ledger/Account
  3xxx: Commission
  4xxx: Order
  5xxx: Notifications
  6xxx: Funding (top-up / withdrawal)
  9xxx: System

Everything except FatalError is an expected outcome and is surfaced to the
caller as a failed Result. FatalError means a prior bug corrupted state: it
aborts the transaction and propagates.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


class FatalError(AppError):
    """Internal-consistency failure. Never retried, never turned into a Result.

    `account_ids` names the accounts whose state is known to be broken; empty
    means the failing unit could not tell which of its accounts is at fault.
    """

    account_ids: tuple[str, ...] = ()


# --- 2xxx: Ledger/Account ---

class InsufficientFundsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient funds: required {required} cents, available {available} cents",
            422,
        )


class AccountHaltedError(AppError):
    def __init__(self, account_id: str) -> None:
        super().__init__(
            2003,
            f"Account {account_id} is halted pending reconciliation",
            423,
        )


class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(2004, f"Amount must be a positive number of cents, got {amount}", 422)


# --- 3xxx: Commission ---

class InvalidCommissionRuleError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3001, f"Invalid commission rule: {detail}", 422)


# --- 4xxx: Order ---

class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4001, f"Order not found: {order_id}", 404)


class InvalidTransitionError(AppError):
    def __init__(self, order_id: str, status: str, event: str) -> None:
        self.status = status
        self.event = event
        super().__init__(
            4002,
            f"Order {order_id} in status {status} does not accept {event}",
            409,
        )


class OrderNotClaimableError(InvalidTransitionError):
    """A GRAB the order cannot accept: not PUBLISHED, or grabbed by its publisher."""

    def __init__(self, order_id: str, reason: str, status: str | None = None) -> None:
        self.status = status
        self.event = "GRAB"
        AppError.__init__(self, 4003, f"Order {order_id} cannot be grabbed: {reason}", 409)


class MissingDisputeEvidenceError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4004, f"Dispute evidence incomplete: {detail}", 422)


class EmptyAppealReasonError(AppError):
    def __init__(self) -> None:
        super().__init__(4005, "Appeal reason must not be empty", 422)


class OrderValidationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4006, f"Invalid order: {detail}", 422)


class DuplicateCustomerLeadError(AppError):
    def __init__(self, customer_phone: str) -> None:
        super().__init__(
            4007,
            f"Customer {customer_phone} already has an active order",
            409,
        )


# --- 5xxx: Notifications ---

class NotificationNotFoundError(AppError):
    def __init__(self, notification_id: int) -> None:
        super().__init__(5001, f"Notification not found: {notification_id}", 404)


# --- 6xxx: Funding ---

class RequestNotFoundError(AppError):
    def __init__(self, request_id: str) -> None:
        super().__init__(6001, f"Funding request not found: {request_id}", 404)


class RequestAlreadyProcessedError(AppError):
    def __init__(self, request_id: str, status: str) -> None:
        super().__init__(
            6002, f"Funding request {request_id} already {status}", 409
        )


# --- 9xxx: System ---

class BusyError(AppError):
    def __init__(self, resource: str) -> None:
        super().__init__(9001, f"Resource busy, retry later: {resource}", 503)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class InconsistentStateError(FatalError):
    def __init__(self, detail: str, account_id: str | None = None) -> None:
        super().__init__(9003, f"Inconsistent ledger state: {detail}", 500)
        self.account_ids = (account_id,) if account_id else ()


class InvariantViolationError(FatalError):
    def __init__(self, detail: str, account_id: str | None = None) -> None:
        super().__init__(9004, f"Invariant violated: {detail}", 500)
        self.account_ids = (account_id,) if account_id else ()
