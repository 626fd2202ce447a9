"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every precondition in the payroll kernel either holds or aborts the whole
operation.  Callers (an API layer, a scheduler running paydays, tests) need
to tell those aborts apart without parsing message strings, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

    try:
        ledger.payday(actor="0xemployee")
    except CooldownActiveError as e:
        reply(code=e.code, eligible_at=e.eligible_at)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from PayrollKernelError:

    PayrollKernelError (base)
    |
    +-- AccessError
    |   +-- UnauthorizedError
    |   +-- PausedError
    |
    +-- EmployeeError
    |   +-- EmployeeNotFoundError
    |   +-- EmployeeAlreadyExistsError
    |
    +-- TokenError
    |   +-- TokenNotFoundError
    |   +-- TokenAlreadyExistsError
    |   +-- TokenLimitExceededError
    |
    +-- ValidationError
    |   +-- InvalidArgumentError
    |   +-- AllocationOverflowError
    |   +-- ExchangeRateNotSetError
    |
    +-- CadenceError
    |   +-- CooldownActiveError
    |
    +-- SettlementError
    |   +-- TransferFailedError
    |
    +-- ConcurrencyError
    |   +-- ReentrancyError
    |
    +-- LedgerNotInitializedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Access          | UNAUTHORIZED                | Caller is not owner / oracle / employee
                | PAUSED                      | Mutating call while the ledger is paused
----------------|-----------------------------|-----------------------------------------
Employee        | EMPLOYEE_NOT_FOUND          | Id never allocated or tombstoned
                | EMPLOYEE_ALREADY_EXISTS     | Identity already has an active record
----------------|-----------------------------|-----------------------------------------
Token           | TOKEN_NOT_FOUND             | Address is not an accepted token
                | TOKEN_ALREADY_EXISTS        | Address already accepted
                | TOKEN_LIMIT_EXCEEDED        | Accepted-token cap would be exceeded
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_ARGUMENT            | Mismatched lengths, negatives, duplicates
                | ALLOCATION_OVERFLOW         | Allocation percentages sum above 100
                | EXCHANGE_RATE_NOT_SET       | Conversion needed but rate is zero
----------------|-----------------------------|-----------------------------------------
Cadence         | COOLDOWN_ACTIVE             | Payday/allocation inside the 30-day window
----------------|-----------------------------|-----------------------------------------
Settlement      | TRANSFER_FAILED             | Rail refused or raised on a transfer
----------------|-----------------------------|-----------------------------------------
Concurrency     | REENTRANT_CALL              | Mutating call re-entered mid-transfer
----------------|-----------------------------|-----------------------------------------
Setup           | LEDGER_NOT_INITIALIZED      | No payroll state row (bootstrap missing)
"""

from datetime import datetime


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


# Access-related exceptions


class AccessError(PayrollKernelError):
    """Base exception for caller-identity and pause violations."""

    code: str = "ACCESS_ERROR"


class UnauthorizedError(AccessError):
    """Caller identity does not hold the role the operation requires."""

    code: str = "UNAUTHORIZED"

    def __init__(self, actor: str | None, required_role: str):
        self.actor = actor
        self.required_role = required_role
        super().__init__(f"Actor {actor!r} is not authorized as {required_role}")


class PausedError(AccessError):
    """Mutating operation attempted while the ledger is paused."""

    code: str = "PAUSED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Ledger is paused; {operation} rejected")


# Employee-related exceptions


class EmployeeError(PayrollKernelError):
    """Base exception for employee registry errors."""

    code: str = "EMPLOYEE_ERROR"


class EmployeeNotFoundError(EmployeeError):
    """No active employee matches the given id or identity."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_ref: str):
        self.employee_ref = employee_ref
        super().__init__(f"Employee not found: {employee_ref}")


class EmployeeAlreadyExistsError(EmployeeError):
    """Identity already has an active employee record."""

    code: str = "EMPLOYEE_ALREADY_EXISTS"

    def __init__(self, identity: str, employee_id: int):
        self.identity = identity
        self.employee_id = employee_id
        super().__init__(
            f"Identity {identity} already registered as employee {employee_id}"
        )


# Token-related exceptions


class TokenError(PayrollKernelError):
    """Base exception for token registry errors."""

    code: str = "TOKEN_ERROR"


class TokenNotFoundError(TokenError):
    """Token address is not currently accepted."""

    code: str = "TOKEN_NOT_FOUND"

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Token not accepted: {address}")


class TokenAlreadyExistsError(TokenError):
    """Token address is already accepted."""

    code: str = "TOKEN_ALREADY_EXISTS"

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Token already accepted: {address}")


class TokenLimitExceededError(TokenError):
    """Accepted-token cap would be exceeded."""

    code: str = "TOKEN_LIMIT_EXCEEDED"

    def __init__(self, requested: int, limit: int):
        self.requested = requested
        self.limit = limit
        super().__init__(f"Token count {requested} exceeds limit {limit}")


# Validation exceptions


class ValidationError(PayrollKernelError):
    """Base exception for malformed arguments."""

    code: str = "VALIDATION_ERROR"


class InvalidArgumentError(ValidationError):
    """An argument is malformed or violates a precondition."""

    code: str = "INVALID_ARGUMENT"

    def __init__(self, argument: str, reason: str):
        self.argument = argument
        self.reason = reason
        super().__init__(f"Invalid {argument}: {reason}")


class AllocationOverflowError(InvalidArgumentError):
    """Allocation percentages sum to more than 100."""

    code: str = "ALLOCATION_OVERFLOW"

    def __init__(self, total_percentage: int):
        self.total_percentage = total_percentage
        super().__init__(
            "percentages", f"sum {total_percentage} exceeds 100"
        )


class ExchangeRateNotSetError(InvalidArgumentError):
    """A conversion is required but the asset's rate is zero."""

    code: str = "EXCHANGE_RATE_NOT_SET"

    def __init__(self, asset: str):
        self.asset = asset
        super().__init__("exchange_rate", f"no usable rate for {asset}")


# Cadence exceptions


class CadenceError(PayrollKernelError):
    """Base exception for once-per-window violations."""

    code: str = "CADENCE_ERROR"


class CooldownActiveError(CadenceError):
    """Payday or allocation change attempted inside the cooldown window."""

    code: str = "COOLDOWN_ACTIVE"

    def __init__(self, employee_id: int, operation: str, eligible_at: datetime):
        self.employee_id = employee_id
        self.operation = operation
        self.eligible_at = eligible_at
        super().__init__(
            f"Employee {employee_id}: {operation} not allowed until after "
            f"{eligible_at.isoformat()}"
        )


# Settlement exceptions


class SettlementError(PayrollKernelError):
    """Base exception for payment rail failures."""

    code: str = "SETTLEMENT_ERROR"


class TransferFailedError(SettlementError):
    """The payment rail refused or failed a transfer batch."""

    code: str = "TRANSFER_FAILED"

    def __init__(self, asset: str, recipient: str, amount: int, reason: str):
        self.asset = asset
        self.recipient = recipient
        self.amount = amount
        self.reason = reason
        super().__init__(
            f"Transfer of {amount} {asset} to {recipient} failed: {reason}"
        )


# Concurrency exceptions


class ConcurrencyError(PayrollKernelError):
    """Base exception for concurrency violations."""

    code: str = "CONCURRENCY_ERROR"


class ReentrancyError(ConcurrencyError):
    """A mutating operation was re-entered while a write was in flight."""

    code: str = "REENTRANT_CALL"

    def __init__(self, operation: str, in_flight: str | None):
        self.operation = operation
        self.in_flight = in_flight
        super().__init__(
            f"Re-entrant call to {operation} during {in_flight}"
        )


class LedgerNotInitializedError(PayrollKernelError):
    """The payroll state row has not been bootstrapped."""

    code: str = "LEDGER_NOT_INITIALIZED"

    def __init__(self):
        super().__init__("Payroll ledger state not initialized; call bootstrap()")
