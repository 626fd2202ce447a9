"""
EmployeeRegistryService -- employee records and the salary aggregate.

Responsibility:
    Hire, re-price and remove employees, and keep the running total of
    yearly salary commitments that burn-rate and runway are computed from.

Architecture position:
    Kernel > Services.  Composes ControlService (owner check, state row),
    TokenRegistryService (allowed-token validation) and SequenceService
    (employee ids).

Invariants enforced:
    - salaries_summation_usd_cents == sum(yearly_usd_cents of active
      employees).  Every salary change, including the implicit ones in
      add_employee and remove_employee, goes through _apply_salary, which
      applies the old -> new delta to the aggregate in the same flush as
      the employee row.  The aggregate is never recomputed from scratch.
    - Employee ids start at 1, increase monotonically, and are never
      reassigned.  0 means "absent".
    - Removal tombstones: the row keeps its id, loses its identity, salary,
      allowed tokens and allocation, and is marked inactive.
    - A new hire's last_payout_at is the hire instant, so the first
      eligible payday is one full payout interval later.

Failure modes:
    - EmployeeAlreadyExistsError: identity already active.
    - TokenLimitExceededError: more allowed tokens than the token limit.
    - TokenNotFoundError: an allowed token is not accepted.
    - EmployeeNotFoundError: id unknown or tombstoned.
    - InvalidArgumentError: empty identity, negative salary, repeated token.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from sqlalchemy import select

from payroll_kernel.domain.disbursement import AllocationLine
from payroll_kernel.exceptions import (
    EmployeeAlreadyExistsError,
    EmployeeNotFoundError,
    InvalidArgumentError,
    TokenLimitExceededError,
    UnauthorizedError,
)
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.employee import Employee, EmployeeAllowedToken
from payroll_kernel.models.state import PayrollState
from payroll_kernel.services.base import BaseService
from payroll_kernel.services.control_service import ControlService
from payroll_kernel.services.sequence_service import SequenceService
from payroll_kernel.services.token_registry import TokenRegistryService

logger = get_logger("services.employee_registry")

ABSENT_EMPLOYEE_ID = 0
EMPLOYEE_ROLE = "employee"


@dataclass(frozen=True)
class EmployeeInfo:
    """
    Immutable view of an employee record.

    A tombstone has ``is_active`` False, no identity, zero salary and empty
    token lists.
    """

    employee_id: int
    identity: str | None
    is_active: bool
    allowed_tokens: tuple[str, ...]
    yearly_usd_cents: int
    last_payout_at: datetime | None
    allocation: tuple[AllocationLine, ...]


class EmployeeRegistryService(BaseService[Employee]):
    """CRUD over employees with an invariant-preserving salary aggregate."""

    def __init__(self, session, clock=None):
        super().__init__(session, clock)
        self._control = ControlService(session, clock)
        self._tokens = TokenRegistryService(session, clock)
        self._sequence = SequenceService(session)

    @staticmethod
    def to_dto(employee: Employee) -> EmployeeInfo:
        if not employee.is_active:
            return EmployeeInfo(
                employee_id=employee.employee_id,
                identity=None,
                is_active=False,
                allowed_tokens=(),
                yearly_usd_cents=0,
                last_payout_at=None,
                allocation=(),
            )
        return EmployeeInfo(
            employee_id=employee.employee_id,
            identity=employee.identity,
            is_active=True,
            allowed_tokens=tuple(t.token_address for t in employee.allowed_tokens),
            yearly_usd_cents=employee.yearly_usd_cents,
            last_payout_at=employee.last_payout_at,
            allocation=tuple(
                AllocationLine(token_address=line.token_address, percentage=line.percentage)
                for line in employee.allocation_lines
            ),
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _find_by_id(self, employee_id: int) -> Employee | None:
        return self.session.execute(
            select(Employee).where(Employee.employee_id == employee_id)
        ).scalar_one_or_none()

    def _find_active_by_identity(self, identity: str) -> Employee | None:
        return self.session.execute(
            select(Employee).where(
                Employee.identity == identity,
                Employee.is_active.is_(True),
            )
        ).scalar_one_or_none()

    def get_active(self, employee_id: int) -> Employee:
        """Active employee row by id, raising EmployeeNotFoundError otherwise."""
        employee = self._find_by_id(employee_id)
        if employee is None or not employee.is_active:
            raise EmployeeNotFoundError(str(employee_id))
        return employee

    def require_employee(self, actor: str) -> Employee:
        """The caller's own active record; UnauthorizedError if they have none."""
        employee = self._find_active_by_identity(actor)
        if employee is None:
            raise UnauthorizedError(actor, EMPLOYEE_ROLE)
        return employee

    # ------------------------------------------------------------------
    # Mutations (owner only)
    # ------------------------------------------------------------------

    def add_employee(
        self,
        actor: str,
        identity: str,
        allowed_tokens: Sequence[str],
        yearly_usd_cents: int,
    ) -> EmployeeInfo:
        """
        Hire an employee under a fresh id.

        The salary is folded into the aggregate through the same delta step
        as set_employee_salary.
        """
        state = self._control.require_owner(actor)
        if not identity:
            raise InvalidArgumentError("identity", "identity must be non-empty")
        if yearly_usd_cents < 0:
            raise InvalidArgumentError("yearly_usd_cents", "salary must be non-negative")

        existing = self._find_active_by_identity(identity)
        if existing is not None:
            raise EmployeeAlreadyExistsError(identity, existing.employee_id)

        tokens = list(allowed_tokens)
        if len(tokens) > state.token_limit:
            raise TokenLimitExceededError(len(tokens), state.token_limit)
        if len(set(tokens)) != len(tokens):
            raise InvalidArgumentError("allowed_tokens", "duplicate token")
        for address in tokens:
            self._tokens.require_accepted(address)

        employee_id = self._sequence.next_value(SequenceService.EMPLOYEE_ID)
        employee = Employee(
            employee_id=employee_id,
            identity=identity,
            is_active=True,
            yearly_usd_cents=0,
            last_payout_at=self.clock.now(),
            last_allocation_at=None,
            carried_twelfths=0,
            allowed_tokens=[EmployeeAllowedToken(token_address=t) for t in tokens],
            created_by=actor,
        )
        self.session.add(employee)
        state.active_employee_count += 1
        self._apply_salary(state, employee, yearly_usd_cents, actor)

        logger.info(
            "employee_added",
            extra={
                "employee_id": employee_id,
                "identity": identity,
                "allowed_token_count": len(tokens),
                "yearly_usd_cents": yearly_usd_cents,
            },
        )
        return self.to_dto(employee)

    def set_employee_salary(
        self,
        actor: str,
        employee_id: int,
        yearly_usd_cents: int,
    ) -> EmployeeInfo:
        state = self._control.require_owner(actor)
        employee = self.get_active(employee_id)
        if yearly_usd_cents < 0:
            raise InvalidArgumentError("yearly_usd_cents", "salary must be non-negative")
        self._apply_salary(state, employee, yearly_usd_cents, actor)
        return self.to_dto(employee)

    def remove_employee(self, actor: str, employee_id: int) -> None:
        """Zero the salary through the aggregate delta, then tombstone."""
        state = self._control.require_owner(actor)
        employee = self.get_active(employee_id)
        identity = employee.identity

        self._apply_salary(state, employee, 0, actor)
        state.active_employee_count -= 1

        employee.identity = None
        employee.is_active = False
        employee.allowed_tokens.clear()
        employee.allocation_lines.clear()
        employee.carried_twelfths = 0
        employee.last_allocation_at = None
        employee.updated_by = actor
        self.session.flush()

        logger.info(
            "employee_removed",
            extra={"employee_id": employee_id, "identity": identity},
        )

    def _apply_salary(
        self,
        state: PayrollState,
        employee: Employee,
        yearly_usd_cents: int,
        actor: str,
    ) -> None:
        previous = employee.yearly_usd_cents
        state.salaries_summation_usd_cents = (
            state.salaries_summation_usd_cents - previous + yearly_usd_cents
        )
        employee.yearly_usd_cents = yearly_usd_cents
        employee.updated_by = actor
        state.updated_by = actor
        self.session.flush()
        logger.info(
            "employee_salary_set",
            extra={
                "employee_id": employee.employee_id,
                "previous_yearly_usd_cents": previous,
                "yearly_usd_cents": yearly_usd_cents,
                "salaries_summation_usd_cents": state.salaries_summation_usd_cents,
            },
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_employee_id(self, identity: str) -> int:
        """Active employee id for an identity, or 0 if there is none."""
        employee = self._find_active_by_identity(identity)
        return employee.employee_id if employee else ABSENT_EMPLOYEE_ID

    def get_employee_count(self) -> int:
        return self._control.state().active_employee_count

    def get_employee(self, employee_id: int) -> EmployeeInfo:
        """
        Employee by id.  Removed employees come back as zeroed tombstones.

        Raises:
            EmployeeNotFoundError: the id was never allocated.
        """
        employee = self._find_by_id(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))
        return self.to_dto(employee)

    def get_salaries_summation_usd(self) -> int:
        return self._control.state().salaries_summation_usd_cents
