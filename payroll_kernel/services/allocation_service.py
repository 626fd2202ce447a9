"""
AllocationService -- employee self-service token allocation.

Responsibility:
    Lets an active employee choose how each month's pay splits across
    accepted tokens.  Whatever percentage is left unallocated is paid in the
    native asset.

Architecture position:
    Kernel > Services.  Validation arithmetic lives in
    domain/disbursement.validate_allocation; cadence in domain/cadence.

Invariants enforced:
    - sum(percentages) <= 100; tokens accepted, unique and within the limit.
    - The stored allocation is overwritten in place position by position,
      and any trailing lines from a previous, longer allocation are
      removed.  Reading it back returns exactly the submitted list.
    - Allocation changes obey the cooldown policy: under SHARED they consume
      the payday window, under SEPARATE they have their own.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Sequence

from payroll_kernel.domain.cadence import (
    CadenceOperation,
    CooldownPolicy,
    is_eligible,
    next_eligible_at,
    window_anchor,
)
from payroll_kernel.domain.disbursement import AllocationLine, validate_allocation
from payroll_kernel.exceptions import CooldownActiveError
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.employee import AllocationLineModel, Employee
from payroll_kernel.services.base import BaseService
from payroll_kernel.services.control_service import ControlService
from payroll_kernel.services.employee_registry import EmployeeRegistryService
from payroll_kernel.services.token_registry import TokenRegistryService

logger = get_logger("services.allocation")


class AllocationService(BaseService[AllocationLineModel]):
    """Per-employee payout allocation across accepted tokens."""

    def __init__(
        self,
        session,
        clock=None,
        cooldown_policy: CooldownPolicy = CooldownPolicy.SHARED,
        interval: timedelta = timedelta(days=30),
    ):
        super().__init__(session, clock)
        self._control = ControlService(session, clock)
        self._tokens = TokenRegistryService(session, clock)
        self._employees = EmployeeRegistryService(session, clock)
        self._policy = cooldown_policy
        self._interval = interval

    def determine_allocation(
        self,
        actor: str,
        tokens: Sequence[str],
        percentages: Sequence[int],
    ) -> tuple[AllocationLine, ...]:
        """
        Replace the caller's allocation.

        Raises:
            UnauthorizedError: caller is not an active employee.
            CooldownActiveError: inside the allocation window.
            InvalidArgumentError / AllocationOverflowError: malformed request.
            TokenLimitExceededError: more tokens than the limit.
            TokenNotFoundError: a token is not accepted.
        """
        employee = self._employees.require_employee(actor)
        now = self.clock.now()
        anchor = window_anchor(
            CadenceOperation.ALLOCATION,
            self._policy,
            employee.last_payout_at,
            employee.last_allocation_at,
        )
        if not is_eligible(anchor, now, self._interval):
            raise CooldownActiveError(
                employee.employee_id,
                CadenceOperation.ALLOCATION.value,
                next_eligible_at(anchor, self._interval),
            )

        lines = validate_allocation(
            list(tokens), list(percentages), self._control.state().token_limit
        )
        for line in lines:
            self._tokens.require_accepted(line.token_address)

        self._overwrite(employee, lines)
        employee.last_allocation_at = now
        employee.updated_by = actor
        self.session.flush()

        logger.info(
            "allocation_determined",
            extra={
                "employee_id": employee.employee_id,
                "tokens": [line.token_address for line in lines],
                "percentages": [line.percentage for line in lines],
                "native_percentage": 100 - sum(line.percentage for line in lines),
            },
        )
        return lines

    def _overwrite(self, employee: Employee, lines: tuple[AllocationLine, ...]) -> None:
        stored = employee.allocation_lines
        for position, line in enumerate(lines):
            if position < len(stored):
                stored[position].token_address = line.token_address
                stored[position].percentage = line.percentage
            else:
                stored.append(
                    AllocationLineModel(
                        position=position,
                        token_address=line.token_address,
                        percentage=line.percentage,
                    )
                )
        del stored[len(lines):]

    def get_allocation(self, employee_id: int) -> tuple[AllocationLine, ...]:
        employee = self._employees.get_active(employee_id)
        return tuple(
            AllocationLine(token_address=line.token_address, percentage=line.percentage)
            for line in employee.allocation_lines
        )
