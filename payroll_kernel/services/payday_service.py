"""
PaydayService -- one month's pay for one employee.

Responsibility:
    Checks the payday cadence, computes this month's pay (with remainder
    accrual), splits it across the employee's allocation, stamps the
    cooldown, and records the payout.  Returns the settled legs so that
    PayrollLedger can submit them to the payment rail as the final step of
    the same transaction.

Architecture position:
    Kernel > Services.  Pure arithmetic is delegated to
    domain/disbursement; cadence to domain/cadence.

Invariants enforced:
    - Eligible only when now > anchor + interval (see domain/cadence).
    - The allocation is applied: token legs are paid in tokens, the rest in
      native.
    - Twelve consecutive paydays pay exactly yearly_usd_cents.
    - All state is flushed before any value moves.  If settlement fails the
      caller's transaction rolls back the stamp, the accrual and the payout
      record together.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select

from payroll_kernel.domain.cadence import (
    CadenceOperation,
    CooldownPolicy,
    is_eligible,
    next_eligible_at,
    window_anchor,
)
from payroll_kernel.domain.disbursement import (
    AllocationLine,
    DisbursementLeg,
    monthly_pay,
    plan_disbursement,
)
from payroll_kernel.exceptions import CooldownActiveError
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.employee import Employee
from payroll_kernel.models.payout import Payout, PayoutLegModel
from payroll_kernel.services.base import BaseService
from payroll_kernel.services.control_service import ControlService
from payroll_kernel.services.employee_registry import EmployeeRegistryService
from payroll_kernel.services.token_registry import TokenRegistryService

logger = get_logger("services.payday")


@dataclass(frozen=True)
class PayoutInfo:
    """Immutable record of one payday."""

    payout_id: UUID
    employee_id: int
    recipient: str
    paid_at: datetime
    usd_cents: int
    legs: tuple[DisbursementLeg, ...]

    def amount_of(self, asset: str) -> int:
        return sum(leg.amount for leg in self.legs if leg.asset == asset)


class PaydayService(BaseService[Payout]):
    """Monthly disbursement with a once-per-interval cadence."""

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

    @staticmethod
    def _to_dto(payout: Payout) -> PayoutInfo:
        return PayoutInfo(
            payout_id=payout.id,
            employee_id=payout.employee_id,
            recipient=payout.recipient,
            paid_at=payout.paid_at,
            usd_cents=payout.usd_cents,
            legs=tuple(
                DisbursementLeg(asset=leg.asset, usd_cents=leg.usd_cents, amount=leg.amount)
                for leg in payout.legs
            ),
        )

    def _anchor(self, employee: Employee) -> datetime | None:
        return window_anchor(
            CadenceOperation.PAYDAY,
            self._policy,
            employee.last_payout_at,
            employee.last_allocation_at,
        )

    def payday(self, actor: str) -> PayoutInfo:
        """
        Pay the calling employee for one month.

        Raises:
            UnauthorizedError: caller is not an active employee.
            CooldownActiveError: the payout window has not elapsed.
            ExchangeRateNotSetError: a native leg is due but no native rate.
        """
        employee = self._employees.require_employee(actor)
        now = self.clock.now()
        anchor = self._anchor(employee)
        if not is_eligible(anchor, now, self._interval):
            raise CooldownActiveError(
                employee.employee_id,
                CadenceOperation.PAYDAY.value,
                next_eligible_at(anchor, self._interval),
            )

        state = self._control.state()
        pay = monthly_pay(employee.yearly_usd_cents, employee.carried_twelfths)
        allocation = [
            AllocationLine(token_address=line.token_address, percentage=line.percentage)
            for line in employee.allocation_lines
        ]
        plan = plan_disbursement(
            pay.usd_cents,
            allocation,
            self._tokens.rates_by_address(),
            state.native_usd_rate_cents,
        )

        employee.last_payout_at = now
        employee.carried_twelfths = pay.carried_twelfths
        employee.updated_by = actor

        payout = Payout(
            employee_id=employee.employee_id,
            recipient=actor,
            paid_at=now,
            usd_cents=plan.usd_cents,
            legs=[
                PayoutLegModel(
                    position=position,
                    asset=leg.asset,
                    usd_cents=leg.usd_cents,
                    amount=leg.amount,
                )
                for position, leg in enumerate(plan.legs)
            ],
        )
        self.session.add(payout)
        self.session.flush()

        logger.info(
            "payday_computed",
            extra={
                "employee_id": employee.employee_id,
                "usd_cents": plan.usd_cents,
                "carried_twelfths": pay.carried_twelfths,
                "legs": plan.legs,
            },
        )
        return self._to_dto(payout)

    def is_payday_eligible(self, employee_id: int) -> bool:
        employee = self._employees.get_active(employee_id)
        return is_eligible(self._anchor(employee), self.clock.now(), self._interval)

    def next_payday_at(self, employee_id: int) -> datetime:
        """Boundary instant; the employee is eligible strictly after it."""
        employee = self._employees.get_active(employee_id)
        return next_eligible_at(self._anchor(employee), self._interval)

    def list_payouts(self, employee_id: int) -> list[PayoutInfo]:
        payouts = self.session.execute(
            select(Payout)
            .where(Payout.employee_id == employee_id)
            .order_by(Payout.paid_at)
        ).scalars().all()
        return [self._to_dto(p) for p in payouts]
