"""
Module: payroll_kernel.selectors.treasury_selector
Responsibility: Treasury valuation and the derived payroll metrics (burn
    rate and runway).  Balances are read live from the payment rail on
    every call; nothing is cached or stored.
Architecture position: Kernel > Selectors.  Reads models/ and the rail.

Units:
    The total is returned as ``(total, 18)``: an integer carrying 18 implied
    decimal places of USD cents.  Native balances are in 10**-18 units and
    the native rate is cents per 10**18 units, so ``balance * rate`` is
    already on that scale.  Token balances are whole token units priced in
    cents per unit and are scaled up by 10**18 to match.

Failure modes:
    - InvalidArgumentError from calculate_payroll_runway when there are no
      active employees or the daily burn rounds down to zero.
    - LedgerNotInitializedError before bootstrap.
"""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from payroll_kernel.domain.disbursement import (
    FIXED_POINT_DECIMALS,
    FIXED_POINT_SCALE,
    MONTHS_PER_YEAR,
    NATIVE_ASSET,
)
from payroll_kernel.exceptions import InvalidArgumentError, LedgerNotInitializedError
from payroll_kernel.models.state import PayrollState
from payroll_kernel.models.token import AcceptedToken
from payroll_kernel.rails.base import PaymentRail
from payroll_kernel.selectors.base import BaseSelector

DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class TreasuryHolding:
    """Rail balance of one asset held by the treasury, and its valuation."""

    asset: str
    amount: int
    usd_rate_cents: int
    scaled_usd_cents: int


class TreasurySelector(BaseSelector[PayrollState]):
    """Live treasury valuation against a payment rail."""

    def __init__(self, session: Session, rail: PaymentRail, treasury_account: str):
        super().__init__(session)
        self._rail = rail
        self._treasury = treasury_account

    def _state(self) -> PayrollState:
        state = self.session.execute(select(PayrollState)).scalar_one_or_none()
        if state is None:
            raise LedgerNotInitializedError()
        return state

    def holdings(self) -> list[TreasuryHolding]:
        """Native holding first, then every accepted token with a balance."""
        state = self._state()
        native = self._rail.balance_of(NATIVE_ASSET, self._treasury)
        result = [
            TreasuryHolding(
                asset=NATIVE_ASSET,
                amount=native,
                usd_rate_cents=state.native_usd_rate_cents,
                scaled_usd_cents=native * state.native_usd_rate_cents,
            )
        ]
        tokens = self.session.execute(
            select(AcceptedToken).order_by(AcceptedToken.slot)
        ).scalars().all()
        for token in tokens:
            held = self._rail.balance_of(token.address, self._treasury)
            if held == 0:
                continue
            result.append(
                TreasuryHolding(
                    asset=token.address,
                    amount=held,
                    usd_rate_cents=token.usd_rate_cents,
                    scaled_usd_cents=held * token.usd_rate_cents * FIXED_POINT_SCALE,
                )
            )
        return result

    def total_balance_in_usd_cents(self) -> tuple[int, int]:
        """
        Treasury value as ``(total, decimal_places)``.

        ``total / 10**decimal_places`` is the value in USD cents.
        """
        total = sum(h.scaled_usd_cents for h in self.holdings())
        return total, FIXED_POINT_DECIMALS

    def calculate_payroll_burnrate(self) -> int:
        """Monthly salary commitment in USD cents."""
        return self._state().salaries_summation_usd_cents // MONTHS_PER_YEAR

    def calculate_payroll_runway(self) -> int:
        """
        Whole days the treasury covers at the current burn rate.

        Raises:
            InvalidArgumentError: no active employees, or a daily burn that
                rounds down to zero cents.
        """
        state = self._state()
        if state.active_employee_count < 1:
            raise InvalidArgumentError("employees", "runway needs at least one active employee")
        daily = self.calculate_payroll_burnrate() // DAYS_PER_MONTH
        if daily == 0:
            raise InvalidArgumentError("burnrate", "daily burn rate is zero")
        total, _ = self.total_balance_in_usd_cents()
        return total // daily // FIXED_POINT_SCALE
