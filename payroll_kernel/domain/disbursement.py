"""
Disbursement -- pure payroll arithmetic.

Responsibility:
    Allocation validation, monthly pay with remainder accrual, and the
    per-asset split of one month's pay.  All integer arithmetic; no floats,
    no I/O, no ORM.

Architecture position:
    Kernel > Domain.  Services call these functions with values they read
    from the database; the results are persisted and then settled on the
    payment rail by the ledger.

Invariants enforced:
    - Allocation percentages are non-negative, tokens are unique, and the
      percentages sum to at most 100.  The unallocated remainder is paid in
      the native asset.
    - Monthly pay is ``yearly // 12`` plus accrued twelfths: the ``yearly %
      12`` remainder is carried forward and released one cent at a time, so
      twelve consecutive paydays pay exactly the yearly salary.
    - A plan's legs always add up to the monthly USD cents.  Token rounding
      dust and shares on tokens that are no longer priced fall to the native
      leg.

Units:
    Token rates are USD cents per token unit.  The native rate is USD cents
    per 10**18 native units, so native amounts and token valuations share
    the 18-place fixed-point scale used by the treasury report.
"""

from dataclasses import dataclass
from typing import Mapping, Sequence

from payroll_kernel.exceptions import (
    AllocationOverflowError,
    ExchangeRateNotSetError,
    InvalidArgumentError,
    TokenLimitExceededError,
)

NATIVE_ASSET = "native"

MONTHS_PER_YEAR = 12
FULL_ALLOCATION = 100
FIXED_POINT_DECIMALS = 18
FIXED_POINT_SCALE = 10**FIXED_POINT_DECIMALS


@dataclass(frozen=True)
class AllocationLine:
    """One (token, percentage) pair of an employee's allocation."""

    token_address: str
    percentage: int


@dataclass(frozen=True)
class MonthlyPay:
    usd_cents: int
    carried_twelfths: int


@dataclass(frozen=True)
class DisbursementLeg:
    """Amount of one asset to send, with the USD cents it settles."""

    asset: str
    usd_cents: int
    amount: int


@dataclass(frozen=True)
class DisbursementPlan:
    usd_cents: int
    legs: tuple[DisbursementLeg, ...]

    @property
    def native_leg(self) -> DisbursementLeg | None:
        for leg in self.legs:
            if leg.asset == NATIVE_ASSET:
                return leg
        return None

    def amount_of(self, asset: str) -> int:
        return sum(leg.amount for leg in self.legs if leg.asset == asset)


def validate_allocation(
    tokens: Sequence[str],
    percentages: Sequence[int],
    token_limit: int,
) -> tuple[AllocationLine, ...]:
    """
    Validate the shape of an allocation request.

    Token acceptance is checked by the caller against the registry; this
    function only checks what can be decided from the arguments.

    Raises:
        InvalidArgumentError: lengths differ, a percentage is negative or
            not an int, or a token is repeated.
        TokenLimitExceededError: more tokens than the accepted-token limit.
        AllocationOverflowError: percentages sum above 100.
    """
    if len(tokens) != len(percentages):
        raise InvalidArgumentError(
            "percentages",
            f"{len(percentages)} percentages for {len(tokens)} tokens",
        )
    if len(tokens) > token_limit:
        raise TokenLimitExceededError(len(tokens), token_limit)
    if len(set(tokens)) != len(tokens):
        raise InvalidArgumentError("tokens", "duplicate token in allocation")
    for pct in percentages:
        if isinstance(pct, bool) or not isinstance(pct, int) or pct < 0:
            raise InvalidArgumentError("percentages", f"{pct!r} is not a non-negative int")

    total = sum(percentages)
    if total > FULL_ALLOCATION:
        raise AllocationOverflowError(total)

    return tuple(
        AllocationLine(token_address=token, percentage=pct)
        for token, pct in zip(tokens, percentages)
    )


def monthly_pay(yearly_usd_cents: int, carried_twelfths: int) -> MonthlyPay:
    """
    Split a yearly salary into this month's cents, accruing the remainder.

    >>> monthly_pay(100, 0)
    MonthlyPay(usd_cents=8, carried_twelfths=4)
    >>> monthly_pay(100, 8)
    MonthlyPay(usd_cents=9, carried_twelfths=0)
    """
    base, remainder = divmod(yearly_usd_cents, MONTHS_PER_YEAR)
    extra, carried = divmod(carried_twelfths + remainder, MONTHS_PER_YEAR)
    return MonthlyPay(usd_cents=base + extra, carried_twelfths=carried)


def native_units_for(usd_cents: int, native_rate_cents: int) -> int:
    """Native units (10**-18 scale) worth ``usd_cents`` at the native rate."""
    if native_rate_cents <= 0:
        raise ExchangeRateNotSetError(NATIVE_ASSET)
    return usd_cents * FIXED_POINT_SCALE // native_rate_cents


def plan_disbursement(
    usd_cents: int,
    allocation: Sequence[AllocationLine],
    token_rates: Mapping[str, int],
    native_rate_cents: int,
) -> DisbursementPlan:
    """
    Split one month's pay across the allocated tokens and the native asset.

    Args:
        usd_cents: Monthly pay in USD cents.
        allocation: The employee's allocation lines, in order.
        token_rates: Current USD-cent rate of every accepted token.  Lines
            whose token is missing or priced at zero are paid in native.
        native_rate_cents: USD cents per 10**18 native units.

    Raises:
        ExchangeRateNotSetError: a native leg is needed but the native rate
            is zero.
    """
    legs: list[DisbursementLeg] = []
    settled = 0
    for line in allocation:
        rate = token_rates.get(line.token_address, 0)
        if rate <= 0:
            continue
        share = usd_cents * line.percentage // FULL_ALLOCATION
        units = share // rate
        if units == 0:
            continue
        legs.append(
            DisbursementLeg(asset=line.token_address, usd_cents=units * rate, amount=units)
        )
        settled += units * rate

    native_cents = usd_cents - settled
    if native_cents > 0:
        legs.append(
            DisbursementLeg(
                asset=NATIVE_ASSET,
                usd_cents=native_cents,
                amount=native_units_for(native_cents, native_rate_cents),
            )
        )

    return DisbursementPlan(usd_cents=usd_cents, legs=tuple(legs))
