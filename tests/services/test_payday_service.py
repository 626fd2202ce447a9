"""Tests for PaydayService: cadence, monthly pay and the allocation split."""

from datetime import timedelta

import pytest

from payroll_kernel.domain.cadence import CooldownPolicy
from payroll_kernel.domain.disbursement import FIXED_POINT_SCALE, NATIVE_ASSET
from payroll_kernel.exceptions import (
    CooldownActiveError,
    ExchangeRateNotSetError,
    UnauthorizedError,
)
from payroll_kernel.services.allocation_service import AllocationService
from payroll_kernel.services.employee_registry import EmployeeRegistryService
from payroll_kernel.services.payday_service import PaydayService
from payroll_kernel.services.rate_registry import RateRegistryService
from payroll_kernel.services.token_registry import TokenRegistryService
from tests.conftest import ALICE, BOB, ORACLE, OWNER

PAST_WINDOW = dict(days=30, seconds=1)


@pytest.fixture
def rates(session, clock):
    registry = RateRegistryService(session, clock)
    registry.set_oracle(OWNER, ORACLE)
    registry.set_native_exchange_rate(ORACLE, 100)
    return registry


@pytest.fixture
def employees(session, clock, rates):
    tokens = TokenRegistryService(session, clock)
    tokens.add_token(OWNER, "0xa", 1)
    tokens.add_token(OWNER, "0xc", 10)
    registry = EmployeeRegistryService(session, clock)
    registry.add_employee(OWNER, ALICE, ["0xa"], 1_200_000)
    return registry


@pytest.fixture
def payday(session, clock, employees):
    return PaydayService(session, clock)


class TestCadence:

    def test_new_hire_is_not_eligible(self, payday, clock):
        assert not payday.is_payday_eligible(1)
        assert payday.next_payday_at(1) == clock.now() + timedelta(days=30)
        with pytest.raises(CooldownActiveError) as exc_info:
            payday.payday(ALICE)
        assert exc_info.value.employee_id == 1
        assert exc_info.value.operation == "payday"

    def test_eligible_strictly_after_thirty_days(self, payday, clock):
        clock.advance(days=30)
        assert not payday.is_payday_eligible(1)
        clock.advance(seconds=1)
        assert payday.is_payday_eligible(1)

    def test_payday_starts_a_new_window(self, payday, clock):
        clock.advance(**PAST_WINDOW)
        paid_at = clock.now()
        payday.payday(ALICE)
        assert payday.next_payday_at(1) == paid_at + timedelta(days=30)
        clock.advance(days=30)
        with pytest.raises(CooldownActiveError):
            payday.payday(ALICE)

    def test_custom_interval(self, session, clock, employees):
        weekly = PaydayService(session, clock, interval=timedelta(days=7))
        clock.advance(days=7, seconds=1)
        assert weekly.payday(ALICE).usd_cents == 100_000

    def test_only_active_employees(self, payday, employees, clock):
        clock.advance(**PAST_WINDOW)
        with pytest.raises(UnauthorizedError):
            payday.payday(BOB)
        employees.remove_employee(OWNER, 1)
        with pytest.raises(UnauthorizedError):
            payday.payday(ALICE)


class TestDisbursement:

    @pytest.fixture(autouse=True)
    def _past_window(self, clock, employees):
        clock.advance(**PAST_WINDOW)

    def test_unallocated_pay_is_all_native(self, payday, clock):
        result = payday.payday(ALICE)
        assert result.employee_id == 1
        assert result.recipient == ALICE
        assert result.paid_at == clock.now()
        assert result.usd_cents == 100_000
        assert [leg.asset for leg in result.legs] == [NATIVE_ASSET]
        assert result.amount_of(NATIVE_ASSET) == 1_000 * FIXED_POINT_SCALE

    def test_allocation_is_applied(self, session, clock, employees):
        policy = CooldownPolicy.SEPARATE
        AllocationService(session, clock, cooldown_policy=policy).determine_allocation(
            ALICE, ["0xa", "0xc"], [40, 50]
        )
        result = PaydayService(session, clock, cooldown_policy=policy).payday(ALICE)
        assert result.amount_of("0xa") == 40_000
        assert result.amount_of("0xc") == 5_000
        assert result.amount_of(NATIVE_ASSET) == 100 * FIXED_POINT_SCALE
        assert sum(leg.usd_cents for leg in result.legs) == 100_000

    def test_allocation_consumes_the_shared_window(self, session, clock, payday):
        AllocationService(session, clock).determine_allocation(ALICE, ["0xa"], [100])
        with pytest.raises(CooldownActiveError):
            payday.payday(ALICE)
        clock.advance(**PAST_WINDOW)
        assert payday.payday(ALICE).amount_of("0xa") == 100_000

    def test_native_leg_needs_a_native_rate(self, payday, rates):
        rates.set_native_exchange_rate(ORACLE, 0)
        with pytest.raises(ExchangeRateNotSetError):
            payday.payday(ALICE)
        assert payday.is_payday_eligible(1)

    def test_remainder_accrues_across_paydays(self, payday, employees, clock):
        employees.set_employee_salary(OWNER, 1, 100)
        paid = []
        for _ in range(12):
            paid.append(payday.payday(ALICE).usd_cents)
            clock.advance(**PAST_WINDOW)
        assert paid[:3] == [8, 8, 9]
        assert sum(paid) == 100

    def test_payout_is_recorded(self, payday):
        result = payday.payday(ALICE)
        history = payday.list_payouts(1)
        assert [p.payout_id for p in history] == [result.payout_id]
        assert history[0].legs == result.legs

    def test_payday_is_logged(self, payday, captured_logs):
        payday.payday(ALICE)
        record = next(r for r in captured_logs() if r["message"] == "payday_computed")
        assert record["employee_id"] == 1
        assert record["usd_cents"] == 100_000
        assert record["legs"][0]["asset"] == NATIVE_ASSET
