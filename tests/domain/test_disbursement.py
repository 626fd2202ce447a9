"""Tests for the pure payroll arithmetic in payroll_kernel.domain.disbursement."""

import pytest

from payroll_kernel.domain.disbursement import (
    FIXED_POINT_SCALE,
    NATIVE_ASSET,
    AllocationLine,
    DisbursementLeg,
    monthly_pay,
    native_units_for,
    plan_disbursement,
    validate_allocation,
)
from payroll_kernel.exceptions import (
    AllocationOverflowError,
    ExchangeRateNotSetError,
    InvalidArgumentError,
    TokenLimitExceededError,
)


class TestValidateAllocation:

    def test_valid_allocation_returns_lines_in_order(self):
        lines = validate_allocation(["0xa", "0xc"], [40, 50], token_limit=20)
        assert lines == (
            AllocationLine("0xa", 40),
            AllocationLine("0xc", 50),
        )

    def test_empty_allocation_means_all_native(self):
        assert validate_allocation([], [], token_limit=20) == ()

    def test_exactly_one_hundred_is_allowed(self):
        lines = validate_allocation(["0xa", "0xb"], [60, 40], token_limit=20)
        assert sum(line.percentage for line in lines) == 100

    def test_length_mismatch_rejected(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            validate_allocation(["0xa", "0xb"], [50], token_limit=20)
        assert exc_info.value.argument == "percentages"

    def test_sum_over_one_hundred_rejected(self):
        with pytest.raises(AllocationOverflowError) as exc_info:
            validate_allocation(["0xa", "0xb"], [60, 41], token_limit=20)
        assert exc_info.value.total_percentage == 101
        assert exc_info.value.code == "ALLOCATION_OVERFLOW"

    def test_overflow_is_an_invalid_argument(self):
        with pytest.raises(InvalidArgumentError):
            validate_allocation(["0xa"], [101], token_limit=20)

    def test_more_tokens_than_limit_rejected(self):
        with pytest.raises(TokenLimitExceededError):
            validate_allocation(["0xa", "0xb", "0xc"], [1, 1, 1], token_limit=2)

    def test_repeated_token_rejected(self):
        with pytest.raises(InvalidArgumentError):
            validate_allocation(["0xa", "0xa"], [10, 10], token_limit=20)

    @pytest.mark.parametrize("bad", [-1, True, 12.5, "10"])
    def test_non_integer_or_negative_percentage_rejected(self, bad):
        with pytest.raises(InvalidArgumentError):
            validate_allocation(["0xa"], [bad], token_limit=20)


class TestMonthlyPay:

    def test_even_salary_has_no_carry(self):
        assert monthly_pay(1_200_000, 0).usd_cents == 100_000
        assert monthly_pay(1_200_000, 0).carried_twelfths == 0

    def test_remainder_is_carried_forward(self):
        pay = monthly_pay(100, 0)
        assert pay.usd_cents == 8
        assert pay.carried_twelfths == 4

    def test_carried_twelfths_release_a_cent(self):
        pay = monthly_pay(100, 8)
        assert pay.usd_cents == 9
        assert pay.carried_twelfths == 0

    @pytest.mark.parametrize("yearly", [0, 1, 11, 100, 10_000_000, 1_000_003, 123_456_789])
    def test_twelve_months_pay_exactly_the_yearly_salary(self, yearly):
        carried = 0
        total = 0
        for _ in range(12):
            pay = monthly_pay(yearly, carried)
            total += pay.usd_cents
            carried = pay.carried_twelfths
        assert total == yearly
        assert carried == 0

    def test_pattern_for_small_salary(self):
        carried = 0
        paid = []
        for _ in range(3):
            pay = monthly_pay(100, carried)
            paid.append(pay.usd_cents)
            carried = pay.carried_twelfths
        assert paid == [8, 8, 9]


class TestNativeUnits:

    def test_one_dollar_at_one_dollar_per_unit(self):
        assert native_units_for(100, 100) == FIXED_POINT_SCALE

    def test_rounds_down(self):
        assert native_units_for(1, 3) == FIXED_POINT_SCALE // 3

    def test_zero_rate_rejected(self):
        with pytest.raises(ExchangeRateNotSetError) as exc_info:
            native_units_for(100, 0)
        assert exc_info.value.asset == NATIVE_ASSET


class TestPlanDisbursement:

    def test_split_across_tokens_and_native(self):
        plan = plan_disbursement(
            10_000,
            [AllocationLine("0xa", 40), AllocationLine("0xc", 50)],
            {"0xa": 1, "0xb": 1, "0xc": 1},
            native_rate_cents=100,
        )
        assert plan.legs == (
            DisbursementLeg("0xa", 4_000, 4_000),
            DisbursementLeg("0xc", 5_000, 5_000),
            DisbursementLeg(NATIVE_ASSET, 1_000, 10 * FIXED_POINT_SCALE),
        )

    def test_no_allocation_pays_everything_in_native(self):
        plan = plan_disbursement(500, [], {}, native_rate_cents=100)
        assert plan.legs == (DisbursementLeg(NATIVE_ASSET, 500, 5 * FIXED_POINT_SCALE),)
        assert plan.native_leg.amount == 5 * FIXED_POINT_SCALE

    def test_rounding_dust_falls_to_native(self):
        plan = plan_disbursement(
            1_001, [AllocationLine("0xa", 50)], {"0xa": 3}, native_rate_cents=100
        )
        token_leg = plan.legs[0]
        assert token_leg.amount == 166
        assert token_leg.usd_cents == 498
        assert plan.native_leg.usd_cents == 503
        assert sum(leg.usd_cents for leg in plan.legs) == 1_001

    def test_share_on_removed_token_is_paid_in_native(self):
        plan = plan_disbursement(
            1_000, [AllocationLine("0xgone", 40)], {"0xa": 1}, native_rate_cents=100
        )
        assert plan.amount_of("0xgone") == 0
        assert plan.native_leg.usd_cents == 1_000

    def test_share_on_unpriced_token_is_paid_in_native(self):
        plan = plan_disbursement(
            1_000, [AllocationLine("0xa", 40)], {"0xa": 0}, native_rate_cents=100
        )
        assert plan.legs == (DisbursementLeg(NATIVE_ASSET, 1_000, 10 * FIXED_POINT_SCALE),)

    def test_share_smaller_than_one_token_is_paid_in_native(self):
        plan = plan_disbursement(
            100, [AllocationLine("0xa", 10)], {"0xa": 1_000}, native_rate_cents=100
        )
        assert plan.amount_of("0xa") == 0
        assert plan.native_leg.usd_cents == 100

    def test_fully_token_paid_needs_no_native_rate(self):
        plan = plan_disbursement(
            1_000, [AllocationLine("0xa", 100)], {"0xa": 10}, native_rate_cents=0
        )
        assert plan.legs == (DisbursementLeg("0xa", 1_000, 100),)
        assert plan.native_leg is None

    def test_native_leg_without_rate_rejected(self):
        with pytest.raises(ExchangeRateNotSetError):
            plan_disbursement(1_000, [AllocationLine("0xa", 50)], {"0xa": 1}, native_rate_cents=0)

    def test_zero_pay_has_no_legs(self):
        plan = plan_disbursement(0, [], {}, native_rate_cents=0)
        assert plan.usd_cents == 0
        assert plan.legs == ()
