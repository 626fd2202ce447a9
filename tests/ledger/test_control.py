"""Tests for pause, unpause, escape hatch, funding and ownership."""

import pytest

from payroll_kernel.exceptions import (
    InvalidArgumentError,
    PausedError,
    TransferFailedError,
    UnauthorizedError,
)
from payroll_kernel.ledger import PayrollLedger
from payroll_kernel.rails import NATIVE_ASSET
from tests.conftest import ALICE, ONE_NATIVE, ORACLE, OWNER, TREASURY


class TestPause:

    @pytest.fixture
    def paused(self, ledger):
        ledger.add_token(OWNER, "0xa", 1)
        ledger.add_employee(OWNER, ALICE, [], 1_200_000)
        ledger.pause(OWNER)
        return ledger

    def test_only_owner_pauses(self, ledger):
        with pytest.raises(UnauthorizedError):
            ledger.pause(ALICE)
        assert not ledger.is_paused()

    @pytest.mark.parametrize(
        "call",
        [
            lambda p: p.add_token(OWNER, "0xb", 1),
            lambda p: p.remove_token(OWNER, "0xa"),
            lambda p: p.set_limit(OWNER, 5),
            lambda p: p.set_oracle(OWNER, ORACLE),
            lambda p: p.set_native_exchange_rate(ORACLE, 1),
            lambda p: p.set_exchange_rate(ORACLE, "0xa", 1),
            lambda p: p.add_employee(OWNER, "acct-carol", [], 1),
            lambda p: p.set_employee_salary(OWNER, 1, 5),
            lambda p: p.remove_employee(OWNER, 1),
            lambda p: p.determine_allocation(ALICE, ["0xa"], [10]),
            lambda p: p.payday(ALICE),
            lambda p: p.pause(OWNER),
            lambda p: p.transfer_ownership(OWNER, ALICE),
        ],
    )
    def test_mutations_rejected_while_paused(self, paused, call):
        with pytest.raises(PausedError):
            call(paused)

    def test_pause_check_comes_before_role_check(self, paused):
        with pytest.raises(PausedError) as exc_info:
            paused.add_token(ALICE, "0xb", 1)
        assert exc_info.value.operation == "add_token"

    def test_reads_work_while_paused(self, paused):
        assert paused.get_employee_count() == 1
        assert paused.is_token_handled("0xa")
        assert paused.calculate_payroll_burnrate() == 100_000

    def test_unpause_restores_mutations(self, paused):
        paused.unpause(OWNER)
        assert not paused.is_paused()
        paused.add_token(OWNER, "0xb", 1)
        assert paused.token_count() == 2

    def test_only_owner_unpauses(self, paused):
        with pytest.raises(UnauthorizedError):
            paused.unpause(ALICE)
        assert paused.is_paused()

    def test_funding_allowed_while_paused(self, paused, rail):
        rail.deposit(NATIVE_ASSET, ALICE, 3)
        paused.add_funds(ALICE, 3)
        assert rail.balance_of(NATIVE_ASSET, TREASURY) == 3


class TestEscapeHatch:

    def test_sweeps_native_and_every_token(self, ledger, rail):
        ledger.add_token(OWNER, "0xa", 1)
        ledger.add_token(OWNER, "0xb", 1)
        ledger.add_token(OWNER, "0xempty", 1)
        rail.deposit(NATIVE_ASSET, TREASURY, 7)
        rail.deposit("0xa", TREASURY, 11)
        rail.deposit("0xb", TREASURY, 13)

        swept = ledger.escape_hatch(OWNER)

        assert swept == {NATIVE_ASSET: 7, "0xa": 11, "0xb": 13}
        for asset in (NATIVE_ASSET, "0xa", "0xb"):
            assert rail.balance_of(asset, TREASURY) == 0
        assert rail.balance_of("0xb", OWNER) == 13

    def test_empty_treasury(self, ledger):
        assert ledger.escape_hatch(OWNER) == {}
        assert ledger.is_paused()

    def test_only_owner(self, ledger, rail):
        rail.deposit(NATIVE_ASSET, TREASURY, 7)
        with pytest.raises(UnauthorizedError):
            ledger.escape_hatch(ALICE)
        assert not ledger.is_paused()
        assert rail.balance_of(NATIVE_ASSET, TREASURY) == 7

    def test_works_while_already_paused(self, ledger, rail):
        ledger.pause(OWNER)
        rail.deposit(NATIVE_ASSET, TREASURY, 7)
        assert ledger.escape_hatch(OWNER) == {NATIVE_ASSET: 7}

    def test_already_paused_still_requires_owner(self, ledger):
        ledger.pause(OWNER)
        with pytest.raises(UnauthorizedError):
            ledger.escape_hatch(ALICE)

    def test_refused_sweep_leaves_ledger_unpaused(self, ledger, rail):
        rail.deposit(NATIVE_ASSET, TREASURY, 7)
        rail.refuse(NATIVE_ASSET)
        with pytest.raises(TransferFailedError):
            ledger.escape_hatch(OWNER)
        assert not ledger.is_paused()

    def test_is_logged(self, ledger, rail, captured_logs):
        rail.deposit(NATIVE_ASSET, TREASURY, 7)
        ledger.escape_hatch(OWNER)
        record = next(r for r in captured_logs() if r["message"] == "escape_hatch_executed")
        assert record["swept"] == {NATIVE_ASSET: 7}
        assert record["operation"] == "escape_hatch"
        assert record["actor_id"] == OWNER


class TestFunding:

    def test_funder_needs_the_balance(self, ledger):
        with pytest.raises(TransferFailedError):
            ledger.add_funds(ALICE, ONE_NATIVE)

    @pytest.mark.parametrize("amount", [0, -1, True])
    def test_amount_must_be_positive(self, ledger, amount):
        with pytest.raises(InvalidArgumentError):
            ledger.add_funds(OWNER, amount)


class TestOwnership:

    def test_transfer_moves_every_owner_right(self, ledger):
        ledger.transfer_ownership(OWNER, ALICE)
        assert ledger.owner() == ALICE
        with pytest.raises(UnauthorizedError):
            ledger.add_token(OWNER, "0xa", 1)
        ledger.add_token(ALICE, "0xa", 1)
        ledger.pause(ALICE)
        assert ledger.is_paused()

    def test_only_owner(self, ledger):
        with pytest.raises(UnauthorizedError):
            ledger.transfer_ownership(ALICE, ALICE)

    def test_empty_identity_rejected(self, ledger):
        with pytest.raises(InvalidArgumentError):
            ledger.transfer_ownership(OWNER, "")
        assert ledger.owner() == OWNER


class TestConstruction:

    def test_rail_must_implement_protocol(self, config, session_factory):
        with pytest.raises(TypeError):
            PayrollLedger(config, rail=object(), session_factory=session_factory)

    def test_bootstrap_is_idempotent(self, ledger):
        ledger.add_token(OWNER, "0xa", 1)
        ledger.bootstrap()
        assert ledger.token_count() == 1
        assert ledger.get_limit() == 20
