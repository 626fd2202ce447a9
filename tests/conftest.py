"""
Pytest fixtures for the payroll kernel test suite.

Provides:
- A fresh in-memory SQLite database per test
- DeterministicClock, InMemoryPaymentRail and a bootstrapped PayrollLedger
- A raw session for service-level tests
- captured_logs for asserting on structured log events

Environment Variables:
- DATABASE_URL is ignored here; tests always run on in-memory SQLite.
"""

import json
import logging
from io import StringIO

import pytest
from sqlalchemy.orm import Session

from payroll_kernel.config import PayrollConfig
from payroll_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from payroll_kernel.domain.cadence import CooldownPolicy
from payroll_kernel.domain.clock import DeterministicClock
from payroll_kernel.ledger import PayrollLedger
from payroll_kernel.logging_config import LogContext, StructuredFormatter
from payroll_kernel.rails import NATIVE_ASSET, InMemoryPaymentRail
from payroll_kernel.services.control_service import ControlService

OWNER = "acct-owner"
ORACLE = "acct-oracle"
TREASURY = "payroll-treasury"
ALICE = "acct-alice"
BOB = "acct-bob"

ONE_NATIVE = 10**18


@pytest.fixture
def engine():
    eng = init_engine_from_url("sqlite://")
    create_tables(eng)
    yield eng
    drop_tables(eng)
    reset_engine()


@pytest.fixture
def session_factory(engine):
    return get_session_factory()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def rail() -> InMemoryPaymentRail:
    return InMemoryPaymentRail()


@pytest.fixture
def cooldown_policy() -> CooldownPolicy:
    """Override in a module to run its tests under another policy."""
    return CooldownPolicy.SHARED


@pytest.fixture
def config(cooldown_policy) -> PayrollConfig:
    return PayrollConfig(
        owner_identity=OWNER,
        treasury_account=TREASURY,
        cooldown_policy=cooldown_policy,
    )


@pytest.fixture
def ledger(config, rail, session_factory, clock) -> PayrollLedger:
    payroll = PayrollLedger(config, rail, session_factory=session_factory, clock=clock)
    payroll.bootstrap()
    return payroll


@pytest.fixture
def session(session_factory) -> Session:
    """Bootstrapped session for service tests.  Rolled back at teardown."""
    sess = session_factory()
    ControlService(sess).bootstrap(OWNER)
    sess.flush()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def fund_treasury(rail):
    """Deposit ``amount`` of ``asset`` straight into the treasury account."""

    def _fund(amount: int, asset: str = NATIVE_ASSET) -> None:
        rail.deposit(asset, TREASURY, amount)

    return _fund


@pytest.fixture
def oracle_ledger(ledger) -> PayrollLedger:
    """Ledger with ORACLE installed and a native rate of $1 per native unit."""
    ledger.set_oracle(OWNER, ORACLE)
    ledger.set_native_exchange_rate(ORACLE, 100)
    return ledger


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.add_token(OWNER, "0xusdc", 100)
            logs = captured_logs()
            assert any(r["message"] == "token_added" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.INFO)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)
    LogContext.clear()
