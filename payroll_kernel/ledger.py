"""
PayrollLedger -- the single owning service object for one payroll.

Responsibility:
    Public entry point for every payroll operation.  Opens one transaction
    per call, wires the kernel services onto that transaction's session,
    and settles the resulting transfers on the payment rail.

Architecture position:
    Top of the kernel.  The only module that commits, the only module that
    calls the payment rail, and the only module that holds the writer lock.

Invariants enforced:
    - Atomicity: each mutating call runs in one ``session_scope``.  Any
      exception rolls back everything the call flushed.
    - Single writer: mutating calls on one ledger are serialized by a
      ``threading.Lock``.  A mutating call from the thread that already
      holds the lock (a rail hook calling back mid-transfer) raises
      ReentrancyError instead of deadlocking.
    - Transfers last: state is flushed first and the rail batch is the
      final step inside the transaction.  A refused or failed batch aborts
      the call, so a cooldown is never stamped for pay that did not move.
    - Pause: while paused, every mutating call except ``unpause``,
      ``escape_hatch`` and ``add_funds`` raises PausedError.

Failure modes:
    Every PayrollKernelError propagates to the caller unchanged, after the
    transaction has been rolled back.

Usage:
    config = load_config("payroll.yaml")
    ledger = PayrollLedger.from_config(config, rail=InMemoryPaymentRail())
    ledger.add_token(config.owner_identity, "0xusdc", 100)
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Generator, Sequence

from sqlalchemy.orm import Session, sessionmaker

from payroll_kernel.config import PayrollConfig
from payroll_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.disbursement import NATIVE_ASSET, AllocationLine
from payroll_kernel.exceptions import InvalidArgumentError, ReentrancyError
from payroll_kernel.logging_config import get_logger, operation_context
from payroll_kernel.rails.base import PaymentRail, Transfer, settle
from payroll_kernel.selectors.treasury_selector import TreasuryHolding, TreasurySelector
from payroll_kernel.services.allocation_service import AllocationService
from payroll_kernel.services.control_service import ControlService
from payroll_kernel.services.employee_registry import EmployeeInfo, EmployeeRegistryService
from payroll_kernel.services.payday_service import PaydayService, PayoutInfo
from payroll_kernel.services.rate_registry import RateRegistryService
from payroll_kernel.services.token_registry import TokenInfo, TokenRegistryService

logger = get_logger("ledger")


class _Services:
    """Kernel services bound to one session."""

    def __init__(self, session: Session, config: PayrollConfig, clock: Clock):
        self.control = ControlService(session, clock)
        self.tokens = TokenRegistryService(session, clock)
        self.rates = RateRegistryService(session, clock)
        self.employees = EmployeeRegistryService(session, clock)
        self.allocation = AllocationService(
            session,
            clock,
            cooldown_policy=config.cooldown_policy,
            interval=config.payout_interval,
        )
        self.payday = PaydayService(
            session,
            clock,
            cooldown_policy=config.cooldown_policy,
            interval=config.payout_interval,
        )


class PayrollLedger:
    """
    Payroll for one treasury account.

    Every method takes the calling identity as ``actor``; role checks are
    made against the persisted owner, oracle and employee records.
    """

    def __init__(
        self,
        config: PayrollConfig,
        rail: PaymentRail,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
    ):
        if not isinstance(rail, PaymentRail):
            raise TypeError(f"{type(rail).__name__} does not implement PaymentRail")
        self.config = config
        self.rail = rail
        self.clock = clock or SystemClock()
        self._session_factory = session_factory or get_session_factory()
        self._lock = threading.Lock()
        self._writer_thread: int | None = None
        self._in_flight: str | None = None

    @classmethod
    def from_config(
        cls,
        config: PayrollConfig,
        rail: PaymentRail,
        clock: Clock | None = None,
    ) -> PayrollLedger:
        """Initialize the engine from ``config.database_url``, create tables, bootstrap."""
        init_engine_from_url(config.database_url)
        create_tables()
        ledger = cls(config, rail, get_session_factory(), clock)
        ledger.bootstrap()
        return ledger

    @property
    def treasury_account(self) -> str:
        return self.config.treasury_account

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _write(
        self,
        actor: str,
        operation: str,
        guarded: bool = True,
    ) -> Generator[_Services, None, None]:
        if self._writer_thread == threading.get_ident():
            logger.error(
                "reentrant_call_rejected",
                extra={"rejected_operation": operation, "in_flight": self._in_flight},
            )
            raise ReentrancyError(operation, self._in_flight)

        with self._lock:
            self._writer_thread = threading.get_ident()
            self._in_flight = operation
            try:
                with operation_context(actor, operation):
                    with session_scope(self._session_factory) as session:
                        services = _Services(session, self.config, self.clock)
                        if guarded:
                            services.control.require_not_paused(operation)
                        yield services
            finally:
                self._writer_thread = None
                self._in_flight = None

    @contextmanager
    def _read(self) -> Generator[Session, None, None]:
        with session_scope(self._session_factory) as session:
            yield session

    def _settle(self, transfers: Sequence[Transfer]) -> None:
        settle(self.rail, transfers)

    # ------------------------------------------------------------------
    # Lifecycle and control
    # ------------------------------------------------------------------

    def bootstrap(self) -> None:
        """Create the ledger state row with the configured owner and limit."""
        owner = self.config.owner_identity
        with self._write(owner, "bootstrap", guarded=False) as svc:
            svc.control.bootstrap(owner, self.config.token_limit)

    def pause(self, actor: str) -> None:
        with self._write(actor, "pause") as svc:
            svc.control.pause(actor)

    def unpause(self, actor: str) -> None:
        with self._write(actor, "unpause", guarded=False) as svc:
            svc.control.unpause(actor)

    def transfer_ownership(self, actor: str, new_owner: str) -> None:
        with self._write(actor, "transfer_ownership") as svc:
            svc.control.transfer_ownership(actor, new_owner)

    def escape_hatch(self, actor: str) -> dict[str, int]:
        """
        Pause, then sweep every treasury balance to the owner.

        Returns:
            Swept amount per asset, for assets with a non-zero balance.
        """
        with self._write(actor, "escape_hatch", guarded=False) as svc:
            if not svc.control.state().is_paused:
                svc.control.pause(actor)
            else:
                svc.control.require_owner(actor)
            assets = [NATIVE_ASSET] + [t.address for t in svc.tokens.list_tokens()]
            swept: dict[str, int] = {}
            for asset in assets:
                amount = self.rail.balance_of(asset, self.treasury_account)
                if amount > 0:
                    swept[asset] = amount
            self._settle(
                [
                    Transfer(
                        asset=asset,
                        sender=self.treasury_account,
                        recipient=actor,
                        amount=amount,
                    )
                    for asset, amount in swept.items()
                ]
            )
            logger.warning("escape_hatch_executed", extra={"swept": swept})
            return swept

    def add_funds(self, funder: str, amount: int) -> None:
        """Move ``amount`` native units from ``funder`` into the treasury."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidArgumentError("amount", "funding amount must be a positive int")
        with self._write(funder, "add_funds", guarded=False) as svc:
            svc.control.state()
            self._settle(
                [
                    Transfer(
                        asset=NATIVE_ASSET,
                        sender=funder,
                        recipient=self.treasury_account,
                        amount=amount,
                    )
                ]
            )
            logger.info("funds_added", extra={"funder": funder, "amount": amount})

    # ------------------------------------------------------------------
    # Tokens and rates
    # ------------------------------------------------------------------

    def add_token(self, actor: str, address: str, usd_rate_cents: int) -> TokenInfo:
        with self._write(actor, "add_token") as svc:
            return svc.tokens.add_token(actor, address, usd_rate_cents)

    def remove_token(self, actor: str, address: str) -> None:
        with self._write(actor, "remove_token") as svc:
            svc.tokens.remove_token(actor, address)

    def set_limit(self, actor: str, limit: int) -> None:
        with self._write(actor, "set_limit") as svc:
            svc.tokens.set_limit(actor, limit)

    def set_oracle(self, actor: str, oracle_identity: str) -> None:
        with self._write(actor, "set_oracle") as svc:
            svc.rates.set_oracle(actor, oracle_identity)

    def set_exchange_rate(self, actor: str, token_address: str, usd_rate_cents: int) -> None:
        with self._write(actor, "set_exchange_rate") as svc:
            svc.rates.set_exchange_rate(actor, token_address, usd_rate_cents)

    def set_native_exchange_rate(self, actor: str, usd_rate_cents: int) -> None:
        with self._write(actor, "set_native_exchange_rate") as svc:
            svc.rates.set_native_exchange_rate(actor, usd_rate_cents)

    # ------------------------------------------------------------------
    # Employees
    # ------------------------------------------------------------------

    def add_employee(
        self,
        actor: str,
        identity: str,
        allowed_tokens: Sequence[str],
        yearly_usd_cents: int,
    ) -> EmployeeInfo:
        with self._write(actor, "add_employee") as svc:
            return svc.employees.add_employee(actor, identity, allowed_tokens, yearly_usd_cents)

    def set_employee_salary(self, actor: str, employee_id: int, yearly_usd_cents: int) -> EmployeeInfo:
        with self._write(actor, "set_employee_salary") as svc:
            return svc.employees.set_employee_salary(actor, employee_id, yearly_usd_cents)

    def remove_employee(self, actor: str, employee_id: int) -> None:
        with self._write(actor, "remove_employee") as svc:
            svc.employees.remove_employee(actor, employee_id)

    def determine_allocation(
        self,
        actor: str,
        tokens: Sequence[str],
        percentages: Sequence[int],
    ) -> tuple[AllocationLine, ...]:
        with self._write(actor, "determine_allocation") as svc:
            return svc.allocation.determine_allocation(actor, tokens, percentages)

    def payday(self, actor: str) -> PayoutInfo:
        """
        Pay the calling employee one month's salary.

        The payout is recorded and the cooldown stamped before the rail is
        called; if the rail refuses the batch, all of it rolls back.
        """
        with self._write(actor, "payday") as svc:
            payout = svc.payday.payday(actor)
            self._settle(
                [
                    Transfer(
                        asset=leg.asset,
                        sender=self.treasury_account,
                        recipient=actor,
                        amount=leg.amount,
                    )
                    for leg in payout.legs
                ]
            )
            logger.info(
                "payday_disbursed",
                extra={
                    "employee_id": payout.employee_id,
                    "usd_cents": payout.usd_cents,
                    "assets": [leg.asset for leg in payout.legs],
                },
            )
            return payout

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def owner(self) -> str:
        with self._read() as session:
            return ControlService(session, self.clock).state().owner_identity

    def is_paused(self) -> bool:
        with self._read() as session:
            return ControlService(session, self.clock).state().is_paused

    def get_employee_id(self, identity: str) -> int:
        with self._read() as session:
            return EmployeeRegistryService(session, self.clock).get_employee_id(identity)

    def get_employee_count(self) -> int:
        with self._read() as session:
            return EmployeeRegistryService(session, self.clock).get_employee_count()

    def get_employee(self, employee_id: int) -> EmployeeInfo:
        with self._read() as session:
            return EmployeeRegistryService(session, self.clock).get_employee(employee_id)

    def get_salaries_summation_usd(self) -> int:
        with self._read() as session:
            return EmployeeRegistryService(session, self.clock).get_salaries_summation_usd()

    def get_allocation(self, employee_id: int) -> tuple[AllocationLine, ...]:
        with self._read() as session:
            return _Services(session, self.config, self.clock).allocation.get_allocation(
                employee_id
            )

    def is_payday_eligible(self, employee_id: int) -> bool:
        with self._read() as session:
            return _Services(session, self.config, self.clock).payday.is_payday_eligible(
                employee_id
            )

    def next_payday_at(self, employee_id: int) -> datetime:
        with self._read() as session:
            return _Services(session, self.config, self.clock).payday.next_payday_at(
                employee_id
            )

    def list_payouts(self, employee_id: int) -> list[PayoutInfo]:
        with self._read() as session:
            return _Services(session, self.config, self.clock).payday.list_payouts(
                employee_id
            )

    def is_token_handled(self, address: str) -> bool:
        with self._read() as session:
            return TokenRegistryService(session, self.clock).is_token_handled(address)

    def get_token(self, address: str) -> TokenInfo:
        with self._read() as session:
            return TokenRegistryService(session, self.clock).get_token(address)

    def list_tokens(self) -> list[TokenInfo]:
        with self._read() as session:
            return TokenRegistryService(session, self.clock).list_tokens()

    def token_count(self) -> int:
        with self._read() as session:
            return TokenRegistryService(session, self.clock).token_count()

    def get_limit(self) -> int:
        with self._read() as session:
            return TokenRegistryService(session, self.clock).get_limit()

    def get_oracle(self) -> str | None:
        with self._read() as session:
            return RateRegistryService(session, self.clock).get_oracle()

    def get_native_exchange_rate(self) -> int:
        with self._read() as session:
            return RateRegistryService(session, self.clock).get_native_exchange_rate()

    def get_token_rate(self, token_address: str) -> int:
        with self._read() as session:
            return RateRegistryService(session, self.clock).get_token_rate(token_address)

    def treasury_holdings(self) -> list[TreasuryHolding]:
        with self._read() as session:
            return self._treasury(session).holdings()

    def total_balance_in_usd_cents(self) -> tuple[int, int]:
        with self._read() as session:
            return self._treasury(session).total_balance_in_usd_cents()

    def calculate_payroll_burnrate(self) -> int:
        with self._read() as session:
            return self._treasury(session).calculate_payroll_burnrate()

    def calculate_payroll_runway(self) -> int:
        with self._read() as session:
            return self._treasury(session).calculate_payroll_runway()

    def _treasury(self, session: Session) -> TreasurySelector:
        return TreasurySelector(session, self.rail, self.treasury_account)
