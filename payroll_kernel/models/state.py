"""
Module: payroll_kernel.models.state
Responsibility: ORM persistence for the single payroll state row: who owns the
    ledger, who the oracle is, the native exchange rate, the accepted-token
    limit, the pause flag, and the maintained aggregates.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Exactly one row per ledger database (created by bootstrap).
    - salaries_summation_usd_cents == sum of yearly_usd_cents over active
      employees.  Only EmployeeRegistryService.set_employee_salary moves it.
    - active_employee_count == number of active employees.
"""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase
from payroll_kernel.db.types import BigAmount

DEFAULT_TOKEN_LIMIT = 20


class PayrollState(TrackedBase):
    """Global, process-lifetime state of one payroll ledger."""

    __tablename__ = "payroll_state"

    owner_identity: Mapped[str] = mapped_column(String(100), nullable=False)

    oracle_identity: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # USD cents per 10**18 native units
    native_usd_rate_cents: Mapped[int] = mapped_column(
        BigAmount(), nullable=False, default=0
    )

    token_limit: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_TOKEN_LIMIT
    )

    salaries_summation_usd_cents: Mapped[int] = mapped_column(
        BigAmount(), nullable=False, default=0
    )

    active_employee_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    is_paused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<PayrollState owner={self.owner_identity} paused={self.is_paused}>"
