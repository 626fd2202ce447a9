"""
Module: payroll_kernel.models.employee
Responsibility: ORM persistence for employees, the tokens they may be paid in,
    and their payout allocation.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - employee_id is allocated from the ``employee_id`` sequence, starts at 1
      and is never reused.  0 is reserved as the "absent" sentinel.
    - identity is unique among rows that carry one.  Tombstoned rows have
      identity NULL, so the same identity can be hired again under a new id.
    - A tombstone keeps its row (and id) with salary 0, no allowed tokens and
      no allocation lines.
    - allocation_lines positions are 0..n-1 with no gaps; percentages sum to
      at most 100 (checked in domain/disbursement.validate_allocation).

Audit relevance:
    last_payout_at drives the payday cadence; carried_twelfths holds the
    salary remainder that has accrued but not been paid yet.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_kernel.db.base import Base, TrackedBase, UUIDString
from payroll_kernel.db.types import BigAmount


class Employee(TrackedBase):
    """
    An identity entitled to recurring USD-denominated pay.

    Contract:
        Rows are never deleted.  Removal tombstones the row in place.
    """

    __tablename__ = "employees"

    employee_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    identity: Mapped[str | None] = mapped_column(String(100), nullable=True, unique=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    yearly_usd_cents: Mapped[int] = mapped_column(BigAmount(), nullable=False, default=0)

    last_payout_at: Mapped[datetime] = mapped_column(nullable=False)

    last_allocation_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Salary remainder (yearly % 12) accrued across paydays, in twelfths of a cent
    carried_twelfths: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    allowed_tokens: Mapped[list["EmployeeAllowedToken"]] = relationship(
        back_populates="employee",
        cascade="all, delete-orphan",
        order_by="EmployeeAllowedToken.token_address",
    )

    allocation_lines: Mapped[list["AllocationLineModel"]] = relationship(
        back_populates="employee",
        cascade="all, delete-orphan",
        order_by="AllocationLineModel.position",
    )

    def __repr__(self) -> str:
        state = "active" if self.is_active else "tombstone"
        return f"<Employee {self.employee_id} {self.identity} {state}>"


class EmployeeAllowedToken(Base):
    """One token an employee was registered as accepting."""

    __tablename__ = "employee_allowed_tokens"

    __table_args__ = (
        UniqueConstraint("employee_pk", "token_address", name="uq_allowed_token"),
    )

    employee_pk: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("employees.id"), nullable=False
    )

    token_address: Mapped[str] = mapped_column(String(100), nullable=False)

    employee: Mapped[Employee] = relationship(back_populates="allowed_tokens")


class AllocationLineModel(Base):
    """One (token, percentage) line of an employee's payout allocation."""

    __tablename__ = "allocation_lines"

    __table_args__ = (
        UniqueConstraint("employee_pk", "position", name="uq_allocation_position"),
    )

    employee_pk: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("employees.id"), nullable=False
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False)

    token_address: Mapped[str] = mapped_column(String(100), nullable=False)

    percentage: Mapped[int] = mapped_column(Integer, nullable=False)

    employee: Mapped[Employee] = relationship(back_populates="allocation_lines")
