"""
Module: payroll_kernel.models.payout
Responsibility: ORM persistence for completed paydays and the per-asset legs
    each one settled.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - A Payout row exists only for a committed payday: it is written in the
      same transaction as the cooldown stamp and rolls back with it if the
      rail transfer fails.
    - Sum of leg usd_cents == payout usd_cents.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_kernel.db.base import Base, UUIDString
from payroll_kernel.db.types import BigAmount


class Payout(Base):
    """One successful payday."""

    __tablename__ = "payouts"

    __table_args__ = (Index("idx_payout_employee", "employee_id", "paid_at"),)

    employee_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    recipient: Mapped[str] = mapped_column(String(100), nullable=False)

    paid_at: Mapped[datetime] = mapped_column(nullable=False)

    usd_cents: Mapped[int] = mapped_column(BigAmount(), nullable=False)

    legs: Mapped[list["PayoutLegModel"]] = relationship(
        back_populates="payout",
        cascade="all, delete-orphan",
        order_by="PayoutLegModel.position",
    )

    def __repr__(self) -> str:
        return f"<Payout employee={self.employee_id} cents={self.usd_cents}>"


class PayoutLegModel(Base):
    """Amount of one asset sent as part of a payout."""

    __tablename__ = "payout_legs"

    payout_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("payouts.id"), nullable=False
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False)

    asset: Mapped[str] = mapped_column(String(100), nullable=False)

    usd_cents: Mapped[int] = mapped_column(BigAmount(), nullable=False)

    amount: Mapped[int] = mapped_column(BigAmount(), nullable=False)

    payout: Mapped[Payout] = relationship(back_populates="legs")
