"""
Module: payroll_kernel.models.token
Responsibility: ORM persistence for accepted payment tokens and their USD rates.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - address is unique: a token is accepted at most once.
    - slot is unique and dense: live slots are exactly [0, count).  Removal
      moves the last token into the vacated slot (TokenRegistryService).
    - Slots are NOT durable identifiers.  Callers key tokens by address.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase
from payroll_kernel.db.types import BigAmount


class AcceptedToken(TrackedBase):
    """A payment token accepted for payouts and treasury valuation."""

    __tablename__ = "accepted_tokens"

    address: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    slot: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)

    # USD cents per token unit, set by the owner on add and by the oracle after
    usd_rate_cents: Mapped[int] = mapped_column(BigAmount(), nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<AcceptedToken {self.address} slot={self.slot} rate={self.usd_rate_cents}>"
