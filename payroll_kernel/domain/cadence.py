"""
Cadence -- once-per-window rules for paydays and allocation changes.

Responsibility:
    Decides when an employee may next be paid or change their token
    allocation.  Pure functions over timestamps; no I/O.

Architecture position:
    Kernel > Domain.  Imported by services/ and config.

Invariants enforced:
    - An employee is eligible only once ``now`` is strictly later than the
      window anchor plus the payout interval.
    - Under ``CooldownPolicy.SHARED`` paydays and allocation changes consume
      one common window, so each gates the other.  Under
      ``CooldownPolicy.SEPARATE`` each has its own window.
    - The first allocation is never gated, so a new hire can choose a split
      before the first payday.  The first payday still waits one interval
      from the hire instant.
"""

from datetime import datetime, timedelta
from enum import Enum


class CooldownPolicy(str, Enum):
    """How allocation changes relate to the payday window."""

    SHARED = "shared"
    SEPARATE = "separate"


class CadenceOperation(str, Enum):
    """Operations subject to the monthly cadence."""

    PAYDAY = "payday"
    ALLOCATION = "allocation"


def window_anchor(
    operation: CadenceOperation,
    policy: CooldownPolicy,
    last_payout_at: datetime,
    last_allocation_at: datetime | None,
) -> datetime | None:
    """
    Return the instant the operation's current window started.

    ``None`` means the operation is not gated: an employee's first
    allocation is always open, under either policy.
    """
    if operation is CadenceOperation.ALLOCATION and last_allocation_at is None:
        return None
    if policy is CooldownPolicy.SHARED:
        if last_allocation_at is None:
            return last_payout_at
        return max(last_payout_at, last_allocation_at)
    if operation is CadenceOperation.PAYDAY:
        return last_payout_at
    return last_allocation_at


def next_eligible_at(anchor: datetime | None, interval: timedelta) -> datetime | None:
    """The boundary instant; eligibility starts strictly after it."""
    if anchor is None:
        return None
    return anchor + interval


def is_eligible(anchor: datetime | None, now: datetime, interval: timedelta) -> bool:
    boundary = next_eligible_at(anchor, interval)
    return boundary is None or now > boundary
