"""
Module: payroll_kernel.db.types
Responsibility: Portable column types for quantities and instants that the
    stock SQLAlchemy types cannot carry faithfully across PostgreSQL and SQLite.
Architecture position: Kernel > DB.  May be imported by models/ and db/base.py.
    MUST NOT import from models/, services/, selectors/, or domain/.

Invariants enforced:
    - Exact integers.  Native balances are counted in 10**-18 units and
      treasury valuations multiply them by cent rates, so values routinely
      exceed 64 bits.  BigAmount stores them as decimal strings; they are
      never coerced through float or a 64-bit column.
    - Timezone-aware instants.  UTCDateTime always returns aware UTC
      datetimes, even on backends (SQLite) that drop tzinfo on storage.

Failure modes:
    - ValueError on binding a non-integral value to a BigAmount column, or
      reading back a non-integral string (data corruption).
    - ValueError on binding a naive datetime to a UTCDateTime column.
"""

from datetime import timezone

from sqlalchemy import DateTime, String
from sqlalchemy.types import TypeDecorator

# Room for 10**78 - more than a uint256.
BIG_AMOUNT_DIGITS = 80


class BigAmount(TypeDecorator):
    """
    Arbitrary-precision non-float integer stored as a decimal string.

    Contract:
        Python ``int`` in, Python ``int`` out.  Bound values are rendered
        with ``str(int(value))``, so bools and Decimals with fractional parts
        are rejected before they reach the database.
    """

    impl = String(BIG_AMOUNT_DIGITS)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, bool) or int(value) != value:
            raise ValueError(f"BigAmount requires an integer, got {value!r}")
        return str(int(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime normalised to UTC on the way in and out."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"naive datetime not allowed: {value!r}")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

