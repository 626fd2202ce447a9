"""
SequenceService -- monotonic id allocation via locked counter rows.

Responsibility:
    Hands out strictly increasing integers for named sequences.  Employee
    ids come from here, which is what guarantees they start at 1 and are
    never reused, even after the employee holding one is removed.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by EmployeeRegistryService.add_employee.

Invariants enforced:
    - Sequence monotonicity: the locked counter row is the sole source of
      truth.  max(employee_id) + 1 is never used, because removed ids must
      stay retired.
    - Transactional: the increment is only visible after the caller's
      transaction commits.  A rolled-back add_employee does not burn an id.

Failure modes:
    - IntegrityError if two transactions create the same counter at once
      (PostgreSQL only; the ledger's single writer lock prevents it in
      process).  The enclosing operation aborts.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from payroll_kernel.db.base import Base
from payroll_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    EMPLOYEE_ID = "employee_id"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Postconditions:
            - Returns an integer > 0 strictly greater than any value
              previously returned for this sequence name.
        """
        counter = self._locked_counter(sequence_name)
        if counter is None:
            counter = SequenceCounter(name=sequence_name, current_value=0)
            self._session.add(counter)

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int:
        """Current value without incrementing (0 if never used)."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else 0
