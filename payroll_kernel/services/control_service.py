"""
ControlService -- ownership, role checks and the pause switch.

Responsibility:
    Owns the single PayrollState row and answers "may this caller do this
    now?" for every other service: owner-only, oracle-only and the
    not-paused guard.  Also flips the pause flag, including the pause half
    of the escape hatch (the sweep itself is settled by PayrollLedger).

Architecture position:
    Kernel > Services.  Every registry service composes one of these.

Invariants enforced:
    - Exactly one PayrollState row; bootstrap() is idempotent.
    - The state row is read FOR UPDATE by mutating callers so that the
      aggregates it holds are updated under a row lock on PostgreSQL.

Failure modes:
    - LedgerNotInitializedError if bootstrap() was never run.
    - UnauthorizedError on a role mismatch.
    - PausedError on a guarded operation while paused.
"""

from sqlalchemy import select

from payroll_kernel.exceptions import (
    InvalidArgumentError,
    LedgerNotInitializedError,
    PausedError,
    UnauthorizedError,
)
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.state import DEFAULT_TOKEN_LIMIT, PayrollState
from payroll_kernel.services.base import BaseService

logger = get_logger("services.control")

OWNER_ROLE = "owner"
ORACLE_ROLE = "oracle"


class ControlService(BaseService[PayrollState]):
    """Role checks and pause state for one ledger."""

    def bootstrap(
        self,
        owner_identity: str,
        token_limit: int = DEFAULT_TOKEN_LIMIT,
    ) -> PayrollState:
        """Create the state row if it does not exist yet."""
        state = self.session.execute(select(PayrollState)).scalar_one_or_none()
        if state is not None:
            return state

        state = PayrollState(
            owner_identity=owner_identity,
            token_limit=token_limit,
            native_usd_rate_cents=0,
            salaries_summation_usd_cents=0,
            active_employee_count=0,
            is_paused=False,
            created_by=owner_identity,
        )
        self.session.add(state)
        self.session.flush()
        logger.info(
            "payroll_state_bootstrapped",
            extra={"owner": owner_identity, "token_limit": token_limit},
        )
        return state

    def state(self, for_update: bool = False) -> PayrollState:
        stmt = select(PayrollState)
        if for_update:
            stmt = stmt.with_for_update()
        state = self.session.execute(stmt).scalar_one_or_none()
        if state is None:
            raise LedgerNotInitializedError()
        return state

    def require_owner(self, actor: str) -> PayrollState:
        state = self.state(for_update=True)
        if actor != state.owner_identity:
            raise UnauthorizedError(actor, OWNER_ROLE)
        return state

    def require_oracle(self, actor: str) -> PayrollState:
        state = self.state(for_update=True)
        if state.oracle_identity is None or actor != state.oracle_identity:
            raise UnauthorizedError(actor, ORACLE_ROLE)
        return state

    def require_not_paused(self, operation: str) -> None:
        if self.state().is_paused:
            raise PausedError(operation)

    def pause(self, actor: str) -> None:
        state = self.require_owner(actor)
        state.is_paused = True
        state.updated_by = actor
        self.session.flush()
        logger.warning("payroll_paused", extra={"owner": actor})

    def unpause(self, actor: str) -> None:
        state = self.require_owner(actor)
        state.is_paused = False
        state.updated_by = actor
        self.session.flush()
        logger.info("payroll_unpaused", extra={"owner": actor})

    def transfer_ownership(self, actor: str, new_owner: str) -> None:
        state = self.require_owner(actor)
        if not new_owner:
            raise InvalidArgumentError("new_owner", "identity must be non-empty")
        state.owner_identity = new_owner
        state.updated_by = actor
        self.session.flush()
        logger.warning(
            "ownership_transferred",
            extra={"previous_owner": actor, "new_owner": new_owner},
        )
