"""
RateRegistryService -- oracle-fed USD exchange rates.

Responsibility:
    Holds the native-currency rate (USD cents per 10**18 native units) and
    each accepted token's rate (USD cents per token unit).  Only the oracle
    identity may change rates; only the owner may name the oracle.

Architecture position:
    Kernel > Services.  Reads by payday and the treasury selector.

Non-goals:
    No staleness checks, bounds checks, time-weighting or multi-oracle
    consensus.  The oracle is trusted.
"""

from payroll_kernel.exceptions import InvalidArgumentError
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.state import PayrollState
from payroll_kernel.services.base import BaseService
from payroll_kernel.services.control_service import ControlService
from payroll_kernel.services.token_registry import TokenRegistryService

logger = get_logger("services.rate_registry")


class RateRegistryService(BaseService[PayrollState]):
    """Oracle-controlled rates for the native asset and accepted tokens."""

    def __init__(self, session, clock=None):
        super().__init__(session, clock)
        self._control = ControlService(session, clock)
        self._tokens = TokenRegistryService(session, clock)

    def set_oracle(self, actor: str, oracle_identity: str) -> None:
        """Replace the trusted oracle.  Owner only, no confirmation step."""
        state = self._control.require_owner(actor)
        previous = state.oracle_identity
        state.oracle_identity = oracle_identity
        state.updated_by = actor
        self.session.flush()
        logger.warning(
            "oracle_changed",
            extra={"previous_oracle": previous, "oracle": oracle_identity},
        )

    def set_native_exchange_rate(self, actor: str, usd_rate_cents: int) -> None:
        state = self._control.require_oracle(actor)
        if usd_rate_cents < 0:
            raise InvalidArgumentError("usd_rate_cents", "rate must be non-negative")
        state.native_usd_rate_cents = usd_rate_cents
        state.updated_by = actor
        self.session.flush()
        logger.info("native_rate_set", extra={"usd_rate_cents": usd_rate_cents})

    def set_exchange_rate(self, actor: str, token_address: str, usd_rate_cents: int) -> None:
        """
        Overwrite an accepted token's rate.

        Raises:
            UnauthorizedError: actor is not the oracle.
            TokenNotFoundError: token is not accepted.
            InvalidArgumentError: negative rate.
        """
        self._control.require_oracle(actor)
        token = self._tokens.require_accepted(token_address)
        if usd_rate_cents < 0:
            raise InvalidArgumentError("usd_rate_cents", "rate must be non-negative")
        token.usd_rate_cents = usd_rate_cents
        token.updated_by = actor
        self.session.flush()
        logger.info(
            "token_rate_set",
            extra={"token": token_address, "usd_rate_cents": usd_rate_cents},
        )

    def get_native_exchange_rate(self) -> int:
        return self._control.state().native_usd_rate_cents

    def get_token_rate(self, token_address: str) -> int:
        """Raises TokenNotFoundError if the token is not accepted."""
        return self._tokens.require_accepted(token_address).usd_rate_cents

    def get_oracle(self) -> str | None:
        return self._control.state().oracle_identity
