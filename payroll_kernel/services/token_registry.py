"""
TokenRegistryService -- the bounded set of accepted payment tokens.

Responsibility:
    Add and remove accepted tokens, answer membership queries, and manage
    the accepted-token limit.  Tokens are stored in a dense slot array with
    an address index: O(1) lookup by address, O(1) append, O(1) removal by
    moving the last token into the vacated slot.

Architecture position:
    Kernel > Services.  Used by the rate registry, employee registry,
    allocation and payday services, and the treasury selector.

Invariants enforced:
    - No duplicate addresses (unique constraint + AlreadyExists check).
    - Dense slots: after every add/remove the live slots are exactly
      [0, count).
    - count <= token_limit at all times; set_limit cannot go below count.
    - Slots are unstable across removals and never leave this module as a
      key.  Every public method takes and returns addresses.

Failure modes:
    - TokenAlreadyExistsError, TokenLimitExceededError on add.
    - TokenNotFoundError on remove or lookup of an unaccepted address.
    - InvalidArgumentError on a negative rate or an unreachable limit.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select

from payroll_kernel.domain.disbursement import NATIVE_ASSET
from payroll_kernel.exceptions import (
    InvalidArgumentError,
    TokenAlreadyExistsError,
    TokenLimitExceededError,
    TokenNotFoundError,
)
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.token import AcceptedToken
from payroll_kernel.services.base import BaseService
from payroll_kernel.services.control_service import ControlService

logger = get_logger("services.token_registry")


@dataclass(frozen=True)
class TokenInfo:
    """Immutable view of an accepted token."""

    address: str
    slot: int
    usd_rate_cents: int


class TokenRegistryService(BaseService[AcceptedToken]):
    """Accepted-token registry with swap-with-last removal."""

    def __init__(self, session, clock=None):
        super().__init__(session, clock)
        self._control = ControlService(session, clock)

    @staticmethod
    def _to_dto(token: AcceptedToken) -> TokenInfo:
        return TokenInfo(
            address=token.address,
            slot=token.slot,
            usd_rate_cents=token.usd_rate_cents,
        )

    def _find(self, address: str) -> AcceptedToken | None:
        return self.session.execute(
            select(AcceptedToken).where(AcceptedToken.address == address)
        ).scalar_one_or_none()

    def _at_slot(self, slot: int) -> AcceptedToken:
        return self.session.execute(
            select(AcceptedToken).where(AcceptedToken.slot == slot)
        ).scalar_one()

    def require_accepted(self, address: str) -> AcceptedToken:
        """Get an accepted token row, raising if not accepted."""
        token = self._find(address)
        if token is None:
            raise TokenNotFoundError(address)
        return token

    # ------------------------------------------------------------------
    # Mutations (owner only)
    # ------------------------------------------------------------------

    def add_token(self, actor: str, address: str, usd_rate_cents: int) -> TokenInfo:
        """
        Accept a new token at the next free slot.

        Raises:
            UnauthorizedError: actor is not the owner.
            InvalidArgumentError: empty address, the native asset name, or a
                negative rate.
            TokenAlreadyExistsError: address already accepted.
            TokenLimitExceededError: registry already at its limit.
        """
        state = self._control.require_owner(actor)
        if not address:
            raise InvalidArgumentError("address", "token address must be non-empty")
        if address == NATIVE_ASSET:
            raise InvalidArgumentError("address", f"{NATIVE_ASSET!r} names the native asset")
        if usd_rate_cents < 0:
            raise InvalidArgumentError("usd_rate_cents", "rate must be non-negative")
        if self._find(address) is not None:
            raise TokenAlreadyExistsError(address)

        count = self.token_count()
        if count + 1 > state.token_limit:
            raise TokenLimitExceededError(count + 1, state.token_limit)

        token = AcceptedToken(
            address=address,
            slot=count,
            usd_rate_cents=usd_rate_cents,
            created_by=actor,
        )
        self.session.add(token)
        self.session.flush()
        logger.info(
            "token_added",
            extra={"token": address, "slot": count, "usd_rate_cents": usd_rate_cents},
        )
        return self._to_dto(token)

    def remove_token(self, actor: str, address: str) -> None:
        """
        Stop accepting a token.

        The last token moves into the removed token's slot so that slots
        stay dense.  When the removed token is the only one (or already the
        last), its slot is simply cleared.

        Raises:
            UnauthorizedError: actor is not the owner.
            TokenNotFoundError: registry empty or address not accepted.
        """
        self._control.require_owner(actor)
        count = self.token_count()
        if count == 0:
            raise TokenNotFoundError(address)
        token = self.require_accepted(address)

        vacated = token.slot
        last = self._at_slot(count - 1)

        self.session.delete(token)
        self.session.flush()

        if last is not token:
            last.slot = vacated
            last.updated_by = actor
            self.session.flush()

        logger.info(
            "token_removed",
            extra={
                "token": address,
                "vacated_slot": vacated,
                "moved_token": None if last is token else last.address,
            },
        )

    def set_limit(self, actor: str, limit: int) -> None:
        """
        Change the accepted-token cap.

        Raises:
            UnauthorizedError: actor is not the owner.
            InvalidArgumentError: limit is negative or below the current count.
        """
        state = self._control.require_owner(actor)
        count = self.token_count()
        if limit < 0 or limit < count:
            raise InvalidArgumentError(
                "limit", f"{limit} is below the {count} tokens already accepted"
            )
        previous = state.token_limit
        state.token_limit = limit
        state.updated_by = actor
        self.session.flush()
        logger.info(
            "token_limit_changed",
            extra={"previous_limit": previous, "limit": limit},
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_token_handled(self, address: str) -> bool:
        """True if the address is currently accepted.  Never mutates."""
        if self.token_count() == 0:
            return False
        return self._find(address) is not None

    def token_count(self) -> int:
        return self.session.execute(
            select(func.count()).select_from(AcceptedToken)
        ).scalar_one()

    def get_limit(self) -> int:
        return self._control.state().token_limit

    def get_token(self, address: str) -> TokenInfo:
        return self._to_dto(self.require_accepted(address))

    def list_tokens(self) -> list[TokenInfo]:
        """All accepted tokens ordered by slot."""
        tokens = self.session.execute(
            select(AcceptedToken).order_by(AcceptedToken.slot)
        ).scalars().all()
        return [self._to_dto(t) for t in tokens]

    def rates_by_address(self) -> dict[str, int]:
        return {t.address: t.usd_rate_cents for t in self.list_tokens()}
