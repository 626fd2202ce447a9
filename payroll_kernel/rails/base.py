"""
Payment rail contract -- the external transfer system payroll settles on.

The ledger never moves value itself.  It records what it owes, then hands
a batch of transfers to a rail that satisfies ``PaymentRail``.  The rail is
the only component that knows about balances.

Settlement contract:
    - ``transfer_batch`` is all-or-nothing: either every transfer in the
      batch is applied, or none is.
    - A rail reports refusal either by raising or by returning a falsy
      value.  ``settle`` treats both the same way (the "safe transfer"
      convention) and raises ``TransferFailedError``, which aborts and rolls
      back the ledger operation that requested the batch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

from payroll_kernel.domain.disbursement import NATIVE_ASSET
from payroll_kernel.exceptions import PayrollKernelError, TransferFailedError
from payroll_kernel.logging_config import get_logger

logger = get_logger("rails")

__all__ = ["NATIVE_ASSET", "PaymentRail", "Transfer", "settle"]


@dataclass(frozen=True)
class Transfer:
    """Move ``amount`` of ``asset`` from ``sender`` to ``recipient``."""

    asset: str
    sender: str
    recipient: str
    amount: int


@runtime_checkable
class PaymentRail(Protocol):
    """
    Abstract contract for payment rail implementations.

    ``asset`` is either ``NATIVE_ASSET`` or an accepted token address.
    """

    def balance_of(self, asset: str, holder: str) -> int:
        """Current balance of ``holder`` in ``asset`` (smallest units)."""
        ...

    def transfer_batch(self, transfers: Sequence[Transfer]) -> bool:
        """Apply every transfer atomically.  Falsy or raise on refusal."""
        ...


def settle(rail: PaymentRail, transfers: Sequence[Transfer]) -> None:
    """
    Submit a batch to the rail under the safe-transfer convention.

    Raises:
        TransferFailedError: the rail returned a falsy value or raised a
            non-kernel exception.  Kernel errors raised from inside the rail
            (for example a re-entrant ledger call) propagate unchanged.
    """
    batch = [t for t in transfers if t.amount > 0]
    if not batch:
        return
    head = batch[0]
    try:
        ok = rail.transfer_batch(batch)
    except PayrollKernelError:
        raise
    except Exception as exc:
        raise TransferFailedError(head.asset, head.recipient, head.amount, str(exc)) from exc
    if not ok:
        raise TransferFailedError(head.asset, head.recipient, head.amount, "rail refused batch")
    logger.info(
        "transfers_settled",
        extra={
            "transfer_count": len(batch),
            "assets": sorted({t.asset for t in batch}),
        },
    )
