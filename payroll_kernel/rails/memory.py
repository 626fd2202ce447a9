"""In-memory payment rail for development, demos and tests."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Callable, Sequence

from payroll_kernel.rails.base import Transfer


class InMemoryPaymentRail:
    """
    Balance book kept in process memory.

    Batches are validated in full before any balance moves, so a batch with
    one unfunded transfer leaves every balance untouched and returns False.

    ``before_settle`` is invoked with the batch after validation and before
    balances move, the way a token contract hands control to a recipient
    hook mid-transfer.  If it raises, nothing is applied.
    """

    def __init__(self, before_settle: Callable[[Sequence[Transfer]], None] | None = None):
        self._balances: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._refused_assets: set[str] = set()
        self._lock = threading.Lock()
        self.before_settle = before_settle
        self.settled: list[Transfer] = []

    def deposit(self, asset: str, holder: str, amount: int) -> None:
        """Mint ``amount`` to ``holder`` outside of any batch."""
        if amount < 0:
            raise ValueError("deposit amount must be non-negative")
        with self._lock:
            self._balances[asset][holder] += amount

    def refuse(self, asset: str) -> None:
        """Make every batch touching ``asset`` return False."""
        self._refused_assets.add(asset)

    def accept(self, asset: str) -> None:
        self._refused_assets.discard(asset)

    def balance_of(self, asset: str, holder: str) -> int:
        with self._lock:
            return self._balances[asset][holder]

    def transfer_batch(self, transfers: Sequence[Transfer]) -> bool:
        with self._lock:
            pending: dict[tuple[str, str], int] = defaultdict(int)
            for t in transfers:
                if t.amount < 0 or t.asset in self._refused_assets:
                    return False
                pending[(t.asset, t.sender)] += t.amount
            for (asset, sender), needed in pending.items():
                if self._balances[asset][sender] < needed:
                    return False

        if self.before_settle is not None:
            self.before_settle(transfers)

        with self._lock:
            for (asset, sender), needed in pending.items():
                if self._balances[asset][sender] < needed:
                    return False
            for t in transfers:
                self._balances[t.asset][t.sender] -= t.amount
                self._balances[t.asset][t.recipient] += t.amount
            self.settled.extend(transfers)
        return True
