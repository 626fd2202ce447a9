"""Read-only selectors."""

from payroll_kernel.selectors.base import BaseSelector
from payroll_kernel.selectors.treasury_selector import TreasuryHolding, TreasurySelector

__all__ = ["BaseSelector", "TreasuryHolding", "TreasurySelector"]
