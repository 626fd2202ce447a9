"""Payment rails: the external transfer system payroll settles on."""

from payroll_kernel.rails.base import NATIVE_ASSET, PaymentRail, Transfer, settle
from payroll_kernel.rails.memory import InMemoryPaymentRail

__all__ = [
    "NATIVE_ASSET",
    "InMemoryPaymentRail",
    "PaymentRail",
    "Transfer",
    "settle",
]
