"""ORM models for the payroll kernel."""

from payroll_kernel.models.employee import (
    AllocationLineModel,
    Employee,
    EmployeeAllowedToken,
)
from payroll_kernel.models.payout import Payout, PayoutLegModel
from payroll_kernel.models.state import DEFAULT_TOKEN_LIMIT, PayrollState
from payroll_kernel.models.token import AcceptedToken

__all__ = [
    "AcceptedToken",
    "AllocationLineModel",
    "DEFAULT_TOKEN_LIMIT",
    "Employee",
    "EmployeeAllowedToken",
    "Payout",
    "PayoutLegModel",
    "PayrollState",
]
