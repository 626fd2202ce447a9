"""Services for the payroll kernel (write side)."""

from payroll_kernel.services.allocation_service import AllocationService
from payroll_kernel.services.control_service import ControlService
from payroll_kernel.services.employee_registry import (
    ABSENT_EMPLOYEE_ID,
    EmployeeInfo,
    EmployeeRegistryService,
)
from payroll_kernel.services.payday_service import PaydayService, PayoutInfo
from payroll_kernel.services.rate_registry import RateRegistryService
from payroll_kernel.services.sequence_service import SequenceService
from payroll_kernel.services.token_registry import TokenInfo, TokenRegistryService

__all__ = [
    "ABSENT_EMPLOYEE_ID",
    "AllocationService",
    "ControlService",
    "EmployeeInfo",
    "EmployeeRegistryService",
    "PaydayService",
    "PayoutInfo",
    "RateRegistryService",
    "SequenceService",
    "TokenInfo",
    "TokenRegistryService",
]
