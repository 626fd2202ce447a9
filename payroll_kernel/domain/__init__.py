"""Pure domain logic: time, cadence and payroll arithmetic."""
