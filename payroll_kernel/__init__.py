"""
Payroll Kernel

A payroll ledger with:
- Employee registry with a maintained total salary commitment
- Accepted payment tokens with oracle-supplied USD rates
- Per-employee token allocation and a once-per-30-days payday
- Treasury valuation, burn rate and runway reporting
- Atomic, single-writer operations settled on a pluggable payment rail
"""

__version__ = "0.1.0"
