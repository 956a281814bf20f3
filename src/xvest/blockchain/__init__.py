"""
xvest Blockchain Module

The vesting accounting engine:
- VestingSchedule: per-recipient allocation record
- VestingLedger: schedule creation, vested-amount computation, claims and revocation
"""

from .vesting_ledger import VestingLedger, VestingSchedule

__all__ = ["VestingLedger", "VestingSchedule"]
