"""
Interfaces of the collaborators the vesting ledger depends on, plus clocks.

The ledger never owns asset movement, administration or pausing; it asks
these objects. Any object with the matching methods works.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class AssetTransfer(Protocol):
    """Moves units between external accounts and the ledger's custody."""

    def pull_from(self, source: str, amount: int) -> bool:
        """Move ``amount`` from ``source`` into custody. False on failure."""
        ...

    def push_to(self, destination: str, amount: int) -> bool:
        """Move ``amount`` from custody to ``destination``. False on failure."""
        ...


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int:
        ...


@runtime_checkable
class Authorization(Protocol):
    def is_admin(self, caller: str) -> bool:
        ...


@runtime_checkable
class AllowList(Protocol):
    def is_approved(self, recipient: str) -> bool:
        ...


@runtime_checkable
class Gate(Protocol):
    def is_accepting_operations(self) -> bool:
        ...


class SystemClock:
    """Wall-clock time in whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Deterministic clock for tests and simulations."""

    def __init__(self, start_time: int = 0):
        self.current_time = start_time

    def now(self) -> int:
        return self.current_time

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self.current_time += seconds
        return self.current_time

    def set(self, timestamp: int) -> None:
        if timestamp < self.current_time:
            raise ValueError("Clock cannot move backwards")
        self.current_time = timestamp
