"""
Non-reentrant guard for state-mutating ledger operations.

Two hazards are covered by one object:
- Threads: an RLock serialises mutating calls so two logically simultaneous
  operations never interleave. A second thread waits for the first to finish.
- Reentrancy: a collaborator invoked mid-operation (e.g. a token transfer hook)
  that calls back into any guarded method on the same thread is rejected
  immediately instead of observing half-updated state.

Work deferred during an operation (notifications) runs only after the guard
is released, and only if the operation completed.
"""

from __future__ import annotations

import functools
import logging
from contextlib import contextmanager
from threading import RLock
from typing import Any, Callable, Iterator, List, TypeVar

from .vesting_exceptions import ReentrancyError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class NonReentrantGuard:
    """Mutual-exclusion guard released on every exit path."""

    def __init__(self, name: str = "ledger") -> None:
        self.name = name
        # RLock lets the owning thread re-acquire so the entered flag can be
        # inspected instead of deadlocking on a nested call.
        self._lock = RLock()
        self._entered = False
        self._operation: str | None = None
        self._deferred: List[Callable[[], None]] = []

    @property
    def locked(self) -> bool:
        """True while a guarded operation is in flight."""
        return self._entered

    @contextmanager
    def enter(self, operation: str) -> Iterator[None]:
        """Hold the guard for the duration of ``operation``.

        Raises:
            ReentrancyError: If a guarded operation is already running on this thread
        """
        with self._lock:
            if self._entered:
                logger.error(
                    "Reentrant call rejected",
                    extra={
                        "event": "reentrancy.rejected",
                        "guard": self.name,
                        "operation": operation,
                        "active_operation": self._operation,
                    },
                )
                raise ReentrancyError(
                    f"Reentrant call to {operation} while {self._operation} is in progress",
                    details={"operation": operation, "active_operation": self._operation},
                )
            self._entered = True
            self._operation = operation
            self._deferred = []
            try:
                yield
            finally:
                self._entered = False
                self._operation = None

    def defer(self, callback: Callable[[], None]) -> None:
        """Queue ``callback`` to run once the current operation releases the guard."""
        self._deferred.append(callback)

    def take_deferred(self) -> List[Callable[[], None]]:
        """Hand over the queued callbacks; call while still holding the guard."""
        deferred, self._deferred = self._deferred, []
        return deferred


def non_reentrant(func: F) -> F:
    """Decorator running a method under ``self._guard``.

    Usage:
        @non_reentrant
        def claim_vested_tokens(self, caller: str) -> int:
            ...
    """

    @functools.wraps(func)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        guard: NonReentrantGuard = self._guard
        with guard.enter(func.__name__):
            result = func(self, *args, **kwargs)
            deferred = guard.take_deferred()
        # Guard released: callbacks may call back into guarded methods
        for callback in deferred:
            callback()
        return result

    return wrapper  # type: ignore[return-value]
