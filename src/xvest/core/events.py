"""
Vesting notifications.

Structured events emitted after a ledger or administration operation commits.
They exist for external observers (API, metrics, audit) and are never read
back by the ledger itself.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from enum import Enum
from threading import Lock
from typing import Any, Callable, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Kinds of vesting notifications."""
    SCHEDULE_CREATED = "ScheduleCreated"
    TOKENS_CLAIMED = "TokensClaimed"
    VESTING_REVOKED = "VestingRevoked"
    RECIPIENT_APPROVED = "RecipientApproved"
    RECIPIENT_REMOVED = "RecipientRemoved"
    OPERATIONS_PAUSED = "OperationsPaused"
    OPERATIONS_RESUMED = "OperationsResumed"


@dataclass(frozen=True)
class VestingEvent:
    """Represents a single vesting notification."""

    event_type: EventType
    recipient: str  # Subject of the event; empty for gate events
    amount: int = 0
    actor: str = ""  # Address that triggered the operation
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type.value
        return data


EventSubscriber = Callable[[VestingEvent], None]


class EventLog:
    """
    Bounded in-memory event history with synchronous fan-out.

    Subscribers run after the emitting operation has committed; a failing
    subscriber is logged and skipped so observers cannot undo ledger state.
    """

    def __init__(self, max_history: int = 10_000) -> None:
        if max_history <= 0:
            raise ValueError("max_history must be positive")
        self._events: Deque[VestingEvent] = deque(maxlen=max_history)
        self._subscribers: List[EventSubscriber] = []
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._events)

    def subscribe(self, callback: EventSubscriber) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: EventSubscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(self, event: VestingEvent) -> None:
        """Record an event and notify subscribers."""
        with self._lock:
            self._events.append(event)

        logger.info(
            "Vesting event emitted",
            extra={
                "event": f"vesting.event.{event.event_type.value}",
                "recipient": event.recipient[:10],
                "amount": event.amount,
            },
        )

        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as exc:
                logger.error(
                    "Event subscriber failed",
                    extra={
                        "event": "vesting.event.subscriber_failed",
                        "event_type": event.event_type.value,
                        "error": str(exc),
                    },
                    exc_info=True,
                )

    def history(
        self,
        event_type: Optional[EventType] = None,
        recipient: Optional[str] = None,
    ) -> List[VestingEvent]:
        """Return recorded events, optionally filtered by type and recipient."""
        with self._lock:
            events = list(self._events)
        if event_type is not None:
            events = [e for e in events if e.event_type == event_type]
        if recipient is not None:
            recipient_norm = recipient.lower()
            events = [e for e in events if e.recipient == recipient_norm]
        return events
