"""
Administration collaborators for the vesting ledger.

Provides the three boolean capabilities the ledger consults:
- AdminRegistry: who may administer (create and revoke schedules)
- RecipientAllowList: which recipients may receive a schedule
- OperationsGate: whether state-changing calls are currently accepted

Each keeps an audit trail and emits notifications through an optional
EventLog. Only administrators may change allow-list or gate state.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .events import EventLog, EventType, VestingEvent
from .vesting_exceptions import AuthorizationError, InvalidArgumentError

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40


def normalize_address(address: str) -> str:
    """Normalize address to lowercase."""
    return address.strip().lower()


def is_zero_address(address: Optional[str]) -> bool:
    """True for empty, non-string or all-zero addresses."""
    if not address or not isinstance(address, str):
        return True
    return normalize_address(address) in ("", ZERO_ADDRESS)


@dataclass
class AdminRegistry:
    """
    Owner-managed set of administrator addresses.

    The owner always counts as an administrator and is the only address
    that may grant or revoke the capability.
    """

    owner: str = ""

    admins: Set[str] = field(default_factory=set)

    # Audit log
    role_changes: List[Dict] = field(default_factory=list)

    def __post_init__(self) -> None:
        if is_zero_address(self.owner):
            raise InvalidArgumentError("Admin registry owner cannot be the zero address")
        self.owner = normalize_address(self.owner)
        self.admins = {normalize_address(a) for a in self.admins}
        self.admins.add(self.owner)

    def is_admin(self, caller: str) -> bool:
        if not caller or not isinstance(caller, str):
            return False
        return normalize_address(caller) in self.admins

    def grant_admin(self, caller: str, address: str) -> bool:
        """
        Grant the administrator capability.

        Raises:
            AuthorizationError: If caller is not the owner
            InvalidArgumentError: If address is the zero address
        """
        self._require_owner(caller)
        if is_zero_address(address):
            raise InvalidArgumentError("Cannot grant admin to the zero address")

        address_norm = normalize_address(address)
        self.admins.add(address_norm)
        self._record("grant", address_norm, caller)

        logger.info(
            "Admin granted",
            extra={
                "event": "access.admin_granted",
                "address": address_norm[:10],
                "owner": self.owner[:10],
            }
        )
        return True

    def revoke_admin(self, caller: str, address: str) -> bool:
        """
        Revoke the administrator capability. The owner cannot be revoked.

        Raises:
            AuthorizationError: If caller is not the owner
            InvalidArgumentError: If address is the owner
        """
        self._require_owner(caller)
        address_norm = normalize_address(address)
        if address_norm == self.owner:
            raise InvalidArgumentError("Owner cannot revoke its own admin capability")

        self.admins.discard(address_norm)
        self._record("revoke", address_norm, caller)

        logger.info(
            "Admin revoked",
            extra={
                "event": "access.admin_revoked",
                "address": address_norm[:10],
                "owner": self.owner[:10],
            }
        )
        return True

    def require_admin(self, caller: str) -> None:
        if not self.is_admin(caller):
            logger.warning(
                "Access denied: caller is not an administrator",
                extra={
                    "event": "access.denied",
                    "caller": str(caller or "")[:10],
                }
            )
            raise AuthorizationError(
                f"Unauthorized: caller {str(caller or '')[:10]} is not an administrator",
                details={"caller": caller},
            )

    def _require_owner(self, caller: str) -> None:
        if not isinstance(caller, str) or not caller or normalize_address(caller) != self.owner:
            raise AuthorizationError(
                f"Unauthorized: caller {str(caller or '')[:10]} is not the owner",
                details={"caller": caller},
            )

    def _record(self, action: str, address: str, caller: str) -> None:
        self.role_changes.append({
            "action": action,
            "address": address,
            "caller": normalize_address(caller),
            "timestamp": time.time(),
        })


@dataclass
class RecipientAllowList:
    """Admin-managed set of recipients eligible for a vesting schedule."""

    registry: AdminRegistry
    event_log: Optional[EventLog] = None
    approved: Set[str] = field(default_factory=set)

    def is_approved(self, recipient: str) -> bool:
        if not recipient or not isinstance(recipient, str):
            return False
        return normalize_address(recipient) in self.approved

    def approve(self, caller: str, recipient: str) -> bool:
        """
        Add a recipient to the allow-list.

        Raises:
            AuthorizationError: If caller is not an administrator
            InvalidArgumentError: If recipient is the zero address
        """
        self.registry.require_admin(caller)
        if is_zero_address(recipient):
            raise InvalidArgumentError("Cannot approve the zero address")

        recipient_norm = normalize_address(recipient)
        self.approved.add(recipient_norm)
        self._emit(EventType.RECIPIENT_APPROVED, recipient_norm, caller)

        logger.info(
            "Recipient approved",
            extra={
                "event": "allowlist.approved",
                "recipient": recipient_norm[:10],
            }
        )
        return True

    def remove(self, caller: str, recipient: str) -> bool:
        """
        Remove a recipient from the allow-list.

        Existing schedules are unaffected; only future creation is blocked.

        Returns:
            True if the recipient was on the list
        """
        self.registry.require_admin(caller)
        if not isinstance(recipient, str):
            raise InvalidArgumentError("Recipient must be an address string")
        recipient_norm = normalize_address(recipient)
        if recipient_norm not in self.approved:
            return False

        self.approved.discard(recipient_norm)
        self._emit(EventType.RECIPIENT_REMOVED, recipient_norm, caller)

        logger.info(
            "Recipient removed",
            extra={
                "event": "allowlist.removed",
                "recipient": recipient_norm[:10],
            }
        )
        return True

    def _emit(self, event_type: EventType, recipient: str, caller: str) -> None:
        if self.event_log is not None:
            self.event_log.emit(
                VestingEvent(
                    event_type=event_type,
                    recipient=recipient,
                    actor=normalize_address(caller),
                )
            )


@dataclass
class OperationsGate:
    """Admin-controlled pause switch for state-changing operations."""

    registry: AdminRegistry
    event_log: Optional[EventLog] = None
    paused: bool = False
    paused_at: float = 0.0

    def is_accepting_operations(self) -> bool:
        return not self.paused

    def pause(self, caller: str) -> bool:
        """Stop accepting state-changing calls (admin only)."""
        self.registry.require_admin(caller)
        if self.paused:
            return False

        self.paused = True
        self.paused_at = time.time()
        self._emit(EventType.OPERATIONS_PAUSED, caller)
        logger.warning(
            "Operations paused",
            extra={"event": "gate.paused", "caller": normalize_address(caller)[:10]}
        )
        return True

    def unpause(self, caller: str) -> bool:
        """Resume accepting state-changing calls (admin only)."""
        self.registry.require_admin(caller)
        if not self.paused:
            return False

        self.paused = False
        self.paused_at = 0.0
        self._emit(EventType.OPERATIONS_RESUMED, caller)
        logger.info(
            "Operations resumed",
            extra={"event": "gate.resumed", "caller": normalize_address(caller)[:10]}
        )
        return True

    def _emit(self, event_type: EventType, caller: str) -> None:
        if self.event_log is not None:
            self.event_log.emit(
                VestingEvent(
                    event_type=event_type,
                    recipient="",
                    actor=normalize_address(caller),
                )
            )
