"""
Vesting-specific exception hierarchy for xvest.

Every rejected ledger operation raises one of these typed exceptions at the
point of violation. Nothing is retried and no partial state is committed, so
callers can rely on the exception type alone to decide what went wrong.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class VestingError(Exception):
    """Base exception for all vesting ledger errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the same call may succeed later without changes
        code: Stable machine-readable identifier used by the API layer
    """

    code = "vesting_error"
    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for API responses."""
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# ==================== Caller Errors ====================


class AuthorizationError(VestingError):
    """Raised when the caller lacks the administrator capability."""

    code = "unauthorized"


class GateClosedError(VestingError):
    """Raised when the operations gate is closed (system paused)."""

    code = "gate_closed"
    recoverable = True  # Can retry once operations resume


class NotApprovedError(VestingError):
    """Raised when a schedule is created for a recipient missing from the allow-list."""

    code = "not_approved"


class InvalidArgumentError(VestingError):
    """Raised for malformed parameters.

    Examples: zero address, non-positive amount, zero vesting duration,
    cliff longer than the vesting duration.
    """

    code = "invalid_argument"


# ==================== Schedule State Errors ====================


class DuplicateScheduleError(VestingError):
    """Raised when a recipient already has a schedule (claimed or revoked included)."""

    code = "duplicate_schedule"


class ScheduleNotFoundError(VestingError):
    """Raised when an operation needs a schedule that does not exist."""

    code = "schedule_not_found"


class AlreadyRevokedError(VestingError):
    """Raised when claiming from or revoking an already revoked schedule."""

    code = "already_revoked"


class NothingClaimableError(VestingError):
    """Raised when the vested amount does not exceed the amount already claimed."""

    code = "nothing_claimable"
    recoverable = True  # More tokens vest as time passes


# ==================== Execution Errors ====================


class TransferFailedError(VestingError):
    """Raised when the asset-transfer collaborator rejects a pull or push."""

    code = "transfer_failed"

    def __init__(
        self,
        message: str,
        direction: Optional[str] = None,
        counterparty: Optional[str] = None,
        amount: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.direction = direction
        self.counterparty = counterparty
        self.amount = amount


class ReentrancyError(VestingError):
    """Raised when a guarded operation is entered while another is in flight."""

    code = "reentrant_call"


class TokenError(Exception):
    """Raised by the in-memory token on rejected transfers, approvals or mints."""

    pass


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


# ==================== Utility Functions ====================


def is_recoverable_error(error: Exception) -> bool:
    """Check if an error may succeed on a later retry.

    Args:
        error: Exception to check

    Returns:
        True if the error is marked recoverable
    """
    if isinstance(error, VestingError):
        return error.recoverable
    return False


def get_error_context(error: Exception) -> Dict[str, Any]:
    """Extract structured logging context from an error.

    Args:
        error: Exception to extract context from

    Returns:
        Dictionary with error type, message and details
    """
    context: Dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if isinstance(error, VestingError):
        context["code"] = error.code
        context["recoverable"] = error.recoverable
        context["details"] = error.details

    if isinstance(error, TransferFailedError):
        context["direction"] = error.direction
        context["amount"] = error.amount

    return context
