"""
Base utilities for the vesting API

Provides the request context accessors and response helpers shared by the
vesting blueprint.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from flask import g, jsonify

from xvest.core.vesting_exceptions import VestingError, get_error_context, is_recoverable_error

if TYPE_CHECKING:
    from xvest.api.app import VestingStack
    from xvest.blockchain.vesting_ledger import VestingLedger

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "invalid_argument": 400,
    "unauthorized": 403,
    "not_approved": 403,
    "schedule_not_found": 404,
    "duplicate_schedule": 409,
    "already_revoked": 409,
    "nothing_claimable": 409,
    "reentrant_call": 409,
    "gate_closed": 423,
    "transfer_failed": 502,
}


def get_api_context() -> Dict[str, Any]:
    """Get the API context stored in Flask's g object during request setup."""
    return g.get("api_context", {})


def get_stack() -> Optional["VestingStack"]:
    return get_api_context().get("stack")


def get_ledger() -> Optional["VestingLedger"]:
    stack = get_stack()
    return stack.ledger if stack is not None else None


def success_response(payload: Dict[str, Any], status: int = 200) -> Tuple[Any, int]:
    """Return a success payload with consistent structure."""
    body = {"success": True, **payload}
    return jsonify(body), status


def error_response(
    message: str,
    status: int = 400,
    code: str = "bad_request",
    context: Optional[Dict[str, Any]] = None,
    recoverable: Optional[bool] = None,
) -> Tuple[Any, int]:
    """Return an error payload and log it.

    ``recoverable`` is included in the body when given so clients know
    whether retrying the same request later can succeed.
    """
    details = {"code": code, "status": status, **(context or {})}
    if status >= 500:
        logger.error("API error: %s", message, extra={"event": "api.error", **details})
    else:
        logger.warning("API error: %s", message, extra={"event": "api.error", **details})
    body: Dict[str, Any] = {"success": False, "error": message, "code": code}
    if recoverable is not None:
        body["recoverable"] = recoverable
    return jsonify(body), status


def vesting_error_response(error: VestingError) -> Tuple[Any, int]:
    """Map a typed ledger rejection to its HTTP status."""
    status = ERROR_STATUS.get(error.code, 400)
    context = {
        k: v for k, v in get_error_context(error).items() if k not in ("details", "recoverable")
    }
    return error_response(
        error.message,
        status=status,
        code=error.code,
        context=context,
        recoverable=is_recoverable_error(error),
    )


def ledger_unavailable() -> Tuple[Any, int]:
    return error_response("Vesting ledger not initialized", status=503, code="ledger_unavailable")
