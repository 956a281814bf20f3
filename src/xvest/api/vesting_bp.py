"""
Vesting API Blueprint

Exposes the vesting ledger and its administration collaborators over HTTP.
Caller identity is taken from the JSON body; whether the caller may act is
decided by the ledger's authorization collaborator.

Endpoints:
- GET /vesting/schedules - List recipients with schedules
- GET /vesting/schedules/<recipient> - Schedule with vested and claimable amounts
- GET /vesting/schedules/<recipient>/vested - Vested amount (0 when absent)
- POST /vesting/schedules - Create a schedule
- POST /vesting/claim - Claim the caller's vested tokens
- POST /vesting/revoke - Revoke a recipient's schedule
- POST /vesting/allowlist - Approve a recipient
- DELETE /vesting/allowlist/<recipient> - Remove a recipient
- POST /vesting/pause - Close the operations gate
- POST /vesting/unpause - Reopen the operations gate
- GET /vesting/events - Event history
- GET /vesting/balances/<address> - Token balance
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, request

from xvest.api.base import (
    error_response,
    get_ledger,
    get_stack,
    ledger_unavailable,
    success_response,
    vesting_error_response,
)
from xvest.core.events import EventType
from xvest.core.vesting_exceptions import VestingError

logger = logging.getLogger(__name__)

vesting_bp = Blueprint("vesting", __name__, url_prefix="/vesting")


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


ADDRESS_FIELDS = ("caller", "recipient")


def _require_fields(data: Dict[str, Any], *fields: str) -> str | None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    malformed = [f for f in fields if f in ADDRESS_FIELDS and not isinstance(data[f], str)]
    if malformed:
        return f"Address fields must be strings: {', '.join(malformed)}"
    return None


@vesting_bp.route("/schedules", methods=["GET"])
def list_schedules() -> Tuple[Response, int]:
    ledger = get_ledger()
    if ledger is None:
        return ledger_unavailable()
    return success_response({
        "recipients": ledger.recipients(),
        "outstanding_amount": ledger.outstanding_amount(),
        "custody_balance": ledger.custody_balance(),
    })


@vesting_bp.route("/schedules/<recipient>", methods=["GET"])
def get_schedule(recipient: str) -> Tuple[Response, int]:
    """Return a recipient's schedule.

    Path Parameters:
        recipient (str): Recipient address

    Returns:
        200 with schedule, vested_amount and claimable_amount
        404 if the recipient has no schedule
    """
    ledger = get_ledger()
    if ledger is None:
        return ledger_unavailable()

    schedule = ledger.get_schedule(recipient)
    if schedule is None:
        return error_response(
            f"No vesting schedule for {recipient}", status=404, code="schedule_not_found"
        )
    return success_response({
        "schedule": schedule.to_dict(),
        "vested_amount": ledger.calculate_vested_amount(recipient),
        "claimable_amount": ledger.claimable_amount(recipient),
    })


@vesting_bp.route("/schedules/<recipient>/vested", methods=["GET"])
def get_vested_amount(recipient: str) -> Tuple[Response, int]:
    ledger = get_ledger()
    if ledger is None:
        return ledger_unavailable()
    return success_response({
        "recipient": recipient.lower(),
        "vested_amount": ledger.calculate_vested_amount(recipient),
    })


@vesting_bp.route("/schedules", methods=["POST"])
def create_schedule() -> Tuple[Response, int]:
    """Create a vesting schedule.

    Request Body (JSON):
        {
            "caller": "0x...",          # Required: administrator funding the schedule
            "recipient": "0x...",       # Required: approved recipient
            "total_amount": 1000,       # Required
            "cliff_duration": 2592000,  # Required: seconds
            "vesting_duration": 10368000,  # Required: seconds
            "start_time": 0             # Optional: 0/absent means now
        }
    """
    ledger = get_ledger()
    if ledger is None:
        return ledger_unavailable()

    data = _json_body()
    problem = _require_fields(
        data, "caller", "recipient", "total_amount", "cliff_duration", "vesting_duration"
    )
    if problem:
        return error_response(problem, status=400, code="invalid_argument")

    try:
        schedule = ledger.create_schedule(
            data["caller"],
            data["recipient"],
            data["total_amount"],
            data["cliff_duration"],
            data["vesting_duration"],
            data.get("start_time"),
        )
    except VestingError as exc:
        return vesting_error_response(exc)

    return success_response({"schedule": schedule.to_dict()}, status=201)


@vesting_bp.route("/claim", methods=["POST"])
def claim() -> Tuple[Response, int]:
    ledger = get_ledger()
    if ledger is None:
        return ledger_unavailable()

    data = _json_body()
    problem = _require_fields(data, "caller")
    if problem:
        return error_response(problem, status=400, code="invalid_argument")

    try:
        amount = ledger.claim_vested_tokens(data["caller"])
    except VestingError as exc:
        return vesting_error_response(exc)

    return success_response({"recipient": data["caller"].lower(), "claimed": amount})


@vesting_bp.route("/revoke", methods=["POST"])
def revoke() -> Tuple[Response, int]:
    ledger = get_ledger()
    if ledger is None:
        return ledger_unavailable()

    data = _json_body()
    problem = _require_fields(data, "caller", "recipient")
    if problem:
        return error_response(problem, status=400, code="invalid_argument")

    try:
        reclaimed = ledger.revoke_vesting(data["caller"], data["recipient"])
    except VestingError as exc:
        return vesting_error_response(exc)

    return success_response({"recipient": data["recipient"].lower(), "reclaimed": reclaimed})


@vesting_bp.route("/allowlist", methods=["POST"])
def approve_recipient() -> Tuple[Response, int]:
    stack = get_stack()
    if stack is None:
        return ledger_unavailable()

    data = _json_body()
    problem = _require_fields(data, "caller", "recipient")
    if problem:
        return error_response(problem, status=400, code="invalid_argument")

    try:
        stack.allow_list.approve(data["caller"], data["recipient"])
    except VestingError as exc:
        return vesting_error_response(exc)
    return success_response({"recipient": data["recipient"].lower(), "approved": True})


@vesting_bp.route("/allowlist/<recipient>", methods=["DELETE"])
def remove_recipient(recipient: str) -> Tuple[Response, int]:
    stack = get_stack()
    if stack is None:
        return ledger_unavailable()

    data = _json_body()
    problem = _require_fields(data, "caller")
    if problem:
        return error_response(problem, status=400, code="invalid_argument")

    try:
        removed = stack.allow_list.remove(data["caller"], recipient)
    except VestingError as exc:
        return vesting_error_response(exc)
    return success_response({"recipient": recipient.lower(), "removed": removed})


@vesting_bp.route("/pause", methods=["POST"])
def pause() -> Tuple[Response, int]:
    return _set_gate(paused=True)


@vesting_bp.route("/unpause", methods=["POST"])
def unpause() -> Tuple[Response, int]:
    return _set_gate(paused=False)


def _set_gate(paused: bool) -> Tuple[Response, int]:
    stack = get_stack()
    if stack is None:
        return ledger_unavailable()

    data = _json_body()
    problem = _require_fields(data, "caller")
    if problem:
        return error_response(problem, status=400, code="invalid_argument")

    try:
        if paused:
            changed = stack.gate.pause(data["caller"])
        else:
            changed = stack.gate.unpause(data["caller"])
    except VestingError as exc:
        return vesting_error_response(exc)
    return success_response({"paused": stack.gate.paused, "changed": changed})


@vesting_bp.route("/events", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """Return event history.

    Query Parameters:
        type (str, optional): Event type name, e.g. TokensClaimed
        recipient (str, optional): Recipient address
    """
    ledger = get_ledger()
    if ledger is None:
        return ledger_unavailable()

    event_type = None
    type_name = request.args.get("type")
    if type_name:
        try:
            event_type = EventType(type_name)
        except ValueError:
            return error_response(
                f"Unknown event type: {type_name}", status=400, code="invalid_argument"
            )

    events = ledger.event_log.history(
        event_type=event_type, recipient=request.args.get("recipient")
    )
    return success_response({"events": [e.to_dict() for e in events], "count": len(events)})


@vesting_bp.route("/balances/<address>", methods=["GET"])
def get_balance(address: str) -> Tuple[Response, int]:
    stack = get_stack()
    if stack is None:
        return ledger_unavailable()
    return success_response({
        "address": address.lower(),
        "balance": stack.token.balance_of(address),
        "symbol": stack.token.symbol,
    })
