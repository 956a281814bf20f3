from __future__ import annotations

import functools
import logging
import time
from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Union

from xvest.core import vesting_metrics
from xvest.core.access_control import is_zero_address, normalize_address
from xvest.core.collaborators import AllowList, AssetTransfer, Authorization, Clock, Gate
from xvest.core.events import EventLog, EventType, VestingEvent
from xvest.core.reentrancy import NonReentrantGuard, non_reentrant
from xvest.core.vesting_exceptions import (
    AlreadyRevokedError,
    AuthorizationError,
    DuplicateScheduleError,
    GateClosedError,
    InvalidArgumentError,
    NothingClaimableError,
    NotApprovedError,
    ScheduleNotFoundError,
    TransferFailedError,
    VestingError,
)

logger = logging.getLogger("xvest.blockchain.vesting_ledger")


@dataclass
class VestingSchedule:
    recipient: str = ""
    total_amount: int = 0  # 0 means no schedule
    start_time: int = 0
    cliff_duration: int = 0
    vesting_duration: int = 0
    amount_claimed: int = 0
    revoked: bool = False

    @property
    def exists(self) -> bool:
        return self.total_amount > 0

    @property
    def cliff_end(self) -> int:
        return self.start_time + self.cliff_duration

    @property
    def vesting_end(self) -> int:
        return self.start_time + self.vesting_duration

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class VestingLedger:
    """
    Per-recipient linear-after-cliff vesting with claim and revocation.

    The ledger holds allocated units in custody through its asset-transfer
    collaborator, which is bound at construction and never replaced.
    Administration, allow-listing and pausing are consulted through injected
    collaborators; the ledger only enforces its accounting invariants:

    - one schedule per recipient, never deleted or recreated
    - ``amount_claimed`` only grows and never exceeds the vested amount
    - a revoked schedule vests nothing and can never be claimed again

    Every mutating call runs under a non-reentrant guard and is all-or-nothing:
    if the closing transfer fails, the schedule record is restored.
    """

    def __init__(
        self,
        transfer: AssetTransfer,
        authorization: Authorization,
        allow_list: AllowList,
        gate: Gate,
        clock: Union[Clock, Callable[[], int], None] = None,
        event_log: Optional[EventLog] = None,
    ):
        self._transfer = transfer
        self._authorization = authorization
        self._allow_list = allow_list
        self._gate = gate
        if clock is None:
            self._time_provider: Callable[[], int] = lambda: int(time.time())
        elif hasattr(clock, "now"):
            self._time_provider = clock.now
        else:
            self._time_provider = clock
        self.event_log = event_log if event_log is not None else EventLog()
        # {recipient: VestingSchedule}; a missing key is the empty schedule
        self._schedules: Dict[str, VestingSchedule] = {}
        self._guard = NonReentrantGuard("vesting_ledger")
        logger.info(
            "VestingLedger initialized",
            extra={
                "event": "vesting.ledger_initialized",
                "custody": str(getattr(transfer, "address", ""))[:10],
                "deterministic_clock": clock is not None,
            },
        )

    @property
    def transfer(self) -> AssetTransfer:
        return self._transfer

    def _current_time(self) -> int:
        timestamp = self._time_provider()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("clock must return an integer timestamp") from exc

    # ==================== Reads ====================

    def calculate_vested_amount(self, recipient: str, current_time: Optional[int] = None) -> int:
        """
        Amount of the recipient's allocation unlocked at ``current_time``.

        Never raises for absent or revoked schedules (both vest 0). The
        linear portion is floored; the full-vesting branch returns the exact
        total so the last claim recovers any truncation residue.
        """
        schedule = self._lookup(recipient)
        if current_time is None:
            current_time = self._current_time()
        return self._vested_amount(schedule, current_time)

    def claimable_amount(self, recipient: str, current_time: Optional[int] = None) -> int:
        """Vested minus already claimed; 0 for absent or revoked schedules."""
        schedule = self._lookup(recipient)
        if schedule is None:
            return 0
        if current_time is None:
            current_time = self._current_time()
        return max(self._vested_amount(schedule, current_time) - schedule.amount_claimed, 0)

    def get_schedule(self, recipient: str) -> Optional[VestingSchedule]:
        """Copy of the recipient's schedule, or None."""
        schedule = self._lookup(recipient)
        return replace(schedule) if schedule is not None else None

    def _lookup(self, recipient: Any) -> Optional[VestingSchedule]:
        if not recipient or not isinstance(recipient, str):
            return None
        return self._schedules.get(normalize_address(recipient))

    def has_schedule(self, recipient: str) -> bool:
        return self.get_schedule(recipient) is not None

    def recipients(self) -> List[str]:
        return list(self._schedules)

    def outstanding_amount(self) -> int:
        """Units still owed to non-revoked schedules."""
        return sum(
            s.total_amount - s.amount_claimed
            for s in self._schedules.values()
            if not s.revoked
        )

    def custody_balance(self) -> Optional[int]:
        """Custody balance reported by the transfer collaborator, if it exposes one."""
        balance = getattr(self._transfer, "balance", None)
        if not callable(balance):
            return None
        value = balance()
        return value if isinstance(value, int) else None

    @staticmethod
    def _vested_amount(schedule: Optional[VestingSchedule], current_time: int) -> int:
        if schedule is None or not schedule.exists or schedule.revoked:
            return 0

        # Checked before the cliff so cliff == duration vests fully at the end instant
        if current_time >= schedule.vesting_end:
            return schedule.total_amount

        # The cliff instant itself is still locked
        if current_time <= schedule.cliff_end:
            return 0

        elapsed = current_time - schedule.start_time
        return schedule.total_amount * elapsed // schedule.vesting_duration

    # ==================== Mutations ====================

    @non_reentrant
    def create_schedule(
        self,
        caller: str,
        recipient: str,
        total_amount: int,
        cliff_duration: int,
        vesting_duration: int,
        start_time: Optional[int] = None,
    ) -> VestingSchedule:
        """
        Creates a vesting schedule and pulls ``total_amount`` from the caller into custody.

        A ``start_time`` of None or 0 means "now"; any other value is used as
        given, past or future.

        Raises:
            AuthorizationError, GateClosedError, InvalidArgumentError,
            NotApprovedError, DuplicateScheduleError, TransferFailedError
        """
        operation = "create_schedule"
        if not self._authorization.is_admin(caller):
            raise self._reject(operation, AuthorizationError(
                f"Caller {str(caller or '')[:10]} is not permitted to create schedules",
                details={"caller": caller},
            ))
        if not self._gate.is_accepting_operations():
            raise self._reject(operation, GateClosedError("Ledger is not accepting operations"))
        if not isinstance(recipient, str) or is_zero_address(recipient):
            raise self._reject(operation, InvalidArgumentError("Recipient must be a non-zero address string"))
        if not self._allow_list.is_approved(recipient):
            raise self._reject(operation, NotApprovedError(
                f"Recipient {recipient[:10]} is not approved",
                details={"recipient": recipient},
            ))

        self._require_uint(operation, "total_amount", total_amount)
        self._require_uint(operation, "cliff_duration", cliff_duration)
        self._require_uint(operation, "vesting_duration", vesting_duration)
        if start_time is not None:
            self._require_uint(operation, "start_time", start_time)

        if total_amount == 0:
            raise self._reject(operation, InvalidArgumentError("Total amount must be positive"))
        if vesting_duration == 0:
            raise self._reject(operation, InvalidArgumentError("Vesting duration must be positive"))
        if cliff_duration > vesting_duration:
            raise self._reject(operation, InvalidArgumentError(
                f"Cliff duration {cliff_duration} exceeds vesting duration {vesting_duration}",
                details={"cliff_duration": cliff_duration, "vesting_duration": vesting_duration},
            ))

        recipient_norm = normalize_address(recipient)
        existing = self._schedules.get(recipient_norm)
        if existing is not None and existing.exists:
            raise self._reject(operation, DuplicateScheduleError(
                f"Recipient {recipient_norm[:10]} already has a vesting schedule",
                details={"recipient": recipient_norm},
            ))

        effective_start = start_time if start_time else self._current_time()
        schedule = VestingSchedule(
            recipient=recipient_norm,
            total_amount=total_amount,
            start_time=effective_start,
            cliff_duration=cliff_duration,
            vesting_duration=vesting_duration,
        )
        self._schedules[recipient_norm] = schedule

        caller_norm = normalize_address(caller)
        try:
            pulled = self._transfer.pull_from(caller_norm, total_amount)
        except Exception:
            del self._schedules[recipient_norm]
            vesting_metrics.record_failure(operation, "collaborator_error")
            raise
        if not pulled:
            del self._schedules[recipient_norm]
            raise self._reject(operation, TransferFailedError(
                f"Could not pull {total_amount} from {caller_norm[:10]} into custody",
                direction="pull",
                counterparty=caller_norm,
                amount=total_amount,
            ))

        vesting_metrics.record_schedule_created(total_amount)
        self._refresh_custody_gauge()
        logger.info(
            "Vesting schedule created for %s",
            recipient_norm,
            extra={
                "event": "vesting.created",
                "recipient": recipient_norm[:10],
                "amount": total_amount,
                "start_time": effective_start,
                "cliff_duration": cliff_duration,
                "vesting_duration": vesting_duration,
            },
        )
        self._emit(EventType.SCHEDULE_CREATED, recipient_norm, total_amount, caller_norm)
        return replace(schedule)

    @non_reentrant
    def claim_vested_tokens(self, caller: str) -> int:
        """
        Withdraws the caller's vested-but-unclaimed amount.

        ``amount_claimed`` is raised by the claimable delta before custody is
        asked to push it, so a reentrant claim sees nothing left to take. A
        failed push restores the previous claimed total.

        Returns:
            The amount transferred to the caller

        Raises:
            GateClosedError, ScheduleNotFoundError, AlreadyRevokedError,
            NothingClaimableError, TransferFailedError
        """
        operation = "claim_vested_tokens"
        if not self._gate.is_accepting_operations():
            raise self._reject(operation, GateClosedError("Ledger is not accepting operations"))

        self._require_address(operation, "caller", caller)
        caller_norm = normalize_address(caller)
        schedule = self._schedules.get(caller_norm)
        if schedule is None or not schedule.exists:
            raise self._reject(operation, ScheduleNotFoundError(
                f"No vesting schedule for {caller_norm[:10]}",
                details={"recipient": caller_norm},
            ))
        if schedule.revoked:
            raise self._reject(operation, AlreadyRevokedError(
                f"Vesting schedule for {caller_norm[:10]} has been revoked",
                details={"recipient": caller_norm},
            ))

        now = self._current_time()
        vested = self._vested_amount(schedule, now)
        claimable = vested - schedule.amount_claimed
        if claimable <= 0:
            raise self._reject(operation, NothingClaimableError(
                f"Nothing claimable for {caller_norm[:10]}",
                details={"vested": vested, "claimed": schedule.amount_claimed},
            ))

        previous_claimed = schedule.amount_claimed
        schedule.amount_claimed = previous_claimed + claimable
        try:
            pushed = self._transfer.push_to(caller_norm, claimable)
        except Exception:
            schedule.amount_claimed = previous_claimed
            vesting_metrics.record_failure(operation, "collaborator_error")
            raise
        if not pushed:
            schedule.amount_claimed = previous_claimed
            raise self._reject(operation, TransferFailedError(
                f"Could not push {claimable} from custody to {caller_norm[:10]}",
                direction="push",
                counterparty=caller_norm,
                amount=claimable,
            ))

        vesting_metrics.record_claim(claimable)
        self._refresh_custody_gauge()
        logger.info(
            "Claimed %d tokens for %s",
            claimable,
            caller_norm,
            extra={
                "event": "vesting.claimed",
                "recipient": caller_norm[:10],
                "amount": claimable,
                "total_claimed": schedule.amount_claimed,
            },
        )
        self._emit(EventType.TOKENS_CLAIMED, caller_norm, claimable, caller_norm)
        return claimable

    @non_reentrant
    def revoke_vesting(self, caller: str, recipient: str) -> int:
        """
        Terminates a schedule and returns its unvested units to the caller.

        The unvested amount is ``total - vested`` at this instant; what the
        recipient already claimed is untouched, and vested-but-unclaimed
        units stay in custody. Available while the gate is closed.

        Returns:
            The amount reclaimed (0 if already fully vested)

        Raises:
            AuthorizationError, ScheduleNotFoundError, AlreadyRevokedError,
            TransferFailedError
        """
        operation = "revoke_vesting"
        if not self._authorization.is_admin(caller):
            raise self._reject(operation, AuthorizationError(
                f"Caller {str(caller or '')[:10]} is not permitted to revoke schedules",
                details={"caller": caller},
            ))

        self._require_address(operation, "recipient", recipient)
        recipient_norm = normalize_address(recipient)
        schedule = self._schedules.get(recipient_norm)
        if schedule is None or not schedule.exists:
            raise self._reject(operation, ScheduleNotFoundError(
                f"No vesting schedule for {recipient_norm[:10]}",
                details={"recipient": recipient_norm},
            ))
        if schedule.revoked:
            raise self._reject(operation, AlreadyRevokedError(
                f"Vesting schedule for {recipient_norm[:10]} is already revoked",
                details={"recipient": recipient_norm},
            ))

        now = self._current_time()
        vested = self._vested_amount(schedule, now)
        unvested = schedule.total_amount - vested

        caller_norm = normalize_address(caller)
        schedule.revoked = True
        if unvested > 0:
            try:
                pushed = self._transfer.push_to(caller_norm, unvested)
            except Exception:
                schedule.revoked = False
                vesting_metrics.record_failure(operation, "collaborator_error")
                raise
            if not pushed:
                schedule.revoked = False
                raise self._reject(operation, TransferFailedError(
                    f"Could not return {unvested} unvested units to {caller_norm[:10]}",
                    direction="push",
                    counterparty=caller_norm,
                    amount=unvested,
                ))

        vesting_metrics.record_revocation(unvested)
        self._refresh_custody_gauge()
        logger.warning(
            "Vesting schedule for %s revoked",
            recipient_norm,
            extra={
                "event": "vesting.revoked",
                "recipient": recipient_norm[:10],
                "vested_at_revocation": vested,
                "claimed": schedule.amount_claimed,
                "reclaimed": unvested,
            },
        )
        self._emit(EventType.VESTING_REVOKED, recipient_norm, unvested, caller_norm)
        return unvested

    # ==================== Helpers ====================

    def _require_address(self, operation: str, name: str, value: Any) -> None:
        if not isinstance(value, str):
            raise self._reject(operation, InvalidArgumentError(
                f"{name} must be an address string", details={name: repr(value)}
            ))

    def _require_uint(self, operation: str, name: str, value: Any) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise self._reject(operation, InvalidArgumentError(
                f"{name} must be an integer", details={name: value}
            ))
        if value < 0:
            raise self._reject(operation, InvalidArgumentError(
                f"{name} cannot be negative", details={name: value}
            ))

    @staticmethod
    def _reject(operation: str, error: VestingError) -> VestingError:
        vesting_metrics.record_failure(operation, error.code)
        logger.warning(
            "%s rejected: %s",
            operation,
            error.message,
            extra={"event": f"vesting.{operation}.rejected", "code": error.code},
        )
        return error

    def _emit(self, event_type: EventType, recipient: str, amount: int, actor: str) -> None:
        # Delivered once the guard is released so subscribers may call back in
        event = VestingEvent(
            event_type=event_type,
            recipient=recipient,
            amount=amount,
            actor=actor,
            timestamp=self._current_time(),
        )
        self._guard.defer(functools.partial(self.event_log.emit, event))

    def _refresh_custody_gauge(self) -> None:
        balance = self.custody_balance()
        if balance is not None:
            vesting_metrics.update_custody_balance(str(getattr(self._transfer, "address", "")), balance)
