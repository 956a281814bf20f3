"""
Vesting ledger instrumentation.

Provides Prometheus metrics that track allocations, claims, revocations and
rejected operations, with helper functions that are safe to call from the
ledger's commit path.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

schedules_created_counter = Counter(
    "xvest_schedules_created_total", "Total vesting schedules created"
)

tokens_allocated_counter = Counter(
    "xvest_tokens_allocated_total", "Total units pulled into custody for new schedules"
)

tokens_claimed_counter = Counter(
    "xvest_tokens_claimed_total", "Total vested units pushed to recipients"
)

tokens_reclaimed_counter = Counter(
    "xvest_tokens_reclaimed_total", "Total unvested units returned to administrators on revocation"
)

schedules_revoked_counter = Counter(
    "xvest_schedules_revoked_total", "Total vesting schedules revoked"
)

operation_failures_counter = Counter(
    "xvest_operation_failures_total",
    "Rejected ledger operations",
    ["operation", "reason"],
)

custody_balance_gauge = Gauge(
    "xvest_custody_balance", "Units currently held in ledger custody", ["address"]
)


def record_schedule_created(amount: int) -> None:
    schedules_created_counter.inc()
    if amount > 0:
        tokens_allocated_counter.inc(amount)


def record_claim(amount: int) -> None:
    if amount <= 0:
        return
    tokens_claimed_counter.inc(amount)


def record_revocation(reclaimed: int) -> None:
    schedules_revoked_counter.inc()
    if reclaimed > 0:
        tokens_reclaimed_counter.inc(reclaimed)


def record_failure(operation: str, reason: str) -> None:
    operation_failures_counter.labels(operation=operation, reason=reason).inc()


def update_custody_balance(address: str, balance: int) -> None:
    """Refresh the custody gauge; skipped when the custody has no address."""
    if not address:
        return
    custody_balance_gauge.labels(address=address).set(balance)
