"""
xvest - Token Vesting Ledger

Tracks time-based release of a fixed-supply token from a custodian to a set
of approved recipients.

Main Components:
- Blockchain: The vesting accounting engine (schedules, vested amounts, claims, revocation)
- Core: Token custody, access control, events, metrics, configuration and logging
- API: Flask blueprint exposing the ledger over HTTP
- CLI: Command-line client for the HTTP API
"""

__version__ = "0.1.0"
__author__ = "xvest Development Team"

__all__ = []
