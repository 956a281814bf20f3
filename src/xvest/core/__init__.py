"""
xvest Core Module

Supporting components for the vesting ledger: token custody, access control,
events, reentrancy guard, metrics, configuration and structured logging.
"""

__all__ = []
