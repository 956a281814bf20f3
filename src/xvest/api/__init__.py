"""
xvest HTTP API

Flask blueprint and application factory exposing the vesting ledger.
"""

from .app import VestingStack, build_stack, create_app
from .vesting_bp import vesting_bp

__all__ = ["VestingStack", "build_stack", "create_app", "vesting_bp"]
