"""
xvest Configuration

All settings come from XVEST_* environment variables so the same build can
run a local simulation or a long-lived API node.

SECURITY NOTICE:
- The owner address controls every administrative capability
- Never reuse a production owner address in development environments
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .vesting_exceptions import ConfigurationError

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_CUSTODY_ADDRESS = "0x" + "0" * 39 + "1"


def _get_int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _get_str(env: Mapping[str, str], name: str, default: str = "") -> str:
    value = env.get(name, "").strip()
    return value or default


@dataclass(frozen=True)
class VestingConfig:
    environment: str = "development"
    log_level: str = "INFO"
    log_file: str = ""
    token_name: str = "Vesting Token"
    token_symbol: str = "VEST"
    token_decimals: int = 18
    custody_address: str = DEFAULT_CUSTODY_ADDRESS
    owner_address: str = ""
    initial_supply: int = 0
    event_history: int = 10_000
    api_url: str = "http://127.0.0.1:8545"
    api_timeout: int = 30

    def require_owner(self) -> str:
        """Owner address, required to bootstrap a standalone node."""
        if not self.owner_address:
            raise ConfigurationError(
                "XVEST_OWNER_ADDRESS environment variable required to bootstrap the ledger"
            )
        return self.owner_address


def load_config(env: Optional[Mapping[str, str]] = None) -> VestingConfig:
    """Build a VestingConfig from environment variables.

    Args:
        env: Mapping to read from (defaults to os.environ)

    Raises:
        ConfigurationError: If a value is malformed
    """
    env = os.environ if env is None else env

    log_level = _get_str(env, "XVEST_LOG_LEVEL", "INFO").upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ConfigurationError(
            f"XVEST_LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}, got {log_level!r}"
        )

    custody = _get_str(env, "XVEST_CUSTODY_ADDRESS", DEFAULT_CUSTODY_ADDRESS).lower()
    owner = _get_str(env, "XVEST_OWNER_ADDRESS").lower()
    if owner and owner == custody:
        raise ConfigurationError("XVEST_OWNER_ADDRESS must differ from XVEST_CUSTODY_ADDRESS")

    config = VestingConfig(
        environment=_get_str(env, "XVEST_ENVIRONMENT", "development"),
        log_level=log_level,
        log_file=_get_str(env, "XVEST_LOG_FILE"),
        token_name=_get_str(env, "XVEST_TOKEN_NAME", "Vesting Token"),
        token_symbol=_get_str(env, "XVEST_TOKEN_SYMBOL", "VEST"),
        token_decimals=_get_int(env, "XVEST_TOKEN_DECIMALS", 18),
        custody_address=custody,
        owner_address=owner,
        initial_supply=_get_int(env, "XVEST_INITIAL_SUPPLY", 0),
        event_history=_get_int(env, "XVEST_EVENT_HISTORY", 10_000, minimum=1),
        api_url=_get_str(env, "XVEST_API_URL", "http://127.0.0.1:8545").rstrip("/"),
        api_timeout=_get_int(env, "XVEST_API_TIMEOUT", 30, minimum=1),
    )

    logger.debug(
        "Configuration loaded",
        extra={"event": "config.loaded", "environment": config.environment}
    )
    return config
