"""
Application factory for the vesting API.

``build_stack`` wires the in-memory token, custody, administration
collaborators, event log and ledger from a VestingConfig; ``create_app``
exposes a stack through the vesting blueprint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from flask import Flask, g

from xvest.api.vesting_bp import vesting_bp
from xvest.blockchain.vesting_ledger import VestingLedger
from xvest.core.access_control import AdminRegistry, OperationsGate, RecipientAllowList
from xvest.core.collaborators import Clock, SystemClock
from xvest.core.config import VestingConfig, load_config
from xvest.core.events import EventLog
from xvest.core.token import FungibleToken, TokenCustody

logger = logging.getLogger(__name__)


@dataclass
class VestingStack:
    """Everything a running vesting node holds."""

    config: VestingConfig
    token: FungibleToken
    custody: TokenCustody
    admins: AdminRegistry
    allow_list: RecipientAllowList
    gate: OperationsGate
    event_log: EventLog
    ledger: VestingLedger


def build_stack(
    config: Optional[VestingConfig] = None,
    clock: Union[Clock, Callable[[], int], None] = None,
) -> VestingStack:
    """
    Bootstrap a self-contained vesting node.

    The owner becomes the first administrator and token owner. If an initial
    supply is configured it is minted to the owner, and the custody address is
    approved to pull that much so schedules can be funded immediately.

    Raises:
        ConfigurationError: If no owner address is configured
    """
    config = config or load_config()
    owner = config.require_owner()

    event_log = EventLog(max_history=config.event_history)
    token = FungibleToken(
        name=config.token_name,
        symbol=config.token_symbol,
        decimals=config.token_decimals,
        owner=owner,
        max_supply=config.initial_supply,
    )
    custody = TokenCustody(token, config.custody_address)
    admins = AdminRegistry(owner=owner)
    allow_list = RecipientAllowList(registry=admins, event_log=event_log)
    gate = OperationsGate(registry=admins, event_log=event_log)

    if config.initial_supply > 0:
        token.mint(owner, owner, config.initial_supply)
        token.approve(owner, custody.address, config.initial_supply)

    ledger = VestingLedger(
        transfer=custody,
        authorization=admins,
        allow_list=allow_list,
        gate=gate,
        clock=clock or SystemClock(),
        event_log=event_log,
    )

    logger.info(
        "Vesting stack bootstrapped",
        extra={
            "event": "vesting.stack_bootstrapped",
            "environment": config.environment,
            "token": token.symbol,
            "initial_supply": config.initial_supply,
        },
    )
    return VestingStack(
        config=config,
        token=token,
        custody=custody,
        admins=admins,
        allow_list=allow_list,
        gate=gate,
        event_log=event_log,
        ledger=ledger,
    )


def create_app(stack: Optional[VestingStack] = None, config: Optional[VestingConfig] = None) -> Flask:
    """Create the Flask app serving ``stack`` (built from config when omitted)."""
    if stack is None:
        stack = build_stack(config)

    app = Flask(__name__)
    app.config["VESTING_STACK"] = stack

    @app.before_request
    def inject_context() -> None:
        g.api_context = {"stack": app.config["VESTING_STACK"]}

    app.register_blueprint(vesting_bp)
    return app
