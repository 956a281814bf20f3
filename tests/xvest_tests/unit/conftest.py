"""
Shared fixtures for vesting ledger tests.
"""

import pytest

from xvest.blockchain.vesting_ledger import VestingLedger
from xvest.core.access_control import AdminRegistry, OperationsGate, RecipientAllowList
from xvest.core.collaborators import ManualClock
from xvest.core.events import EventLog
from xvest.core.token import FungibleToken, TokenCustody

from vesting_testdata import ALICE, BOB, CUSTODY, OWNER, SUPPLY, T0


@pytest.fixture
def clock():
    return ManualClock(start_time=T0)


@pytest.fixture
def event_log():
    return EventLog()


@pytest.fixture
def token():
    token = FungibleToken(name="Vesting Token", symbol="VEST", owner=OWNER, max_supply=SUPPLY)
    token.mint(OWNER, OWNER, SUPPLY)
    return token


@pytest.fixture
def custody(token):
    custody = TokenCustody(token, CUSTODY)
    token.approve(OWNER, custody.address, SUPPLY)
    return custody


@pytest.fixture
def admins():
    return AdminRegistry(owner=OWNER)


@pytest.fixture
def allow_list(admins, event_log):
    allow_list = RecipientAllowList(registry=admins, event_log=event_log)
    allow_list.approve(OWNER, ALICE)
    allow_list.approve(OWNER, BOB)
    return allow_list


@pytest.fixture
def gate(admins, event_log):
    return OperationsGate(registry=admins, event_log=event_log)


@pytest.fixture
def ledger(custody, admins, allow_list, gate, clock, event_log):
    return VestingLedger(
        transfer=custody,
        authorization=admins,
        allow_list=allow_list,
        gate=gate,
        clock=clock,
        event_log=event_log,
    )
