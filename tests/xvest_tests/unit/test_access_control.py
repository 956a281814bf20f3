"""
Tests for the administration collaborators: admin registry, allow-list and operations gate.
"""

import pytest

from xvest.core.access_control import (
    ZERO_ADDRESS,
    AdminRegistry,
    OperationsGate,
    RecipientAllowList,
    is_zero_address,
    normalize_address,
)
from xvest.core.collaborators import AllowList, Authorization, Gate
from xvest.core.events import EventType
from xvest.core.vesting_exceptions import AuthorizationError, InvalidArgumentError

from vesting_testdata import ALICE, BOB, MALLORY, OWNER


class TestAddressHelpers:
    def test_normalize_address(self):
        assert normalize_address("  0xABCdef  ") == "0xabcdef"

    @pytest.mark.parametrize("address", [None, "", ZERO_ADDRESS, ZERO_ADDRESS.upper().replace("0X", "0x")])
    def test_zero_addresses(self, address):
        assert is_zero_address(address)

    def test_regular_address_is_not_zero(self):
        assert not is_zero_address(ALICE)


class TestAdminRegistry:
    def test_owner_is_admin(self, admins):
        assert admins.is_admin(OWNER)
        assert admins.is_admin(OWNER.upper().replace("0X", "0x"))
        assert not admins.is_admin(ALICE)
        assert not admins.is_admin("")

    def test_satisfies_authorization_protocol(self, admins):
        assert isinstance(admins, Authorization)

    def test_zero_owner_is_rejected(self):
        with pytest.raises(InvalidArgumentError):
            AdminRegistry(owner=ZERO_ADDRESS)
        with pytest.raises(InvalidArgumentError):
            AdminRegistry()

    def test_owner_grants_and_revokes(self, admins):
        assert admins.grant_admin(OWNER, ALICE)
        assert admins.is_admin(ALICE)

        assert admins.revoke_admin(OWNER, ALICE)
        assert not admins.is_admin(ALICE)
        assert [change["action"] for change in admins.role_changes] == ["grant", "revoke"]

    def test_only_owner_grants(self, admins):
        admins.grant_admin(OWNER, ALICE)
        with pytest.raises(AuthorizationError):
            admins.grant_admin(ALICE, BOB)
        assert not admins.is_admin(BOB)

    def test_cannot_grant_zero_address(self, admins):
        with pytest.raises(InvalidArgumentError):
            admins.grant_admin(OWNER, ZERO_ADDRESS)

    def test_owner_cannot_revoke_itself(self, admins):
        with pytest.raises(InvalidArgumentError):
            admins.revoke_admin(OWNER, OWNER)
        assert admins.is_admin(OWNER)

    def test_require_admin(self, admins):
        admins.require_admin(OWNER)
        with pytest.raises(AuthorizationError) as excinfo:
            admins.require_admin(MALLORY)
        assert excinfo.value.code == "unauthorized"


class TestRecipientAllowList:
    def test_fixture_recipients_are_approved(self, allow_list):
        assert isinstance(allow_list, AllowList)
        assert allow_list.is_approved(ALICE)
        assert allow_list.is_approved(BOB)
        assert not allow_list.is_approved(MALLORY)
        assert not allow_list.is_approved("")

    def test_approve_emits_event(self, allow_list, event_log):
        allow_list.approve(OWNER, MALLORY)
        events = event_log.history(event_type=EventType.RECIPIENT_APPROVED, recipient=MALLORY)
        assert len(events) == 1
        assert events[0].actor == OWNER

    def test_non_admin_cannot_approve(self, allow_list):
        with pytest.raises(AuthorizationError):
            allow_list.approve(ALICE, MALLORY)
        assert not allow_list.is_approved(MALLORY)

    def test_zero_address_cannot_be_approved(self, allow_list):
        with pytest.raises(InvalidArgumentError):
            allow_list.approve(OWNER, ZERO_ADDRESS)

    def test_remove(self, allow_list, event_log):
        assert allow_list.remove(OWNER, ALICE) is True
        assert not allow_list.is_approved(ALICE)
        assert allow_list.remove(OWNER, ALICE) is False
        assert len(event_log.history(event_type=EventType.RECIPIENT_REMOVED)) == 1

    def test_removal_keeps_existing_schedule(self, ledger, allow_list, clock):
        ledger.create_schedule(OWNER, ALICE, 1000, 0, 100, clock.now())
        allow_list.remove(OWNER, ALICE)

        clock.advance(100)
        assert ledger.claim_vested_tokens(ALICE) == 1000


class TestOperationsGate:
    def test_open_by_default(self, gate):
        assert isinstance(gate, Gate)
        assert gate.is_accepting_operations()

    def test_pause_and_unpause(self, gate, event_log):
        assert gate.pause(OWNER) is True
        assert not gate.is_accepting_operations()
        assert gate.paused_at > 0
        assert gate.pause(OWNER) is False

        assert gate.unpause(OWNER) is True
        assert gate.is_accepting_operations()
        assert gate.unpause(OWNER) is False

        types = [e.event_type for e in event_log.history() if e.recipient == ""]
        assert types == [EventType.OPERATIONS_PAUSED, EventType.OPERATIONS_RESUMED]

    def test_non_admin_cannot_pause(self, gate):
        with pytest.raises(AuthorizationError):
            gate.pause(MALLORY)
        assert gate.is_accepting_operations()

    def test_gate_without_event_log(self, admins):
        gate = OperationsGate(registry=admins)
        assert gate.pause(OWNER)
        assert not gate.is_accepting_operations()
