"""
Tests for the vesting HTTP API served through the Flask test client.
"""

import pytest

from xvest.api.app import build_stack, create_app
from xvest.core.collaborators import ManualClock
from xvest.core.config import VestingConfig
from xvest.core.vesting_exceptions import ConfigurationError

from vesting_testdata import ALICE, BOB, CUSTODY, DAY, MALLORY, OWNER, SUPPLY, T0


@pytest.fixture
def api_clock():
    return ManualClock(T0)


@pytest.fixture
def stack(api_clock):
    config = VestingConfig(
        environment="test",
        owner_address=OWNER,
        custody_address=CUSTODY,
        initial_supply=SUPPLY,
    )
    stack = build_stack(config, clock=api_clock)
    stack.allow_list.approve(OWNER, ALICE)
    return stack


@pytest.fixture
def client(stack):
    app = create_app(stack)
    app.config["TESTING"] = True
    return app.test_client()


def create_payload(**overrides):
    payload = {
        "caller": OWNER,
        "recipient": ALICE,
        "total_amount": 1000,
        "cliff_duration": 30 * DAY,
        "vesting_duration": 120 * DAY,
        "start_time": T0,
    }
    payload.update(overrides)
    return payload


class TestBuildStack:
    def test_mints_supply_and_approves_custody(self, stack):
        assert stack.token.balance_of(OWNER) == SUPPLY
        assert stack.token.allowance(OWNER, CUSTODY) == SUPPLY
        assert stack.admins.is_admin(OWNER)
        assert stack.ledger.transfer is stack.custody

    def test_requires_owner(self):
        with pytest.raises(ConfigurationError):
            build_stack(VestingConfig())


class TestScheduleEndpoints:
    def test_create_schedule(self, client, stack):
        response = client.post("/vesting/schedules", json=create_payload())

        assert response.status_code == 201
        body = response.get_json()
        assert body["success"] is True
        assert body["schedule"]["recipient"] == ALICE
        assert body["schedule"]["total_amount"] == 1000
        assert stack.custody.balance() == 1000

    def test_create_schedule_missing_fields(self, client):
        response = client.post("/vesting/schedules", json={"caller": OWNER})
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_argument"

    def test_create_schedule_non_string_address(self, client):
        response = client.post("/vesting/schedules", json=create_payload(recipient=42))
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "overrides,status,code",
        [
            ({"caller": ALICE}, 403, "unauthorized"),
            ({"recipient": MALLORY}, 403, "not_approved"),
            ({"cliff_duration": 40, "vesting_duration": 30}, 400, "invalid_argument"),
            ({"total_amount": 0}, 400, "invalid_argument"),
            ({"total_amount": SUPPLY + 1}, 502, "transfer_failed"),
        ],
    )
    def test_create_schedule_rejections(self, client, overrides, status, code):
        response = client.post("/vesting/schedules", json=create_payload(**overrides))
        assert response.status_code == status
        body = response.get_json()
        assert body["success"] is False
        assert body["code"] == code

    def test_duplicate_schedule_conflicts(self, client):
        client.post("/vesting/schedules", json=create_payload())
        response = client.post("/vesting/schedules", json=create_payload())
        assert response.status_code == 409
        assert response.get_json()["code"] == "duplicate_schedule"

    def test_get_schedule(self, client, api_clock):
        client.post("/vesting/schedules", json=create_payload())
        api_clock.set(T0 + 60 * DAY)

        response = client.get(f"/vesting/schedules/{ALICE}")
        assert response.status_code == 200
        body = response.get_json()
        assert body["vested_amount"] == 500
        assert body["claimable_amount"] == 500
        assert body["schedule"]["cliff_duration"] == 30 * DAY

    def test_get_missing_schedule(self, client):
        response = client.get(f"/vesting/schedules/{MALLORY}")
        assert response.status_code == 404
        assert response.get_json()["code"] == "schedule_not_found"

    def test_vested_amount_for_unknown_recipient_is_zero(self, client):
        response = client.get(f"/vesting/schedules/{MALLORY}/vested")
        assert response.status_code == 200
        assert response.get_json()["vested_amount"] == 0

    def test_list_schedules(self, client):
        client.post("/vesting/schedules", json=create_payload())
        body = client.get("/vesting/schedules").get_json()
        assert body["recipients"] == [ALICE]
        assert body["outstanding_amount"] == 1000
        assert body["custody_balance"] == 1000


class TestClaimAndRevoke:
    def test_claim_then_revoke(self, client, api_clock):
        client.post("/vesting/schedules", json=create_payload())
        api_clock.set(T0 + 60 * DAY)

        claim = client.post("/vesting/claim", json={"caller": ALICE})
        assert claim.status_code == 200
        assert claim.get_json()["claimed"] == 500

        again = client.post("/vesting/claim", json={"caller": ALICE})
        assert again.status_code == 409
        assert again.get_json()["code"] == "nothing_claimable"

        revoke = client.post("/vesting/revoke", json={"caller": OWNER, "recipient": ALICE})
        assert revoke.status_code == 200
        assert revoke.get_json()["reclaimed"] == 500

        balance = client.get(f"/vesting/balances/{ALICE}").get_json()
        assert balance["balance"] == 500
        assert balance["symbol"] == "VEST"

        api_clock.advance(100 * DAY)
        after = client.post("/vesting/claim", json={"caller": ALICE})
        assert after.status_code == 409
        assert after.get_json()["code"] == "already_revoked"

    def test_claim_without_schedule(self, client):
        response = client.post("/vesting/claim", json={"caller": BOB})
        assert response.status_code == 404

    def test_claim_requires_caller(self, client):
        response = client.post("/vesting/claim", data="not json", content_type="text/plain")
        assert response.status_code == 400

    def test_revoke_by_non_admin(self, client):
        client.post("/vesting/schedules", json=create_payload())
        response = client.post("/vesting/revoke", json={"caller": ALICE, "recipient": ALICE})
        assert response.status_code == 403


class TestAdministrationEndpoints:
    def test_allow_list_round_trip(self, client, stack):
        response = client.post("/vesting/allowlist", json={"caller": OWNER, "recipient": BOB})
        assert response.status_code == 200
        assert stack.allow_list.is_approved(BOB)

        response = client.delete(f"/vesting/allowlist/{BOB}", json={"caller": OWNER})
        assert response.get_json()["removed"] is True
        assert not stack.allow_list.is_approved(BOB)

    def test_allow_list_requires_admin(self, client):
        response = client.post("/vesting/allowlist", json={"caller": ALICE, "recipient": BOB})
        assert response.status_code == 403

    def test_pause_blocks_claims(self, client, api_clock):
        client.post("/vesting/schedules", json=create_payload())
        api_clock.set(T0 + 60 * DAY)

        paused = client.post("/vesting/pause", json={"caller": OWNER})
        assert paused.get_json() == {"success": True, "paused": True, "changed": True}

        claim = client.post("/vesting/claim", json={"caller": ALICE})
        assert claim.status_code == 423
        assert claim.get_json()["code"] == "gate_closed"

        resumed = client.post("/vesting/unpause", json={"caller": OWNER})
        assert resumed.get_json()["paused"] is False
        assert client.post("/vesting/claim", json={"caller": ALICE}).status_code == 200

    def test_events(self, client, api_clock):
        client.post("/vesting/schedules", json=create_payload())
        api_clock.set(T0 + 60 * DAY)
        client.post("/vesting/claim", json={"caller": ALICE})

        body = client.get("/vesting/events", query_string={"type": "TokensClaimed"}).get_json()
        assert body["count"] == 1
        assert body["events"][0]["recipient"] == ALICE
        assert body["events"][0]["amount"] == 500

        everything = client.get("/vesting/events", query_string={"recipient": ALICE}).get_json()
        types = [e["event_type"] for e in everything["events"]]
        assert types == ["RecipientApproved", "ScheduleCreated", "TokensClaimed"]

    def test_unknown_event_type(self, client):
        response = client.get("/vesting/events", query_string={"type": "Nope"})
        assert response.status_code == 400


def test_missing_stack_reports_unavailable():
    from flask import Flask

    from xvest.api.vesting_bp import vesting_bp

    app = Flask(__name__)
    app.register_blueprint(vesting_bp)
    response = app.test_client().get("/vesting/schedules")
    assert response.status_code == 503
    assert response.get_json()["code"] == "ledger_unavailable"


class TestErrorBodies:
    def test_closed_gate_is_recoverable(self, client, stack):
        client.post("/vesting/schedules", json=create_payload())
        stack.gate.pause(OWNER)

        body = client.post("/vesting/claim", json={"caller": ALICE}).get_json()
        assert body["code"] == "gate_closed"
        assert body["recoverable"] is True

    def test_authorization_failure_is_not_recoverable(self, client):
        body = client.post("/vesting/schedules", json=create_payload(caller=ALICE)).get_json()
        assert body["code"] == "unauthorized"
        assert body["recoverable"] is False

    def test_request_validation_errors_omit_recoverable(self, client):
        body = client.post("/vesting/claim", json={}).get_json()
        assert body["code"] == "invalid_argument"
        assert "recoverable" not in body
