"""
Tests for the in-memory fungible token and the custody adapter.
"""

import pytest

from xvest.core.access_control import ZERO_ADDRESS
from xvest.core.collaborators import AssetTransfer
from xvest.core.token import FungibleToken, TokenCustody
from xvest.core.vesting_exceptions import TokenError

from vesting_testdata import ALICE, BOB, CUSTODY, OWNER, SUPPLY


class TestFungibleToken:
    def test_mint_credits_owner(self, token):
        assert token.total_supply == SUPPLY
        assert token.balance_of(OWNER) == SUPPLY
        assert token.events[0].event_type == "Transfer"
        assert token.events[0].from_address == ZERO_ADDRESS

    def test_mint_respects_cap(self, token):
        with pytest.raises(TokenError):
            token.mint(OWNER, OWNER, 1)

    def test_only_owner_mints(self):
        token = FungibleToken(name="T", symbol="T", owner=OWNER)
        with pytest.raises(TokenError):
            token.mint(ALICE, ALICE, 10)
        assert token.total_supply == 0

    def test_transfer(self, token):
        assert token.transfer(OWNER, ALICE, 250)
        assert token.balance_of(OWNER) == SUPPLY - 250
        assert token.balance_of(ALICE) == 250

    def test_transfer_exceeding_balance(self, token):
        with pytest.raises(TokenError):
            token.transfer(ALICE, BOB, 1)
        assert token.balance_of(BOB) == 0

    def test_transfer_to_zero_address(self, token):
        with pytest.raises(TokenError):
            token.transfer(OWNER, ZERO_ADDRESS, 1)

    @pytest.mark.parametrize("amount", [-1, 1.5, True, "10"])
    def test_invalid_amounts(self, token, amount):
        with pytest.raises(TokenError):
            token.transfer(OWNER, ALICE, amount)

    def test_transfer_from_consumes_allowance(self, token):
        token.approve(OWNER, ALICE, 100)
        assert token.transfer_from(ALICE, OWNER, BOB, 60)
        assert token.allowance(OWNER, ALICE) == 40
        assert token.balance_of(BOB) == 60

        with pytest.raises(TokenError):
            token.transfer_from(ALICE, OWNER, BOB, 41)
        assert token.allowance(OWNER, ALICE) == 40

    def test_to_dict(self, token):
        data = token.to_dict()
        assert data["symbol"] == "VEST"
        assert data["total_supply"] == SUPPLY
        assert data["owner"] == OWNER


class TestTokenCustody:
    def test_satisfies_transfer_protocol(self, custody):
        assert isinstance(custody, AssetTransfer)
        assert custody.address == CUSTODY

    def test_zero_custody_address_rejected(self, token):
        with pytest.raises(TokenError):
            TokenCustody(token, ZERO_ADDRESS)

    def test_pull_uses_allowance(self, token, custody):
        assert custody.pull_from(OWNER, 300) is True
        assert custody.balance() == 300
        assert token.allowance(OWNER, CUSTODY) == SUPPLY - 300

    def test_pull_without_allowance_returns_false(self, token, custody):
        token.transfer(OWNER, ALICE, 10)
        assert custody.pull_from(ALICE, 10) is False
        assert custody.balance() == 0
        assert token.balance_of(ALICE) == 10

    def test_push_moves_custody_balance(self, token, custody):
        custody.pull_from(OWNER, 300)
        assert custody.push_to(ALICE, 120) is True
        assert custody.balance() == 180
        assert token.balance_of(ALICE) == 120

    def test_push_beyond_balance_returns_false(self, custody):
        assert custody.push_to(ALICE, 1) is False
