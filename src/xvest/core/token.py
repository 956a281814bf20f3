"""
Fixed-supply fungible token and the custody adapter used by the vesting ledger.

This module provides:
- FungibleToken: balances, allowances, transfers, owner-only minting up to a cap
- TokenCustody: the asset-transfer collaborator bound to the ledger's custody
  address (pulls use the funder's allowance, pushes move custody balance)

Security features:
- Zero address checks on all operations
- Balance underflow prevention
- Allowance validation
- Integer-only amounts
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List

from .access_control import ZERO_ADDRESS, is_zero_address, normalize_address
from .vesting_exceptions import TokenError

logger = logging.getLogger(__name__)


@dataclass
class TokenEvent:
    """Represents a token Transfer or Approval."""

    event_type: str  # "Transfer" or "Approval"
    from_address: str
    to_address: str
    value: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class FungibleToken:
    """
    In-memory fungible token with a hard supply cap.

    Balances and allowances are plain dicts keyed by normalized address.
    Every rejected operation raises TokenError and leaves state untouched.
    """

    # Token metadata
    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0

    # Owner (for minting permissions)
    owner: str = ""

    # State
    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[str, Dict[str, int]] = field(default_factory=dict)

    # Event log
    events: List[TokenEvent] = field(default_factory=list)

    # Supply cap (0 = unlimited)
    max_supply: int = 0

    def __post_init__(self) -> None:
        if self.owner:
            self.owner = normalize_address(self.owner)

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        return self.balances.get(normalize_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        owner_norm = normalize_address(owner)
        spender_norm = normalize_address(spender)
        return self.allowances.get(owner_norm, {}).get(spender_norm, 0)

    # ==================== State-Changing Functions ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Transfer tokens from sender to recipient.

        Raises:
            TokenError: If the recipient is zero, the amount invalid or the balance short
        """
        sender_norm = normalize_address(sender)
        recipient_norm = normalize_address(recipient)

        self._validate_address(recipient_norm, "recipient")
        self._validate_amount(amount)

        sender_balance = self.balances.get(sender_norm, 0)
        if sender_balance < amount:
            raise TokenError(
                f"{self.symbol}: transfer amount exceeds balance "
                f"({amount} > {sender_balance})"
            )

        self.balances[sender_norm] = sender_balance - amount
        self.balances[recipient_norm] = self.balances.get(recipient_norm, 0) + amount

        self._emit_transfer(sender_norm, recipient_norm, amount)

        logger.debug(
            "Token transfer",
            extra={
                "event": "token.transfer",
                "token": self.symbol,
                "from": sender_norm[:10],
                "to": recipient_norm[:10],
                "amount": amount,
            }
        )

        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Set the amount spender may move on behalf of owner."""
        owner_norm = normalize_address(owner)
        spender_norm = normalize_address(spender)

        self._validate_address(spender_norm, "spender")
        self._validate_amount(amount)

        self.allowances.setdefault(owner_norm, {})[spender_norm] = amount
        self.events.append(
            TokenEvent(
                event_type="Approval",
                from_address=owner_norm,
                to_address=spender_norm,
                value=amount,
            )
        )
        return True

    def transfer_from(
        self, spender: str, from_addr: str, to_addr: str, amount: int
    ) -> bool:
        """
        Transfer tokens using an allowance.

        Raises:
            TokenError: If allowance or balance is insufficient
        """
        spender_norm = normalize_address(spender)
        from_norm = normalize_address(from_addr)
        to_norm = normalize_address(to_addr)

        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        current_allowance = self.allowance(from_norm, spender_norm)
        if current_allowance < amount:
            raise TokenError(
                f"{self.symbol}: insufficient allowance ({current_allowance} < {amount})"
            )

        from_balance = self.balances.get(from_norm, 0)
        if from_balance < amount:
            raise TokenError(
                f"{self.symbol}: transfer amount exceeds balance ({amount} > {from_balance})"
            )

        self.allowances[from_norm][spender_norm] = current_allowance - amount
        self.balances[from_norm] = from_balance - amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount

        self._emit_transfer(from_norm, to_norm, amount)

        return True

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """
        Mint new tokens (owner only).

        Raises:
            TokenError: If caller is not the owner or the cap would be exceeded
        """
        if not self.owner or normalize_address(minter) != self.owner:
            raise TokenError(f"{self.symbol}: caller is not the owner")

        to_norm = normalize_address(to)
        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        if self.max_supply > 0 and self.total_supply + amount > self.max_supply:
            raise TokenError(
                f"{self.symbol}: mint would exceed max supply "
                f"({self.total_supply + amount} > {self.max_supply})"
            )

        self.total_supply += amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount

        # Transfer from zero address marks a mint
        self._emit_transfer(ZERO_ADDRESS, to_norm, amount)

        logger.info(
            "Token mint",
            extra={
                "event": "token.mint",
                "token": self.symbol,
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            }
        )

        return True

    # ==================== Helpers ====================

    def _validate_address(self, address: str, field_name: str) -> None:
        if is_zero_address(address):
            raise TokenError(f"{self.symbol}: {field_name} is zero address")

    def _validate_amount(self, amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TokenError(f"{self.symbol}: amount must be an integer")
        if amount < 0:
            raise TokenError(f"{self.symbol}: amount cannot be negative")

    def _emit_transfer(self, from_addr: str, to_addr: str, amount: int) -> None:
        self.events.append(
            TokenEvent(
                event_type="Transfer",
                from_address=from_addr,
                to_address=to_addr,
                value=amount,
            )
        )

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self.total_supply,
            "max_supply": self.max_supply,
            "owner": self.owner,
        }


class TokenCustody:
    """
    Asset-transfer collaborator holding ledger funds at a custody address.

    Pulls require the source to have approved the custody address on the
    token. Token rejections are reported as ``False`` so the ledger can turn
    them into its own typed error and roll back.
    """

    def __init__(self, token: FungibleToken, address: str) -> None:
        if is_zero_address(address):
            raise TokenError("Custody address cannot be the zero address")
        self.token = token
        self.address = normalize_address(address)

    def balance(self) -> int:
        return self.token.balance_of(self.address)

    def pull_from(self, source: str, amount: int) -> bool:
        try:
            return self.token.transfer_from(self.address, source, self.address, amount)
        except TokenError as exc:
            logger.warning(
                "Custody pull rejected",
                extra={
                    "event": "custody.pull_rejected",
                    "source": normalize_address(source)[:10],
                    "amount": amount,
                    "error": str(exc),
                }
            )
            return False

    def push_to(self, destination: str, amount: int) -> bool:
        try:
            return self.token.transfer(self.address, destination, amount)
        except TokenError as exc:
            logger.warning(
                "Custody push rejected",
                extra={
                    "event": "custody.push_rejected",
                    "destination": normalize_address(destination)[:10],
                    "amount": amount,
                    "error": str(exc),
                }
            )
            return False
