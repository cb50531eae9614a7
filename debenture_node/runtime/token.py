from __future__ import annotations

"""
Reference fungible asset kept in the same state ledger.

This is the external asset the vault takes custody of. It follows the
usual fungible-token conventions:

- transfer / transfer_from return False (and change nothing) when the
  balance or allowance is too small
- approve overwrites the allowance
- mint exists for genesis / dev faucet funding only

`handle(holder)` returns an AssetTransfer capability that acts as
`holder` (the caller identity a contract would have on-chain).
"""

import logging
from typing import Dict

from debenture_node.runtime.capabilities import Address, require_address
from debenture_node.runtime.errors import InvalidAmount
from debenture_node.runtime.events import TokenApproval, TokenTransfer, ZERO_ADDRESS
from debenture_node.runtime.fixed_point import require_positive, require_uint
from debenture_node.runtime.state import StateLedger

log = logging.getLogger(__name__)


class ReferenceToken:
    def __init__(self, ledger: StateLedger, symbol: str = "DAI") -> None:
        self.ledger = ledger
        self.symbol = symbol
        self.component = f"token:{symbol}"
        self.allowance_component = f"token:{symbol}.allowance"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def balance_of(self, address: Address) -> int:
        return self.ledger.get_int(self.component, address, "balance")

    def total_supply(self) -> int:
        return self.ledger.get_int(self.component, "meta", "total_supply")

    def allowance(self, owner: Address, spender: Address) -> int:
        return self.ledger.get_int(self.allowance_component, owner, spender)

    def balances(self) -> Dict[str, int]:
        raw = self.ledger.field_values(self.component, "balance")
        return {a: int(v) for a, v in raw.items() if v}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _move(self, sender: Address, recipient: Address, amount: int) -> bool:
        if self.balance_of(sender) < amount:
            return False
        self.ledger.add(self.component, sender, "balance", -amount)
        self.ledger.add(self.component, recipient, "balance", amount)
        self.ledger.emit(TokenTransfer(self.symbol, sender, recipient, amount))
        return True

    def mint(self, to: Address, amount: int) -> int:
        to = require_address(to)
        amount = require_positive(amount, InvalidAmount)
        with self.ledger.transaction():
            self.ledger.add(self.component, "meta", "total_supply", amount)
            new_balance = self.ledger.add(self.component, to, "balance", amount)
            self.ledger.emit(TokenTransfer(self.symbol, ZERO_ADDRESS, to, amount))
        log.info("%s minted %d to %s", self.symbol, amount, to)
        return new_balance

    def transfer(self, caller: Address, to: Address, amount: int) -> bool:
        caller, to = require_address(caller), require_address(to)
        amount = require_uint(amount, InvalidAmount)
        with self.ledger.transaction():
            return self._move(caller, to, amount)

    def approve(self, caller: Address, spender: Address, amount: int) -> bool:
        caller, spender = require_address(caller), require_address(spender)
        amount = require_uint(amount, InvalidAmount)
        with self.ledger.transaction():
            self.ledger.set(self.allowance_component, caller, spender, amount)
            self.ledger.emit(TokenApproval(self.symbol, caller, spender, amount))
        return True

    def transfer_from(self, caller: Address, owner: Address, to: Address, amount: int) -> bool:
        caller, owner, to = require_address(caller), require_address(owner), require_address(to)
        amount = require_uint(amount, InvalidAmount)
        with self.ledger.transaction():
            allowed = self.allowance(owner, caller)
            if allowed < amount:
                return False
            if not self._move(owner, to, amount):
                return False
            self.ledger.set(self.allowance_component, owner, caller, allowed - amount)
            return True

    def handle(self, holder: Address) -> "TokenHandle":
        return TokenHandle(self, require_address(holder))


class TokenHandle:
    """AssetTransfer capability bound to one holder account."""

    def __init__(self, token: ReferenceToken, holder: Address) -> None:
        self.token = token
        self.holder = holder

    def balance_of(self, address: Address) -> int:
        return self.token.balance_of(address)

    def transfer(self, recipient: Address, amount: int) -> bool:
        return self.token.transfer(self.holder, recipient, amount)

    def transfer_from(self, sender: Address, recipient: Address, amount: int) -> bool:
        return self.token.transfer_from(self.holder, sender, recipient, amount)
