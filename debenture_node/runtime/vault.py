from __future__ import annotations

"""
debenture_node/runtime/vault.py
-------------------------------

ShareVault: proportional-ownership vault ("Debenture").

Depositors hand the vault units of a reference asset and receive shares,
each share being a pro-rata claim on the pooled backing:

    first deposit (no shares outstanding):  shares = amount
    later deposits:                         shares = floor(amount * total_shares / total_backing)
    withdraw:                               amount = floor(shares * total_backing / total_shares)

Both divisions floor, so rounding always stays in the pool.

Shares are a transferable balance (transfer / approve / transfer_from).
An authorized principal can sell-block an address: a blocked address can
still receive shares (deposits, incoming transfers) but cannot withdraw
or move shares out until unblocked.

Invariants:
- total_shares == sum of every share balance
- total_backing only changes through deposit (+amount) and withdraw (-amount)
- total_backing == asset balance held by the vault address (no yield)
- the vault address itself never holds shares
"""

import logging
from typing import Dict, Tuple

from debenture_node.runtime.capabilities import AccessControl, Address, AssetTransfer, require_address
from debenture_node.runtime.errors import (
    DebentureError,
    InsufficientAllowance,
    InsufficientShares,
    InvalidAddress,
    InvalidAmount,
    InvalidShares,
    SellBlocked,
    TransferFailed,
    TransfersBlocked,
    Unauthorized,
)
from debenture_node.runtime.events import (
    Approval,
    Deposited,
    SellBlockChanged,
    Transfer,
    Withdrawn,
    ZERO_ADDRESS,
)
from debenture_node.runtime.fixed_point import WAD, mul_div, require_positive, require_uint, wad_ratio
from debenture_node.runtime.guard import NonReentrant, guarded
from debenture_node.runtime.state import StateLedger

log = logging.getLogger(__name__)

TOTALS = "totals"


class ShareVault:
    def __init__(
        self,
        ledger: StateLedger,
        asset: AssetTransfer,
        access: AccessControl,
        *,
        address: Address = "@vault",
        component: str = "vault",
        name: str = "Debenture",
        symbol: str = "DEB",
        reject_zero_share_deposits: bool = False,
    ) -> None:
        self.ledger = ledger
        self.asset = asset
        self.access = access
        self.address = require_address(address)
        self.component = component
        self.allowance_component = f"{component}.allowance"
        self.name = name
        self.symbol = symbol
        self.reject_zero_share_deposits = bool(reject_zero_share_deposits)
        self._guard = NonReentrant(f"{component}@{address}")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _totals(self) -> Tuple[int, int]:
        return (
            self.ledger.get_int(self.component, TOTALS, "total_shares"),
            self.ledger.get_int(self.component, TOTALS, "total_backing"),
        )

    @staticmethod
    def _shares_for(amount: int, total_shares: int, total_backing: int) -> int:
        if total_shares == 0 or total_backing == 0:
            return amount
        return mul_div(amount, total_shares, total_backing)

    @staticmethod
    def _amount_for(shares: int, total_shares: int, total_backing: int) -> int:
        if total_shares == 0:
            return 0
        return mul_div(shares, total_backing, total_shares)

    def _holder(self, address: Address) -> Address:
        address = require_address(address)
        if address == self.address:
            raise InvalidAddress("the vault account cannot hold shares", address=address)
        return address

    def _call_asset(self, op: str, *args) -> None:
        try:
            ok = getattr(self.asset, op)(*args)
        except DebentureError:
            raise
        except Exception as exc:
            raise TransferFailed(f"asset {op} raised: {exc}") from exc
        if not ok:
            raise TransferFailed(f"asset {op} returned {ok!r}", op=op)

    def _mint(self, to: Address, shares: int) -> None:
        self.ledger.add(self.component, to, "shares", shares)
        self.ledger.add(self.component, TOTALS, "total_shares", shares)
        self.ledger.emit(Transfer(ZERO_ADDRESS, to, shares))

    def _debit(self, owner: Address, shares: int) -> None:
        if self.is_sell_blocked(owner):
            raise TransfersBlocked(f"{owner} is blocked from moving shares")
        if self.share_balance(owner) < shares:
            raise InsufficientShares(f"{owner} holds fewer than {shares} shares")
        self.ledger.add(self.component, owner, "shares", -shares)

    def _burn(self, owner: Address, shares: int) -> None:
        self._debit(owner, shares)
        self.ledger.add(self.component, TOTALS, "total_shares", -shares)
        self.ledger.emit(Transfer(owner, ZERO_ADDRESS, shares))

    def _move(self, sender: Address, recipient: Address, shares: int) -> None:
        self._debit(sender, shares)
        self.ledger.add(self.component, recipient, "shares", shares)
        self.ledger.emit(Transfer(sender, recipient, shares))

    # ------------------------------------------------------------------
    # Deposit / withdraw
    # ------------------------------------------------------------------

    @guarded
    def deposit(self, caller: Address, amount: int) -> int:
        caller = self._holder(caller)
        amount = require_positive(amount, InvalidAmount)

        total_shares, total_backing = self._totals()
        shares = self._shares_for(amount, total_shares, total_backing)
        if shares == 0 and self.reject_zero_share_deposits:
            raise InvalidAmount("deposit too small to mint a share", amount=amount)

        self._call_asset("transfer_from", caller, self.address, amount)

        self.ledger.add(self.component, TOTALS, "total_backing", amount)
        self._mint(caller, shares)
        self.ledger.emit(Deposited(caller, amount, shares))
        log.info("deposit %s amount=%d shares=%d", caller, amount, shares)
        return shares

    @guarded
    def withdraw(self, caller: Address, shares: int) -> int:
        caller = self._holder(caller)
        shares = require_positive(shares, InvalidShares)
        if self.share_balance(caller) < shares:
            raise InsufficientShares(f"{caller} holds fewer than {shares} shares")
        if self.is_sell_blocked(caller):
            raise SellBlocked(f"{caller} is sell-blocked")

        total_shares, total_backing = self._totals()
        amount = self._amount_for(shares, total_shares, total_backing)

        # effects first; the outbound transfer is the last step
        self._burn(caller, shares)
        self.ledger.add(self.component, TOTALS, "total_backing", -amount)
        self.ledger.emit(Withdrawn(caller, amount, shares))

        self._call_asset("transfer", caller, amount)
        log.info("withdraw %s shares=%d amount=%d", caller, shares, amount)
        return amount

    # ------------------------------------------------------------------
    # Share token surface
    # ------------------------------------------------------------------

    @guarded
    def transfer(self, caller: Address, to: Address, amount: int) -> bool:
        caller, to = require_address(caller), self._holder(to)
        amount = require_uint(amount, InvalidAmount)
        self._move(caller, to, amount)
        return True

    def approve(self, caller: Address, spender: Address, amount: int) -> bool:
        caller, spender = require_address(caller), require_address(spender)
        amount = require_uint(amount, InvalidAmount)
        with self.ledger.transaction():
            self.ledger.set(self.allowance_component, caller, spender, amount)
            self.ledger.emit(Approval(caller, spender, amount))
        return True

    @guarded
    def transfer_from(self, caller: Address, owner: Address, to: Address, amount: int) -> bool:
        caller, owner, to = require_address(caller), require_address(owner), self._holder(to)
        amount = require_uint(amount, InvalidAmount)
        if self.is_sell_blocked(owner):
            raise TransfersBlocked(f"{owner} is blocked from moving shares")
        allowed = self.allowance(owner, caller)
        if allowed < amount:
            raise InsufficientAllowance(f"{caller} may move {allowed} of {owner}'s shares")
        self._move(owner, to, amount)
        self.ledger.set(self.allowance_component, owner, caller, allowed - amount)
        return True

    # ------------------------------------------------------------------
    # Sell blocking
    # ------------------------------------------------------------------

    def set_sell_blocked(self, caller: Address, address: Address, blocked: bool) -> None:
        address = require_address(address)
        with self.ledger.transaction():
            if not self.access.is_authorized(caller):
                raise Unauthorized(f"{caller} may not change sell blocks")
            self.ledger.set(self.component, address, "sell_blocked", bool(blocked))
            self.ledger.emit(SellBlockChanged(address, bool(blocked)))
        log.info("sell block %s -> %s (by %s)", address, bool(blocked), caller)

    def is_sell_blocked(self, address: Address) -> bool:
        return bool(self.ledger.get(self.component, address, "sell_blocked", False))

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def share_balance(self, address: Address) -> int:
        return self.ledger.get_int(self.component, address, "shares")

    # BalanceReader: lets governance weight votes by shares
    balance_of = share_balance

    def total_shares(self) -> int:
        return self._totals()[0]

    total_supply = total_shares

    def total_backing(self) -> int:
        return self._totals()[1]

    def allowance(self, owner: Address, spender: Address) -> int:
        return self.ledger.get_int(self.allowance_component, owner, spender)

    def get_ownership_percentage(self, address: Address) -> int:
        with self.ledger.lock:
            total_shares = self.total_shares()
            if total_shares == 0:
                return 0
            return wad_ratio(self.share_balance(address), total_shares)

    def exchange_rate(self) -> int:
        with self.ledger.lock:
            total_shares, total_backing = self._totals()
            if total_shares == 0:
                return WAD
            return wad_ratio(total_backing, total_shares)

    def preview_deposit(self, amount: int) -> int:
        amount = require_uint(amount, InvalidAmount)
        with self.ledger.lock:
            return self._shares_for(amount, *self._totals())

    def preview_withdraw(self, shares: int) -> int:
        shares = require_uint(shares, InvalidShares)
        with self.ledger.lock:
            return self._amount_for(shares, *self._totals())

    def holders(self) -> Dict[str, int]:
        raw = self.ledger.field_values(self.component, "shares")
        return {a: int(v) for a, v in raw.items() if v}

    def summary(self) -> Dict[str, int]:
        with self.ledger.lock:
            total_shares, total_backing = self._totals()
            return {
                "total_shares": total_shares,
                "total_backing": total_backing,
                "exchange_rate": self.exchange_rate(),
                "holders": len(self.holders()),
            }
