"""
Narrow capability interfaces consumed by the runtimes.

The vault and governance engine never assume a concrete asset, clock or
permission implementation; they are handed objects satisfying these
protocols at construction time.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from debenture_node.runtime.errors import InvalidAddress
from debenture_node.runtime.state import SEP

Address = str


@runtime_checkable
class BalanceReader(Protocol):
    def balance_of(self, address: Address) -> int: ...


@runtime_checkable
class AssetTransfer(BalanceReader, Protocol):
    """Asset moves performed on behalf of one fixed account (the holder)."""

    def transfer(self, recipient: Address, amount: int) -> bool: ...

    def transfer_from(self, sender: Address, recipient: Address, amount: int) -> bool: ...


@runtime_checkable
class AccessControl(Protocol):
    def is_authorized(self, caller: Address) -> bool: ...


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int: ...


def require_address(value: Any) -> Address:
    if not isinstance(value, str) or not value or SEP in value:
        raise InvalidAddress(f"invalid address {value!r}")
    return value
