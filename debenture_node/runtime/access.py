"""
Owner-based access control.

The owner is always authorized and may grant or revoke additional
principals. State lives in the ledger under the "access" component so it
survives restarts alongside the vault it protects.
"""

from __future__ import annotations

import logging
from debenture_node.runtime.capabilities import Address, require_address
from debenture_node.runtime.errors import Unauthorized
from debenture_node.runtime.state import StateLedger

log = logging.getLogger(__name__)


class OwnerAccessControl:
    def __init__(self, ledger: StateLedger, owner: Address, component: str = "access") -> None:
        self.ledger = ledger
        self.component = component
        if not ledger.has(component, "meta", "owner"):
            with ledger.transaction():
                ledger.set(component, "meta", "owner", require_address(owner))

    @property
    def owner(self) -> Address:
        return self.ledger.get(self.component, "meta", "owner")

    def is_authorized(self, caller: Address) -> bool:
        if caller == self.owner:
            return True
        return bool(self.ledger.get(self.component, caller, "authorized", False))

    def _require_owner(self, caller: Address) -> None:
        if caller != self.owner:
            raise Unauthorized(f"{caller} is not the owner")

    def grant(self, caller: Address, principal: Address) -> None:
        with self.ledger.transaction():
            self._require_owner(caller)
            self.ledger.set(self.component, require_address(principal), "authorized", True)
        log.info("access granted to %s by %s", principal, caller)

    def revoke(self, caller: Address, principal: Address) -> None:
        with self.ledger.transaction():
            self._require_owner(caller)
            self.ledger.delete(self.component, require_address(principal), "authorized")
        log.info("access revoked from %s by %s", principal, caller)
