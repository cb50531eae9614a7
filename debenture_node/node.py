from __future__ import annotations

"""
Debenture node (composition root)

Wires one StateLedger to:
- AtomicLedgerStore (durable snapshot after every committed operation)
- EventLog (+ optional JSONL sink)
- ReferenceToken (the asset the vault holds)
- OwnerAccessControl -> ShareVault
- GovernanceEngine weighted by vault shares or by the reference asset

The vault and the engine never call each other; the only link is the
BalanceReader handed to the engine.
"""

import logging
import os
from typing import Any, Dict, Optional

from .config import default_config
from .runtime.access import OwnerAccessControl
from .runtime.atomic_store import AtomicLedgerStore
from .runtime.capabilities import Clock
from .runtime.clock import SystemClock
from .runtime.events import EventLog, JsonlEventSink
from .runtime.governance import GovernanceEngine
from .runtime.state import StateLedger
from .runtime.token import ReferenceToken
from .runtime.vault import ShareVault

log = logging.getLogger(__name__)


class DebentureNode:
    def __init__(self, cfg: Optional[Dict[str, Any]] = None, clock: Optional[Clock] = None) -> None:
        self.cfg = cfg or default_config()
        self.clock = clock or SystemClock()

        self.ledger = StateLedger()
        jsonl_path = self.cfg["events"].get("jsonl_path")
        sink = JsonlEventSink(jsonl_path) if jsonl_path else None
        self.events = EventLog(start_seq=sink.next_seq() if sink else 0)
        if sink is not None:
            self.events.subscribe(sink)
        self.ledger.add_event_listener(self.events.publish)

        persistence = self.cfg["persistence"]
        self.store: Optional[AtomicLedgerStore] = None
        if persistence.get("enabled", True):
            self.store = AtomicLedgerStore(
                data_dir=persistence["data_dir"],
                filename=persistence["filename"],
                keep_backups=persistence["keep_backups"],
            )
            state = self.store.load()
            if state is not None:
                self.ledger.load(state)
                log.info("loaded %d ledger keys from %s", len(state), self.store.path)

        vault_cfg = self.cfg["vault"]
        gov_cfg = self.cfg["governance"]

        self.token = ReferenceToken(self.ledger, symbol=vault_cfg["asset_symbol"])
        self.access = OwnerAccessControl(self.ledger, owner=vault_cfg["owner"])
        self.vault = ShareVault(
            self.ledger,
            self.token.handle(vault_cfg["address"]),
            self.access,
            address=vault_cfg["address"],
            name=vault_cfg["name"],
            symbol=vault_cfg["symbol"],
            reject_zero_share_deposits=vault_cfg["reject_zero_share_deposits"],
        )
        weighting = self.vault if gov_cfg["weighting"] == "shares" else self.token
        self.governance = GovernanceEngine(
            self.ledger,
            weighting,
            self.clock,
            voting_period=gov_cfg["voting_period_sec"],
            min_proposal_threshold=gov_cfg["min_proposal_threshold"],
            quorum_threshold=gov_cfg["quorum_threshold"],
        )

        if self.store is not None:
            self.ledger.add_commit_hook(self._persist)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _persist(self, ledger: StateLedger) -> None:
        self.store.save(ledger.snapshot())

    def save(self) -> None:
        if self.store is None:
            return
        with self.ledger.lock:
            self.store.save(self.ledger.snapshot())

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def status(self) -> Dict[str, Any]:
        return {
            "vault": self.vault.summary(),
            "asset": {
                "symbol": self.token.symbol,
                "total_supply": self.token.total_supply(),
                "vault_balance": self.token.balance_of(self.vault.address),
            },
            "governance": {
                "proposals": self.governance.proposal_count(),
                "weighting": self.cfg["governance"]["weighting"],
                "quorum_threshold": self.governance.quorum_threshold,
            },
            "events": len(self.events),
            "state_path": os.fspath(self.store.path) if self.store else None,
        }
