from __future__ import annotations

"""
Audit events for committed ledger transitions.

Runtimes emit event records into the open ledger transaction. They only
reach the EventLog once the transaction commits, so the log never shows
an operation that was rolled back.

The log is append-only and decoupled from the ledger: sinks (JSONL file,
metrics, tests) subscribe without the runtimes knowing about them.

`replay()` rebuilds vault totals, share balances, block flags and
proposal tallies from a full event stream.
"""

import json
import logging
import threading
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

log = logging.getLogger(__name__)

EventRecord = Dict[str, Any]
Subscriber = Callable[[EventRecord], None]

# Mint/burn counterparty in Transfer events.
ZERO_ADDRESS = ""


@dataclass(frozen=True)
class Event:
    name = "Event"

    def to_record(self) -> EventRecord:
        rec = {"event": self.name}
        rec.update(asdict(self))
        return rec


# ---------------------------------------------------------------------------
# Vault
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Deposited(Event):
    name = "Deposited"
    depositor: str
    amount_in: int
    shares_minted: int


@dataclass(frozen=True)
class Withdrawn(Event):
    name = "Withdrawn"
    withdrawer: str
    amount_out: int
    shares_burned: int


@dataclass(frozen=True)
class SellBlockChanged(Event):
    name = "SellBlockChanged"
    address: str
    blocked: bool


@dataclass(frozen=True)
class Transfer(Event):
    name = "Transfer"
    sender: str
    recipient: str
    amount: int


@dataclass(frozen=True)
class Approval(Event):
    name = "Approval"
    owner: str
    spender: str
    amount: int


# ---------------------------------------------------------------------------
# Reference asset
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenTransfer(Event):
    name = "TokenTransfer"
    token: str
    sender: str
    recipient: str
    amount: int


@dataclass(frozen=True)
class TokenApproval(Event):
    name = "TokenApproval"
    token: str
    owner: str
    spender: str
    amount: int


# ---------------------------------------------------------------------------
# Governance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProposalCreated(Event):
    name = "ProposalCreated"
    proposal_id: int
    proposer: str
    description: str
    start_time: int
    end_time: int


@dataclass(frozen=True)
class VoteCast(Event):
    name = "VoteCast"
    proposal_id: int
    voter: str
    support: bool
    weight: int


@dataclass(frozen=True)
class ProposalExecuted(Event):
    name = "ProposalExecuted"
    proposal_id: int
    passed: bool


# ---------------------------------------------------------------------------
# Log + sinks
# ---------------------------------------------------------------------------


class EventLog:
    """
    In-memory append-only log of committed events.

    `publish` is registered as a StateLedger event listener. Each record
    gets a monotonically increasing `seq`, starting at `start_seq` (the
    next free number of a sink that outlives the process).

    A batch is appended in full before any subscriber sees it. Subscriber
    failures are logged and skipped: the transition has already committed.
    """

    def __init__(self, start_seq: int = 0) -> None:
        self.start_seq = start_seq
        self._records: List[EventRecord] = []
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def publish(self, events: Iterable[Event]) -> None:
        with self._lock:
            batch = []
            for event in events:
                record = event.to_record()
                record["seq"] = self.start_seq + len(self._records)
                self._records.append(record)
                batch.append(record)
        for record in batch:
            for subscriber in self._subscribers:
                try:
                    subscriber(record)
                except Exception:
                    log.warning("event subscriber %r failed on seq=%d", subscriber, record["seq"], exc_info=True)

    def records(self, event: Optional[str] = None) -> List[EventRecord]:
        with self._lock:
            if event is None:
                return list(self._records)
            return [r for r in self._records if r["event"] == event]

    def recent(self, limit: int = 50) -> List[EventRecord]:
        with self._lock:
            if limit <= 0:
                return []
            return list(self._records[-limit:])

    def __len__(self) -> int:
        return len(self._records)


class JsonlEventSink:
    """Appends every committed event as one JSON line."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, record: EventRecord) -> None:
        line = json.dumps(record, sort_keys=True, separators=(",", ":"))
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def next_seq(self) -> int:
        if not self.path.exists():
            return 0
        records = read_jsonl(self.path)
        return records[-1]["seq"] + 1 if records else 0


def read_jsonl(path: Union[str, Path]) -> List[EventRecord]:
    out: List[EventRecord] = []
    with Path(path).open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                out.append(json.loads(line))
    return out


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------


@dataclass
class ReplayState:
    total_shares: int = 0
    total_backing: int = 0
    shares: Dict[str, int] = field(default_factory=dict)
    sell_blocked: Dict[str, bool] = field(default_factory=dict)
    proposals: Dict[int, Dict[str, Any]] = field(default_factory=dict)

    def _credit(self, address: str, amount: int) -> None:
        self.shares[address] = self.shares.get(address, 0) + amount

    def _debit(self, address: str, amount: int) -> None:
        left = self.shares.get(address, 0) - amount
        if left < 0:
            raise ValueError(f"replay drove {address} negative")
        if left:
            self.shares[address] = left
        else:
            self.shares.pop(address, None)


def replay(records: Iterable[EventRecord]) -> ReplayState:
    """
    Rebuild ledger state from event records (as produced by EventLog).

    Mint and burn are taken from Deposited/Withdrawn; Transfer records
    touching ZERO_ADDRESS are their mirror images and are skipped.
    """
    st = ReplayState()
    for rec in records:
        kind = rec.get("event")
        if kind == "Deposited":
            st.total_backing += rec["amount_in"]
            st.total_shares += rec["shares_minted"]
            st._credit(rec["depositor"], rec["shares_minted"])
        elif kind == "Withdrawn":
            st.total_backing -= rec["amount_out"]
            st.total_shares -= rec["shares_burned"]
            st._debit(rec["withdrawer"], rec["shares_burned"])
        elif kind == "Transfer":
            if rec["sender"] == ZERO_ADDRESS or rec["recipient"] == ZERO_ADDRESS:
                continue
            st._debit(rec["sender"], rec["amount"])
            st._credit(rec["recipient"], rec["amount"])
        elif kind == "SellBlockChanged":
            st.sell_blocked[rec["address"]] = bool(rec["blocked"])
        elif kind == "ProposalCreated":
            st.proposals[int(rec["proposal_id"])] = {
                "proposer": rec["proposer"],
                "description": rec["description"],
                "start_time": rec["start_time"],
                "end_time": rec["end_time"],
                "votes_for": 0,
                "votes_against": 0,
                "executed": False,
            }
        elif kind == "VoteCast":
            prop = st.proposals[int(rec["proposal_id"])]
            key = "votes_for" if rec["support"] else "votes_against"
            prop[key] += rec["weight"]
        elif kind == "ProposalExecuted":
            st.proposals[int(rec["proposal_id"])]["executed"] = True
    st.shares = {a: s for a, s in st.shares.items() if s}
    return st
