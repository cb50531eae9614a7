from __future__ import annotations

"""
debenture_node/runtime/governance.py
------------------------------------

Token-weighted binary governance.

Holders of the weighting asset create proposals (gated by a minimum
balance) and vote for/against. Each vote snapshots the voter's balance at
the moment the vote is cast; later balance changes do not alter it.

Proposal lifecycle:

    Active     now <= end_time and not executed
    Succeeded  now >  end_time, quorum met, votes_for > votes_against
    Failed     now >  end_time, quorum missed or votes_for <= votes_against
    Executed   terminal; set once by execute_proposal

Execution only finalizes the tally (no payload is run). It needs the
voting window to be over and quorum reached; a quorate proposal that lost
can still be executed and is recorded with passed=False.
"""

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List

from debenture_node.runtime.capabilities import Address, BalanceReader, Clock, require_address
from debenture_node.runtime.errors import (
    AlreadyExecuted,
    AlreadyVoted,
    EmptyDescription,
    InsufficientTokens,
    NotFound,
    NotStarted,
    NoVotingPower,
    QuorumNotReached,
    VotingEnded,
    VotingNotEnded,
)
from debenture_node.runtime.events import ProposalCreated, ProposalExecuted, VoteCast
from debenture_node.runtime.state import StateLedger

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

VOTING_PERIOD: int = 7 * 24 * 60 * 60  # seconds
MIN_PROPOSAL_THRESHOLD: int = 1_000
QUORUM_THRESHOLD: int = 10_000


class ProposalState(str, Enum):
    ACTIVE = "active"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    EXECUTED = "executed"


@dataclass(frozen=True)
class Proposal:
    id: int
    proposer: str
    description: str
    votes_for: int
    votes_against: int
    start_time: int
    end_time: int
    executed: bool

    @property
    def total_votes(self) -> int:
        return self.votes_for + self.votes_against

    @property
    def passed(self) -> bool:
        return self.votes_for > self.votes_against

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class GovernanceEngine:
    def __init__(
        self,
        ledger: StateLedger,
        weighting: BalanceReader,
        clock: Clock,
        *,
        component: str = "governance",
        voting_period: int = VOTING_PERIOD,
        min_proposal_threshold: int = MIN_PROPOSAL_THRESHOLD,
        quorum_threshold: int = QUORUM_THRESHOLD,
    ) -> None:
        self.ledger = ledger
        self.weighting = weighting
        self.clock = clock
        self.component = component
        self.power_component = f"{component}.power"
        self.support_component = f"{component}.support"
        self.voting_period = int(voting_period)
        self.min_proposal_threshold = int(min_proposal_threshold)
        self.quorum_threshold = int(quorum_threshold)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_exists(self, proposal_id: int) -> int:
        if (
            not isinstance(proposal_id, int)
            or isinstance(proposal_id, bool)
            or not 0 <= proposal_id < self.proposal_count()
        ):
            raise NotFound(f"proposal {proposal_id!r} does not exist")
        return proposal_id

    def _field(self, proposal_id: int, name: str) -> Any:
        return self.ledger.get(self.component, proposal_id, name)

    def _state_of(self, p: Proposal, now: int) -> ProposalState:
        if p.executed:
            return ProposalState.EXECUTED
        if now <= p.end_time:
            return ProposalState.ACTIVE
        if p.total_votes >= self.quorum_threshold and p.passed:
            return ProposalState.SUCCEEDED
        return ProposalState.FAILED

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_proposal(self, caller: Address, description: str) -> int:
        caller = require_address(caller)
        with self.ledger.transaction():
            balance = self.weighting.balance_of(caller)
            if balance < self.min_proposal_threshold:
                raise InsufficientTokens(
                    f"{caller} holds {balance}, needs {self.min_proposal_threshold}"
                )
            if not isinstance(description, str) or not description:
                raise EmptyDescription("proposal description is empty")

            proposal_id = self.proposal_count()
            start = self.clock.now()
            end = start + self.voting_period
            c = self.component
            self.ledger.set(c, proposal_id, "proposer", caller)
            self.ledger.set(c, proposal_id, "description", description)
            self.ledger.set(c, proposal_id, "votes_for", 0)
            self.ledger.set(c, proposal_id, "votes_against", 0)
            self.ledger.set(c, proposal_id, "start_time", start)
            self.ledger.set(c, proposal_id, "end_time", end)
            self.ledger.set(c, proposal_id, "executed", False)
            self.ledger.set(c, "meta", "next_id", proposal_id + 1)
            self.ledger.emit(ProposalCreated(proposal_id, caller, description, start, end))
        log.info("proposal %d created by %s (ends %d)", proposal_id, caller, end)
        return proposal_id

    def vote(self, caller: Address, proposal_id: int, support: bool) -> int:
        caller = require_address(caller)
        support = bool(support)
        with self.ledger.transaction():
            self._require_exists(proposal_id)
            now = self.clock.now()
            if now < self._field(proposal_id, "start_time"):
                raise NotStarted(f"voting on proposal {proposal_id} has not started")
            if now > self._field(proposal_id, "end_time"):
                raise VotingEnded(f"voting on proposal {proposal_id} has ended")
            if self.has_voted(proposal_id, caller):
                raise AlreadyVoted(f"{caller} already voted on proposal {proposal_id}")
            weight = self.weighting.balance_of(caller)
            if weight <= 0:
                raise NoVotingPower(f"{caller} has no voting power")

            self.ledger.set(self.power_component, proposal_id, caller, weight)
            self.ledger.set(self.support_component, proposal_id, caller, support)
            tally = "votes_for" if support else "votes_against"
            self.ledger.add(self.component, proposal_id, tally, weight)
            self.ledger.emit(VoteCast(proposal_id, caller, support, weight))
        log.info("vote on %d by %s support=%s weight=%d", proposal_id, caller, support, weight)
        return weight

    def execute_proposal(self, caller: Address, proposal_id: int) -> bool:
        caller = require_address(caller)
        with self.ledger.transaction():
            p = self.get_proposal(proposal_id)
            if self.clock.now() <= p.end_time:
                raise VotingNotEnded(f"proposal {proposal_id} is still open")
            if p.executed:
                raise AlreadyExecuted(f"proposal {proposal_id} was already executed")
            if p.total_votes < self.quorum_threshold:
                raise QuorumNotReached(
                    f"proposal {proposal_id} has {p.total_votes} of {self.quorum_threshold} votes"
                )
            self.ledger.set(self.component, proposal_id, "executed", True)
            self.ledger.emit(ProposalExecuted(proposal_id, p.passed))
        log.info("proposal %d executed by %s passed=%s", proposal_id, caller, p.passed)
        return p.passed

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def proposal_count(self) -> int:
        return self.ledger.get_int(self.component, "meta", "next_id")

    def get_proposal(self, proposal_id: int) -> Proposal:
        with self.ledger.lock:
            self._require_exists(proposal_id)
            return Proposal(
                id=proposal_id,
                proposer=self._field(proposal_id, "proposer"),
                description=self._field(proposal_id, "description"),
                votes_for=int(self._field(proposal_id, "votes_for")),
                votes_against=int(self._field(proposal_id, "votes_against")),
                start_time=int(self._field(proposal_id, "start_time")),
                end_time=int(self._field(proposal_id, "end_time")),
                executed=bool(self._field(proposal_id, "executed")),
            )

    def get_proposal_state(self, proposal_id: int) -> ProposalState:
        with self.ledger.lock:
            return self._state_of(self.get_proposal(proposal_id), self.clock.now())

    def has_voted(self, proposal_id: int, address: Address) -> bool:
        with self.ledger.lock:
            self._require_exists(proposal_id)
            return self.ledger.has(self.power_component, proposal_id, address)

    def get_voting_power(self, proposal_id: int, address: Address) -> int:
        with self.ledger.lock:
            self._require_exists(proposal_id)
            return self.ledger.get_int(self.power_component, proposal_id, address)

    def list_proposals(self) -> List[Proposal]:
        with self.ledger.lock:
            return [self.get_proposal(i) for i in range(self.proposal_count())]
