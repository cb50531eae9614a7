import pytest

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
from debenture_node.runtime.governance import (
    MIN_PROPOSAL_THRESHOLD,
    QUORUM_THRESHOLD,
    VOTING_PERIOD,
    GovernanceEngine,
    ProposalState,
)


class Balances:
    """Plain dict-backed BalanceReader."""

    def __init__(self, **balances):
        self.balances = {f"@{k}": v for k, v in balances.items()}

    def balance_of(self, address):
        return self.balances.get(address, 0)


@pytest.fixture
def weights():
    return Balances(alice=50_000, bob=15_000, carol=5_000, dave=999)


@pytest.fixture
def gov(ledger, clock, weights, events):
    return GovernanceEngine(ledger, weights, clock)


def _close(gov, clock, pid):
    clock.set(gov.get_proposal(pid).end_time + 1)


# ============================================================
# Creation
# ============================================================


def test_create_proposal_initial_state(gov, clock):
    pid = gov.create_proposal("@alice", "Raise the cap")

    assert pid == 0
    p = gov.get_proposal(pid)
    assert p.proposer == "@alice"
    assert p.description == "Raise the cap"
    assert (p.votes_for, p.votes_against, p.executed) == (0, 0, False)
    assert p.start_time == clock.now()
    assert p.end_time == clock.now() + VOTING_PERIOD
    assert gov.get_proposal_state(pid) is ProposalState.ACTIVE


def test_ids_are_sequential(gov):
    assert [gov.create_proposal("@alice", f"p{i}") for i in range(3)] == [0, 1, 2]
    assert gov.proposal_count() == 3


def test_create_requires_threshold_balance(gov, weights):
    with pytest.raises(InsufficientTokens):
        gov.create_proposal("@dave", "too poor")

    weights.balances["@dave"] = MIN_PROPOSAL_THRESHOLD
    assert gov.create_proposal("@dave", "exactly enough") == 0


def test_create_rejects_empty_description(gov):
    with pytest.raises(EmptyDescription):
        gov.create_proposal("@alice", "")
    assert gov.proposal_count() == 0


def test_balance_gate_is_checked_before_description(gov):
    with pytest.raises(InsufficientTokens):
        gov.create_proposal("@dave", "")


# ============================================================
# Voting
# ============================================================


def test_vote_snapshots_weight(gov, weights):
    pid = gov.create_proposal("@alice", "snapshot")
    assert gov.vote("@bob", pid, True) == 15_000

    weights.balances["@bob"] = 1
    p = gov.get_proposal(pid)
    assert p.votes_for == 15_000
    assert gov.get_voting_power(pid, "@bob") == 15_000
    assert gov.has_voted(pid, "@bob")
    assert not gov.has_voted(pid, "@carol")


def test_late_acquirer_votes_with_current_balance(gov, weights):
    pid = gov.create_proposal("@alice", "late weight")
    weights.balances["@erin"] = 7_777
    assert gov.vote("@erin", pid, False) == 7_777
    assert gov.get_proposal(pid).votes_against == 7_777


def test_double_vote_rejected(gov):
    pid = gov.create_proposal("@alice", "once")
    gov.vote("@carol", pid, True)
    with pytest.raises(AlreadyVoted):
        gov.vote("@carol", pid, False)
    assert gov.get_proposal(pid).votes_against == 0


def test_vote_without_balance_rejected(gov):
    pid = gov.create_proposal("@alice", "nobody")
    with pytest.raises(NoVotingPower):
        gov.vote("@nobody", pid, True)
    assert not gov.has_voted(pid, "@nobody")


def test_vote_on_unknown_proposal(gov):
    for bad in (0, -1, 5, "0", True):
        with pytest.raises(NotFound):
            gov.vote("@alice", bad, True)


def test_vote_window_boundaries(gov, clock):
    pid = gov.create_proposal("@alice", "window")
    end = gov.get_proposal(pid).end_time

    clock.set(end)
    gov.vote("@bob", pid, True)  # now == end_time is still open

    clock.set(end + 1)
    with pytest.raises(VotingEnded):
        gov.vote("@carol", pid, True)


def test_vote_before_start_rejected(ledger, weights, clock, gov):
    pid = gov.create_proposal("@alice", "future")
    with ledger.transaction():
        ledger.set("governance", pid, "start_time", clock.now() + 10)
    with pytest.raises(NotStarted):
        gov.vote("@bob", pid, True)


# ============================================================
# State machine + execution
# ============================================================


def test_passing_scenario(gov, clock, events):
    pid = gov.create_proposal("@alice", "ship it")
    gov.vote("@alice", pid, True)
    gov.vote("@bob", pid, True)

    _close(gov, clock, pid)
    assert gov.get_proposal_state(pid) is ProposalState.SUCCEEDED

    assert gov.execute_proposal("@carol", pid) is True
    assert gov.get_proposal_state(pid) is ProposalState.EXECUTED
    rec = events.records("ProposalExecuted")[-1]
    assert rec == {"event": "ProposalExecuted", "proposal_id": pid, "passed": True, "seq": rec["seq"]}


def test_below_quorum_scenario(gov, clock):
    pid = gov.create_proposal("@alice", "quiet")
    gov.vote("@carol", pid, True)  # 5000 < 10000

    _close(gov, clock, pid)
    assert gov.get_proposal_state(pid) is ProposalState.FAILED
    with pytest.raises(QuorumNotReached):
        gov.execute_proposal("@alice", pid)
    assert gov.get_proposal_state(pid) is ProposalState.FAILED


def test_quorate_but_rejected_proposal_executes_as_failed(gov, clock):
    pid = gov.create_proposal("@alice", "contested")
    gov.vote("@bob", pid, True)
    gov.vote("@alice", pid, False)

    _close(gov, clock, pid)
    assert gov.get_proposal_state(pid) is ProposalState.FAILED
    assert gov.execute_proposal("@bob", pid) is False
    assert gov.get_proposal_state(pid) is ProposalState.EXECUTED


def test_tie_is_not_a_pass(gov, clock, weights):
    weights.balances["@erin"] = 15_000
    pid = gov.create_proposal("@alice", "tie")
    gov.vote("@bob", pid, True)
    gov.vote("@erin", pid, False)
    _close(gov, clock, pid)
    assert gov.get_proposal_state(pid) is ProposalState.FAILED


def test_execute_before_deadline_rejected(gov, clock):
    pid = gov.create_proposal("@alice", "early")
    gov.vote("@alice", pid, True)
    clock.set(gov.get_proposal(pid).end_time)
    with pytest.raises(VotingNotEnded):
        gov.execute_proposal("@alice", pid)


def test_execute_only_once(gov, clock):
    pid = gov.create_proposal("@alice", "once")
    gov.vote("@alice", pid, True)
    _close(gov, clock, pid)

    gov.execute_proposal("@alice", pid)
    with pytest.raises(AlreadyExecuted):
        gov.execute_proposal("@alice", pid)
    with pytest.raises(AlreadyExecuted):
        gov.execute_proposal("@bob", pid)


@pytest.mark.parametrize("total, executable", [(QUORUM_THRESHOLD, True), (QUORUM_THRESHOLD - 1, False)])
def test_quorum_boundary(ledger, clock, events, total, executable):
    weights = Balances(alice=MIN_PROPOSAL_THRESHOLD, bob=total - 1, carol=1)
    gov = GovernanceEngine(ledger, weights, clock)
    pid = gov.create_proposal("@alice", "boundary")
    gov.vote("@bob", pid, True)
    gov.vote("@carol", pid, False)
    _close(gov, clock, pid)

    if executable:
        assert gov.execute_proposal("@alice", pid) is True
    else:
        with pytest.raises(QuorumNotReached):
            gov.execute_proposal("@alice", pid)


def test_state_query_never_mutates(gov, clock, ledger):
    pid = gov.create_proposal("@alice", "pure")
    gov.vote("@alice", pid, True)
    _close(gov, clock, pid)

    before = ledger.snapshot()
    for _ in range(3):
        gov.get_proposal_state(pid)
    assert ledger.snapshot() == before


def test_unknown_proposal_reads(gov):
    with pytest.raises(NotFound):
        gov.get_proposal_state(0)
    with pytest.raises(NotFound):
        gov.get_proposal(3)
    assert gov.list_proposals() == []


def test_custom_parameters(ledger, clock, weights):
    gov = GovernanceEngine(ledger, weights, clock, voting_period=60, quorum_threshold=1, min_proposal_threshold=1)
    pid = gov.create_proposal("@dave", "quick")
    gov.vote("@dave", pid, True)
    clock.advance(61)
    assert gov.execute_proposal("@dave", pid) is True


def test_engine_weighted_by_reference_asset(engine, token, clock):
    pid = engine.create_proposal("@alice", "asset-weighted")
    assert engine.vote("@bob", pid, True) == token.balance_of("@bob")
    clock.advance(engine.voting_period + 1)
    assert engine.get_proposal_state(pid) is ProposalState.SUCCEEDED
