"""
API: /governance

Proposal creation, voting and execution. State transitions and gating
live in runtime.governance.GovernanceEngine.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from debenture_node.api.deps import caller_id, get_node, run_op
from debenture_node.node import DebentureNode
from debenture_node.runtime.governance import GovernanceEngine, Proposal

router = APIRouter(prefix="/governance", tags=["governance"])


class ProposalOut(BaseModel):
    id: int
    proposer: str
    description: str
    votes_for: int
    votes_against: int
    start_time: int
    end_time: int
    executed: bool
    state: str


class ProposalCreate(BaseModel):
    description: str


class ProposalVoteRequest(BaseModel):
    support: bool


def _out(engine: GovernanceEngine, p: Proposal) -> ProposalOut:
    return ProposalOut(**p.to_dict(), state=engine.get_proposal_state(p.id).value)


@router.get("/proposals")
def list_proposals(node: DebentureNode = Depends(get_node)) -> Dict[str, Any]:
    engine = node.governance
    out: List[ProposalOut] = [_out(engine, p) for p in engine.list_proposals()]
    return {"ok": True, "proposals": out}


@router.get("/proposals/{proposal_id}")
def get_proposal(proposal_id: int, node: DebentureNode = Depends(get_node)) -> Dict[str, Any]:
    engine = node.governance
    p = run_op(engine.get_proposal, proposal_id)
    return {"ok": True, "proposal": _out(engine, p)}


@router.post("/proposals")
def create_proposal(
    payload: ProposalCreate,
    caller: str = Depends(caller_id),
    node: DebentureNode = Depends(get_node),
) -> Dict[str, Any]:
    engine = node.governance
    pid = run_op(engine.create_proposal, caller, payload.description)
    return {"ok": True, "proposal": _out(engine, engine.get_proposal(pid))}


@router.post("/proposals/{proposal_id}/vote")
def vote_proposal(
    proposal_id: int,
    payload: ProposalVoteRequest,
    caller: str = Depends(caller_id),
    node: DebentureNode = Depends(get_node),
) -> Dict[str, Any]:
    engine = node.governance
    weight = run_op(engine.vote, caller, proposal_id, payload.support)
    return {"ok": True, "weight": weight, "proposal": _out(engine, engine.get_proposal(proposal_id))}


@router.post("/proposals/{proposal_id}/execute")
def execute_proposal(
    proposal_id: int,
    caller: str = Depends(caller_id),
    node: DebentureNode = Depends(get_node),
) -> Dict[str, Any]:
    engine = node.governance
    passed = run_op(engine.execute_proposal, caller, proposal_id)
    return {"ok": True, "passed": passed, "proposal": _out(engine, engine.get_proposal(proposal_id))}
