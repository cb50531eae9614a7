"""
API: reference asset endpoints and the developer faucet.

- POST /dev/faucet mints reference asset to an address (only when
  dev.faucet_enabled is set; intended for local/testnet usage)
- POST /token/approve lets a holder allow the vault to pull a deposit
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from debenture_node.api.deps import caller_id, get_node, run_op
from debenture_node.config import faucet_enabled
from debenture_node.node import DebentureNode

router = APIRouter(tags=["token"])


class FaucetRequest(BaseModel):
    address: str
    amount: int = Field(..., gt=0)


class TokenApproveRequest(BaseModel):
    spender: str
    amount: int = Field(..., ge=0)


@router.get("/token/balances/{address}")
def token_balance(address: str, node: DebentureNode = Depends(get_node)) -> Dict[str, Any]:
    return {
        "ok": True,
        "symbol": node.token.symbol,
        "address": address,
        "balance": node.token.balance_of(address),
    }


@router.post("/token/approve")
def token_approve(
    payload: TokenApproveRequest,
    caller: str = Depends(caller_id),
    node: DebentureNode = Depends(get_node),
) -> Dict[str, Any]:
    run_op(node.token.approve, caller, payload.spender, payload.amount)
    return {"ok": True, "allowance": node.token.allowance(caller, payload.spender)}


@router.post("/dev/faucet")
def faucet(payload: FaucetRequest, node: DebentureNode = Depends(get_node)) -> Dict[str, Any]:
    if not faucet_enabled(node.cfg):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="faucet_disabled")
    balance = run_op(node.token.mint, payload.address, payload.amount)
    return {"ok": True, "address": payload.address, "balance": balance}
