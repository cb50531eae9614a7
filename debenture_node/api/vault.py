"""
API: /vault

Deposit/withdraw against the share vault, share transfers and the
sell-block switch. All accounting lives in runtime.vault.ShareVault.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from debenture_node.api.deps import caller_id, get_node, run_op
from debenture_node.node import DebentureNode
from debenture_node.runtime.fixed_point import WAD

router = APIRouter(prefix="/vault", tags=["vault"])


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class DepositRequest(BaseModel):
    amount: int = Field(..., ge=0)


class WithdrawRequest(BaseModel):
    shares: int = Field(..., ge=0)


class ShareTransferRequest(BaseModel):
    to: str
    amount: int = Field(..., ge=0)


class ShareApproveRequest(BaseModel):
    spender: str
    amount: int = Field(..., ge=0)


class ShareTransferFromRequest(BaseModel):
    owner: str
    to: str
    amount: int = Field(..., ge=0)


class SellBlockRequest(BaseModel):
    address: str
    blocked: bool


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("")
def vault_summary(node: DebentureNode = Depends(get_node)) -> Dict[str, Any]:
    vault = node.vault
    return {
        "ok": True,
        "name": vault.name,
        "symbol": vault.symbol,
        "address": vault.address,
        "asset": node.token.symbol,
        "scale": WAD,
        **vault.summary(),
    }


@router.get("/accounts/{address}")
def vault_account(address: str, node: DebentureNode = Depends(get_node)) -> Dict[str, Any]:
    vault = node.vault
    shares = vault.share_balance(address)
    return {
        "ok": True,
        "address": address,
        "shares": shares,
        "ownership": vault.get_ownership_percentage(address),
        "redeemable": vault.preview_withdraw(shares),
        "sell_blocked": vault.is_sell_blocked(address),
        "asset_balance": node.token.balance_of(address),
    }


@router.post("/deposit")
def deposit(
    payload: DepositRequest,
    caller: str = Depends(caller_id),
    node: DebentureNode = Depends(get_node),
) -> Dict[str, Any]:
    shares = run_op(node.vault.deposit, caller, payload.amount)
    return {"ok": True, "amount": payload.amount, "shares": shares}


@router.post("/withdraw")
def withdraw(
    payload: WithdrawRequest,
    caller: str = Depends(caller_id),
    node: DebentureNode = Depends(get_node),
) -> Dict[str, Any]:
    amount = run_op(node.vault.withdraw, caller, payload.shares)
    return {"ok": True, "shares": payload.shares, "amount": amount}


@router.post("/transfer")
def transfer_shares(
    payload: ShareTransferRequest,
    caller: str = Depends(caller_id),
    node: DebentureNode = Depends(get_node),
) -> Dict[str, Any]:
    run_op(node.vault.transfer, caller, payload.to, payload.amount)
    return {"ok": True}


@router.post("/approve")
def approve_shares(
    payload: ShareApproveRequest,
    caller: str = Depends(caller_id),
    node: DebentureNode = Depends(get_node),
) -> Dict[str, Any]:
    run_op(node.vault.approve, caller, payload.spender, payload.amount)
    return {"ok": True}


@router.post("/transfer_from")
def transfer_shares_from(
    payload: ShareTransferFromRequest,
    caller: str = Depends(caller_id),
    node: DebentureNode = Depends(get_node),
) -> Dict[str, Any]:
    run_op(node.vault.transfer_from, caller, payload.owner, payload.to, payload.amount)
    return {"ok": True}


@router.post("/sell_block")
def sell_block(
    payload: SellBlockRequest,
    caller: str = Depends(caller_id),
    node: DebentureNode = Depends(get_node),
) -> Dict[str, Any]:
    run_op(node.vault.set_sell_blocked, caller, payload.address, payload.blocked)
    return {"ok": True, "address": payload.address, "blocked": payload.blocked}
