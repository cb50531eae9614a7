"""
Shared helpers for API routes.

- `get_node`: the DebentureNode attached to the app at startup
- `caller_id`: acting address taken from the X-Account header
- `run_op`: call a runtime operation and report DebentureError as HTTPException
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import Header, HTTPException, Request, status

from debenture_node.node import DebentureNode
from debenture_node.runtime.errors import DebentureError

log = logging.getLogger(__name__)


def get_node(request: Request) -> DebentureNode:
    node = getattr(request.app.state, "node", None)
    if node is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="node_unavailable")
    return node


def caller_id(x_account: str = Header(..., alias="X-Account")) -> str:
    x_account = x_account.strip()
    if not x_account:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_account")
    return x_account


def run_op(fn: Callable[..., Any], *args: Any) -> Any:
    try:
        return fn(*args)
    except DebentureError as exc:
        log.debug("%s rejected: %s (%s)", getattr(fn, "__name__", fn), exc.code, exc)
        raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc
