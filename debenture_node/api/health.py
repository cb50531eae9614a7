# debenture_node/api/health.py
from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from debenture_node.api.deps import get_node
from debenture_node.node import DebentureNode

router = APIRouter(tags=["health"])


@router.get("/health")
def health(node: DebentureNode = Depends(get_node)) -> Dict[str, Any]:
    return {"ok": True, "ts": time.time(), **node.status()}


@router.get("/events")
def recent_events(
    limit: int = Query(50, ge=1, le=1000),
    node: DebentureNode = Depends(get_node),
) -> Dict[str, Any]:
    return {"ok": True, "events": node.events.recent(limit)}
