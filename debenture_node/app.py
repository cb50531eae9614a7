"""
debenture_node/app.py
---------------------
FastAPI application factory.

    uvicorn debenture_node.app:create_app --factory
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI

from debenture_node import __version__
from debenture_node.api import governance, health, token, vault
from debenture_node.config import configure_logging, load_config
from debenture_node.node import DebentureNode

log = logging.getLogger(__name__)


def create_app(node: Optional[DebentureNode] = None, cfg: Optional[Dict[str, Any]] = None) -> FastAPI:
    if node is None:
        cfg = cfg or load_config()
        configure_logging(cfg)
        node = DebentureNode(cfg)

    app = FastAPI(title="Debenture Node API", version=__version__)
    app.state.node = node

    app.include_router(health.router)
    app.include_router(vault.router)
    app.include_router(token.router)
    app.include_router(governance.router)

    log.info("debenture api ready (vault=%s)", node.vault.address)
    return app
