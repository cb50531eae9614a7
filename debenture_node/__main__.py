# debenture_node/__main__.py
"""
Entry point for running the Debenture node as a module:
    python -m debenture_node serve [--host 127.0.0.1] [--port 8000] [--config debenture_config.yaml]
    python -m debenture_node status [--config debenture_config.yaml]
"""

from __future__ import annotations

import argparse
import json
import sys

from .config import configure_logging, get_bind_host, get_bind_port, load_config
from .node import DebentureNode


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog="debenture-node",
        description="Run the Debenture share vault + governance node",
    )
    p.add_argument("--config", default=None, help="Path to YAML config (default: ./debenture_config.yaml)")
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Serve the HTTP API with uvicorn")
    serve.add_argument("--host", default=None, help="Bind address (default from config)")
    serve.add_argument("--port", type=int, default=None, help="Port (default from config)")

    sub.add_parser("status", help="Print vault and governance totals as JSON")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    cfg = load_config(path=args.config)
    configure_logging(cfg)

    if args.command == "status":
        node = DebentureNode(cfg)
        json.dump(node.status(), sys.stdout, indent=2, sort_keys=True)
        sys.stdout.write("\n")
        return 0

    import uvicorn

    from .app import create_app

    app = create_app(DebentureNode(cfg))
    uvicorn.run(app, host=args.host or get_bind_host(cfg), port=args.port or get_bind_port(cfg))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
