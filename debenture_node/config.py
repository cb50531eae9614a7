# debenture_node/config.py
import copy
import logging
import os
from typing import Any, Callable, Dict, Optional, Tuple

import yaml

log = logging.getLogger(__name__)

CONFIG_FILENAME = "debenture_config.yaml"

# -------- Defaults --------
_DEFAULT: Dict[str, Any] = {
    "persistence": {
        "enabled": True,
        "data_dir": "data",
        "filename": "ledger_state.json",
        "keep_backups": 2,
    },
    # append committed events as JSON lines; empty disables the file sink
    "events": {"jsonl_path": ""},
    "vault": {
        "owner": "@owner",
        "address": "@vault",
        "asset_symbol": "DAI",
        "name": "Debenture",
        "symbol": "DEB",
        "reject_zero_share_deposits": False,
    },
    "governance": {
        "voting_period_sec": 7 * 24 * 60 * 60,
        "min_proposal_threshold": 1_000,
        "quorum_threshold": 10_000,
        # "shares": vote with vault shares, "asset": vote with the reference asset
        "weighting": "shares",
    },
    "dev": {"faucet_enabled": True},
    "logging": {"level": "INFO"},
    "server": {"host": "127.0.0.1", "port": 8000},
}


def _as_bool(val: str) -> bool:
    return str(val).strip().lower() in ("1", "true", "yes", "on")


# -------- ENV overrides --------
_ENV_MAP: Dict[Tuple[str, str], Tuple[str, Callable[[str], Any]]] = {
    ("persistence", "data_dir"): ("DEBENTURE_DATA_DIR", str),
    ("events", "jsonl_path"): ("DEBENTURE_EVENTS_PATH", str),
    ("vault", "owner"): ("DEBENTURE_OWNER", str),
    ("dev", "faucet_enabled"): ("DEBENTURE_FAUCET", _as_bool),
    ("logging", "level"): ("DEBENTURE_LOG_LEVEL", str),
    ("server", "host"): ("DEBENTURE_HOST", str),
    ("server", "port"): ("DEBENTURE_PORT", int),
}


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (overlay or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    for (section, key), (env_name, cast) in _ENV_MAP.items():
        val = os.getenv(env_name)
        if val is None:
            continue
        try:
            casted = cast(val)
        except ValueError:
            log.warning("ignoring %s=%r: not a valid %s", env_name, val, cast.__name__)
            continue
        cfg.setdefault(section, {})
        cfg[section][key] = casted
    return cfg


def default_config() -> Dict[str, Any]:
    return copy.deepcopy(_DEFAULT)


def load_config(repo_root: str = ".", path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads the YAML config from `path` (or repo_root/debenture_config.yaml).
    Missing file -> defaults. A file that does not parse is reported and
    ignored. ENV overrides are applied last.
    """
    path = path or os.path.join(repo_root, CONFIG_FILENAME)
    cfg = default_config()

    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            log.warning("could not parse %s, using defaults: %s", path, exc)
            data = {}
        if not isinstance(data, dict):
            log.warning("%s does not contain a mapping, using defaults", path)
            data = {}
        cfg = _deep_merge(cfg, data)

    cfg = _apply_env_overrides(cfg)

    weighting = cfg["governance"].get("weighting")
    if weighting not in ("shares", "asset"):
        raise ValueError(f"governance.weighting must be 'shares' or 'asset', got {weighting!r}")

    return cfg


# -------- Small helpers used by the app --------
def get_bind_host(cfg: Dict[str, Any]) -> str:
    return str(cfg.get("server", {}).get("host", "127.0.0.1"))


def get_bind_port(cfg: Dict[str, Any]) -> int:
    return int(cfg.get("server", {}).get("port", 8000))


def get_log_level(cfg: Dict[str, Any]) -> str:
    return str(cfg.get("logging", {}).get("level", "INFO")).upper()


def faucet_enabled(cfg: Dict[str, Any]) -> bool:
    return bool(cfg.get("dev", {}).get("faucet_enabled", False))


def configure_logging(cfg: Dict[str, Any]) -> None:
    logging.basicConfig(
        level=getattr(logging, get_log_level(cfg), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
