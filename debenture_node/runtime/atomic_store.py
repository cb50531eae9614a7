from __future__ import annotations

"""
Durable snapshot storage for the state ledger.

- Atomic write (temp file + fsync + os.replace + directory fsync)
- Rolling backups (.bak1, .bak2, ...) to survive partial writes/corruption
- Load fallback: primary -> bak1 -> bak2 -> ...
- Journal marker (.journal) so an interrupted save can be detected

File format:

    {"version": 1, "state": {"component/entity/field": value, ...}}
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

JsonDict = Dict[str, Any]
PathLike = Union[str, Path]


def _fsync_dir(dir_path: Path) -> None:
    # not supported on every platform (e.g. Windows); data is already fsynced
    try:
        fd = os.open(str(dir_path), os.O_DIRECTORY)
    except (AttributeError, OSError):
        return
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def _json_dumps(obj: JsonDict) -> bytes:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":")).encode("utf-8")


def atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp_path), str(path))
        _fsync_dir(path.parent)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def read_snapshot(path: Path) -> Optional[JsonDict]:
    if not path.exists():
        return None
    try:
        obj = json.loads(path.read_bytes().decode("utf-8"))
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        log.warning("unreadable snapshot %s: %s", path, exc)
        return None
    if not isinstance(obj, dict) or not isinstance(obj.get("state"), dict):
        log.warning("snapshot %s has no state object", path)
        return None
    version = obj.get("version")
    if version != SNAPSHOT_VERSION:
        log.warning("snapshot %s has unsupported version %r", path, version)
        return None
    return obj["state"]


class AtomicLedgerStore:
    def __init__(
        self,
        data_dir: PathLike = "data",
        filename: str = "ledger_state.json",
        keep_backups: int = 2,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.filename = filename
        self.keep_backups = max(0, int(keep_backups))

    @property
    def path(self) -> Path:
        return self.data_dir / self.filename

    @property
    def journal_path(self) -> Path:
        return self.path.with_suffix(self.path.suffix + ".journal")

    def backup_path(self, index: int) -> Path:
        return self.path.with_suffix(self.path.suffix + f".bak{index}")

    def exists(self) -> bool:
        return self.path.exists()

    def interrupted(self) -> bool:
        """True if the previous save never cleared its journal marker."""
        return self.journal_path.exists()

    def _rotate_backups(self) -> None:
        if self.keep_backups <= 0:
            return
        for i in range(self.keep_backups, 1, -1):
            src = self.backup_path(i - 1)
            if src.exists():
                os.replace(str(src), str(self.backup_path(i)))
        if self.path.exists():
            os.replace(str(self.path), str(self.backup_path(1)))

    def load(self) -> Optional[JsonDict]:
        if self.interrupted():
            log.warning("journal marker found at %s; last save may be incomplete", self.journal_path)

        candidates = [self.path] + [self.backup_path(i) for i in range(1, self.keep_backups + 1)]
        for p in candidates:
            state = read_snapshot(p)
            if state is not None:
                if p != self.path:
                    log.warning("recovered ledger state from backup %s", p)
                return state
        return None

    def save(self, state: JsonDict) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        data = _json_dumps({"version": SNAPSHOT_VERSION, "state": state})

        atomic_write_bytes(self.journal_path, b"1")
        self._rotate_backups()
        atomic_write_bytes(self.path, data)
        self.journal_path.unlink()
