from __future__ import annotations

"""
Key-value state ledger shared by the vault and governance runtimes.

Every value lives under a `(component, entity_id, field)` key, flattened
to the string "component/entity_id/field" so a snapshot is plain JSON.

Writes are only accepted inside `transaction()`. A transaction:
- holds the ledger lock for its whole duration (strict serializability)
- journals the previous value of every key it touches
- buffers emitted events
- on exception: restores the journaled values, drops its events, re-raises
- on outermost commit: runs commit hooks (e.g. durable save), then hands
  the buffered events to event listeners. A failing listener is logged;
  it cannot undo a committed transaction.

Nested transactions behave as savepoints: an inner failure caught by the
outer block only undoes the inner writes.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

log = logging.getLogger(__name__)

SEP = "/"

_MISSING = object()

CommitHook = Callable[["StateLedger"], None]
EventListener = Callable[[List[Any]], None]


def make_key(component: str, entity_id: Any, field: str) -> str:
    component = str(component)
    entity = str(entity_id)
    if SEP in component or SEP in field:
        raise ValueError(f"component/field may not contain {SEP!r}")
    return f"{component}{SEP}{entity}{SEP}{field}"


def split_key(key: str) -> Tuple[str, str, str]:
    component, rest = key.split(SEP, 1)
    entity, field = rest.rsplit(SEP, 1)
    return component, entity, field


class StateLedger:
    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(data or {})
        self._lock = threading.RLock()
        self._depth = 0
        self._journal: List[Tuple[str, Any]] = []
        self._pending_events: List[Any] = []
        self._commit_hooks: List[CommitHook] = []
        self._event_listeners: List[EventListener] = []

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def add_commit_hook(self, hook: CommitHook) -> None:
        self._commit_hooks.append(hook)

    def add_event_listener(self, listener: EventListener) -> None:
        self._event_listeners.append(listener)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, component: str, entity_id: Any, field: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(make_key(component, entity_id, field), default)

    def get_int(self, component: str, entity_id: Any, field: str) -> int:
        return int(self.get(component, entity_id, field, 0) or 0)

    def has(self, component: str, entity_id: Any, field: str) -> bool:
        with self._lock:
            return make_key(component, entity_id, field) in self._data

    def field_values(self, component: str, field: str) -> Dict[str, Any]:
        """All `entity_id -> value` pairs stored for one component field."""
        out: Dict[str, Any] = {}
        prefix = component + SEP
        with self._lock:
            for key, value in self._data.items():
                if not key.startswith(prefix):
                    continue
                comp, entity, fld = split_key(key)
                if comp == component and fld == field:
                    out[entity] = value
        return out

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._data)

    def load(self, data: Dict[str, Any]) -> None:
        with self._lock:
            if self._depth:
                raise RuntimeError("cannot load state inside a transaction")
            self._data = dict(data or {})

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _require_txn(self) -> None:
        if self._depth == 0:
            raise RuntimeError("ledger writes require an open transaction")

    def set(self, component: str, entity_id: Any, field: str, value: Any) -> None:
        self._require_txn()
        key = make_key(component, entity_id, field)
        self._journal.append((key, self._data.get(key, _MISSING)))
        self._data[key] = value

    def delete(self, component: str, entity_id: Any, field: str) -> None:
        self._require_txn()
        key = make_key(component, entity_id, field)
        if key in self._data:
            self._journal.append((key, self._data[key]))
            del self._data[key]

    def add(self, component: str, entity_id: Any, field: str, delta: int) -> int:
        """Add `delta` to an integer field and return the new value (never negative)."""
        new_value = self.get_int(component, entity_id, field) + int(delta)
        if new_value < 0:
            raise ValueError(f"{make_key(component, entity_id, field)} would become negative")
        self.set(component, entity_id, field, new_value)
        return new_value

    def emit(self, event: Any) -> None:
        self._require_txn()
        self._pending_events.append(event)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _rollback_to(self, mark: int) -> None:
        while len(self._journal) > mark:
            key, old = self._journal.pop()
            if old is _MISSING:
                self._data.pop(key, None)
            else:
                self._data[key] = old

    @contextmanager
    def transaction(self) -> Iterator["StateLedger"]:
        with self._lock:
            journal_mark = len(self._journal)
            event_mark = len(self._pending_events)
            self._depth += 1
            try:
                yield self
                if self._depth == 1:
                    # durable hooks run while the journal is still live so a
                    # failing save undoes the whole operation
                    for hook in self._commit_hooks:
                        hook(self)
            except BaseException:
                self._rollback_to(journal_mark)
                del self._pending_events[event_mark:]
                raise
            finally:
                self._depth -= 1
                if self._depth == 0:
                    committed = self._pending_events
                    self._journal = []
                    self._pending_events = []
                else:
                    committed = []

            if committed:
                for listener in self._event_listeners:
                    try:
                        listener(committed)
                    except Exception:
                        log.exception("event listener %r failed after commit", listener)
