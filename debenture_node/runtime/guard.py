from __future__ import annotations

"""
Per-instance reentrancy guard.

`guarded` opens a ledger transaction first (taking the ledger lock) and
only then marks the instance as entered, so a second thread waits on the
lock instead of tripping the guard. Any nested call into a guarded method
of the same instance, e.g. from inside an external asset transfer, raises
ReentrantCall and the enclosing transaction rolls back.
"""

import functools
from typing import Any, Callable, TypeVar

from debenture_node.runtime.errors import ReentrantCall

F = TypeVar("F", bound=Callable[..., Any])


class NonReentrant:
    def __init__(self, name: str) -> None:
        self.name = name
        self._entered = False

    def __enter__(self) -> "NonReentrant":
        if self._entered:
            raise ReentrantCall(f"reentrant call into {self.name}")
        self._entered = True
        return self

    def __exit__(self, *exc: Any) -> None:
        self._entered = False


def guarded(method: F) -> F:
    """Run `method` inside `self.ledger.transaction()` and `self._guard`."""

    @functools.wraps(method)
    def wrapper(self, *args: Any, **kwargs: Any) -> Any:
        with self.ledger.transaction(), self._guard:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]
