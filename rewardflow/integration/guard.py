"""Per-instance non-reentrant guard for entry points that call out to a port."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from ..core.errors import Reentrant


class NonReentrantGuard:
    """
    Scoped lock held for the duration of a guarded entry point.

    Acquisition never blocks: a nested call (e.g. a transfer port calling back
    into the ledger) or an overlapping call from another thread fails with
    `Reentrant` immediately. Released on every exit path.
    """

    def __init__(self, name: str = "ledger") -> None:
        self._name = name
        self._lock = threading.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self, entry_point: str) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise Reentrant("nested_call", {"guard": self._name, "entry_point": entry_point})
        try:
            yield
        finally:
            self._lock.release()
