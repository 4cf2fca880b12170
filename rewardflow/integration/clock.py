"""Clocks for the ledger shell (integer seconds)."""

from __future__ import annotations

import time

from ..core.fixed_point import require_int


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Deterministic clock for tests, simulations and replays.

    Time only moves forward.
    """

    def __init__(self, start: int = 0) -> None:
        self._now = require_int(start, name="start")

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        self._now += require_int(seconds, name="seconds")
        return self._now

    def set(self, timestamp: int) -> None:
        ts = require_int(timestamp, name="timestamp")
        if ts < self._now:
            raise ValueError(f"ManualClock cannot move backwards: {ts} < {self._now}")
        self._now = ts

    def __repr__(self) -> str:
        return f"ManualClock(now={self._now})"
