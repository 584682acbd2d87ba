"""
Time sources for the staking ledger.

Block timestamps are whole seconds.  ``ManualClock`` lets tests and the
stress scenarios fast-forward time the way a local dev chain does.
"""

from __future__ import annotations

import time


class SystemClock:
    def __call__(self) -> int:
        return int(time.time())


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: int | None = None):
        self._now = int(time.time()) if start is None else int(start)

    def __call__(self) -> int:
        return self._now

    def increase(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("time cannot move backwards")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError("time cannot move backwards")
        self._now = int(timestamp)
