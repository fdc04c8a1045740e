"""Clock sources used for deadline comparisons."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    """Wall-clock time in whole epoch seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Clock advanced explicitly; never moves backwards."""

    def __init__(self, start: int = 0) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError(
                f"Clock cannot move backwards from {self._now} to {timestamp}."
            )
        self._now = timestamp

    def advance(self, seconds: int) -> None:
        self.set(self._now + seconds)
