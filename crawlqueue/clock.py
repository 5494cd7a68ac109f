from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import List, Optional


class Clock(ABC):
    """Source of wall-clock time plus the ability to block until a timestamp.

    Timestamps are epoch seconds as floats, the same unit as time.time()."""

    @abstractmethod
    def now(self) -> float:
        ...

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        ...

    @abstractmethod
    def sleep_until(self, target: float, cancel: Optional[threading.Event] = None) -> bool:
        """Block until now() >= target.

        Returns False if the optional cancel event fired before the target
        was reached, True otherwise."""


class RealClock(Clock):
    def now(self) -> float:
        return time.time()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def sleep_until(self, target: float, cancel: Optional[threading.Event] = None) -> bool:
        while True:
            remaining = target - self.now()
            if remaining <= 0:
                return True
            if cancel is None:
                time.sleep(remaining)
            elif cancel.wait(remaining):
                return False


class FakeClock(Clock):
    """Deterministic clock for tests: sleeping moves time forward instantly."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self._now = start
        self._lock = threading.Lock()
        self.sleeps: List[float] = []

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if seconds > 0:
            self.advance(seconds)

    def sleep_until(self, target: float, cancel: Optional[threading.Event] = None) -> bool:
        with self._lock:
            if self._now >= target:
                return True
            if cancel is not None and cancel.is_set():
                return False
            self.sleeps.append(target - self._now)
            self._now = target
        return True
