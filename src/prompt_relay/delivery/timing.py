"""Clock and deadline helpers shared by the poll loops."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Protocol


class Clock(Protocol):
    """Time source and suspension point used by every wait."""

    def now(self) -> float:
        """Monotonic seconds."""

    def sleep(self, seconds: float) -> None:
        """Suspend for ``seconds``."""


class MonotonicClock:
    """Wall clock backed by ``time.monotonic`` and ``time.sleep``."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


@dataclass(slots=True)
class Deadline:
    """Single monotonic deadline checked at each state transition."""

    clock: Clock
    started_at: float
    expires_at: float

    @classmethod
    def after(cls, clock: Clock, seconds: float) -> Deadline:
        started_at = clock.now()
        return cls(clock=clock, started_at=started_at, expires_at=started_at + seconds)

    def elapsed(self) -> float:
        return self.clock.now() - self.started_at

    def expired(self) -> bool:
        return self.clock.now() >= self.expires_at


@dataclass(slots=True)
class SimulatedClock:
    """Virtual clock whose ``sleep`` advances time instantly and records the wait.

    Used by ``--dry-run`` so that pacing and cooldowns are reported without
    actually blocking.
    """

    current: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    def now(self) -> float:
        return self.current

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if seconds > 0:
            self.current += seconds

    @property
    def slept_seconds(self) -> float:
        return sum(seconds for seconds in self.sleeps if seconds > 0)
