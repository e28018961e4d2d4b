"""Host health tracking: state edges, up/down accounting, RTT windows."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any

RTT_WINDOW_SIZE = 100


class HealthState(str, Enum):
    STARTUP = "startup"
    ALIVE = "alive"
    DEAD = "dead"


# ── RTT samples ─────────────────────────────────────────────────────────────

@dataclass
class RttStats:
    count: int = 0
    min: float = 0.0
    avg: float = 0.0
    max: float = 0.0

    def merge(self, other: RttStats) -> RttStats:
        if not other.count:
            return self
        if not self.count:
            return RttStats(other.count, other.min, other.avg, other.max)
        count = self.count + other.count
        return RttStats(
            count=count,
            min=min(self.min, other.min),
            avg=(self.avg * self.count + other.avg * other.count) / count,
            max=max(self.max, other.max),
        )

    def format(self) -> str:
        if not self.count:
            return "n/a"
        return f"min/avg/max = {self.min:.3f}/{self.avg:.3f}/{self.max:.3f} ms"


class RttWindow:
    """Rolling window of recent round-trip times. Reading a summary clears it."""

    def __init__(self, size: int = RTT_WINDOW_SIZE):
        self._samples: deque[float] = deque(maxlen=size)

    def __len__(self) -> int:
        return len(self._samples)

    def add(self, rtt_ms: float) -> None:
        self._samples.append(rtt_ms)

    def summary(self) -> RttStats | None:
        if not self._samples:
            return None
        samples = list(self._samples)
        self._samples.clear()
        return RttStats(
            count=len(samples),
            min=min(samples),
            avg=sum(samples) / len(samples),
            max=max(samples),
        )


# ── Health tracking ─────────────────────────────────────────────────────────

@dataclass
class Transition:
    previous: HealthState
    current: HealthState
    at: float
    previous_duration: float


class HostHealth:
    """Tracks one target's health state and how long it spent in each state."""

    def __init__(self, fuzzy: int = 0, now: float | None = None, window: int = RTT_WINDOW_SIZE):
        if fuzzy < 0:
            raise ValueError("fuzzy threshold must be >= 0")
        start = time.monotonic() if now is None else now
        self.fuzzy = fuzzy
        self.state = HealthState.STARTUP
        self.consecutive_failures = 0
        self.last_up_at: float = 0.0
        self.last_down_at: float = 0.0
        self.uptime: float = 0.0
        self.downtime: float = 0.0
        self.startup_time: float = 0.0
        self.flaps = 0
        self.probes = 0
        self.successes = 0
        self.failures = 0
        self.rtt = RttWindow(window)
        self.rtt_total = RttStats()
        self._start_time = start
        self._state_since = start
        self._last_update = start

    def _advance(self, now: float) -> None:
        gap = max(now - self._last_update, 0.0)
        if self.state is HealthState.ALIVE:
            self.uptime += gap
        elif self.state is HealthState.DEAD:
            self.downtime += gap
        else:
            self.startup_time += gap
        self._last_update = max(now, self._last_update)

    def _enter(self, state: HealthState, now: float) -> Transition:
        previous = self.state
        if {previous, state} == {HealthState.ALIVE, HealthState.DEAD}:
            self.flaps += 1
        transition = Transition(previous, state, now, now - self._state_since)
        self.state = state
        self._state_since = now
        if state is HealthState.ALIVE:
            self.last_up_at = now
        else:
            self.last_down_at = now
        return transition

    def record_success(self, rtt_ms: float, now: float | None = None) -> Transition | None:
        now = time.monotonic() if now is None else now
        self._advance(now)
        self.probes += 1
        self.successes += 1
        self.consecutive_failures = 0
        self.rtt.add(rtt_ms)
        if self.state is not HealthState.ALIVE:
            return self._enter(HealthState.ALIVE, now)
        return None

    def record_failure(self, now: float | None = None) -> Transition | None:
        now = time.monotonic() if now is None else now
        self._advance(now)
        self.probes += 1
        self.failures += 1
        self.consecutive_failures += 1
        if self.consecutive_failures > self.fuzzy and self.state is not HealthState.DEAD:
            return self._enter(HealthState.DEAD, now)
        return None

    def rtt_summary(self) -> RttStats | None:
        """Summarize the current RTT window and fold it into the run totals."""
        stats = self.rtt.summary()
        if stats:
            self.rtt_total = self.rtt_total.merge(stats)
        return stats

    def close(self, now: float | None = None) -> None:
        self._advance(time.monotonic() if now is None else now)
        self.rtt_summary()

    def elapsed(self, now: float | None = None) -> float:
        return (time.monotonic() if now is None else now) - self._start_time

    @property
    def is_alive(self) -> bool:
        return self.state is HealthState.ALIVE

    def status_dict(self, now: float | None = None) -> dict[str, Any]:
        now = time.monotonic() if now is None else now
        return {
            "state": self.state.value,
            "probes": self.probes,
            "successes": self.successes,
            "failures": self.failures,
            "consecutive_failures": self.consecutive_failures,
            "flaps": self.flaps,
            "uptime_seconds": round(self.uptime),
            "downtime_seconds": round(self.downtime),
            "startup_seconds": round(self.startup_time),
            "in_state_seconds": round(now - self._state_since),
            "elapsed_seconds": round(self.elapsed(now)),
        }
