from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class Countdown:
    """Cancellable countdown handle driven by an injected clock.

    Nothing ticks in the background: remaining time is derived from the clock
    whenever it is asked for, so a fake clock advances it deterministically.
    """

    def __init__(self, *, clock: Clock, duration_s: float) -> None:
        if duration_s <= 0.0:
            raise ValueError("duration_s must be > 0")
        self._clock = clock
        self._duration_s = float(duration_s)
        self._started_at_s: float | None = None
        self._stopped_remaining_s: float | None = None

    @property
    def duration_s(self) -> float:
        return self._duration_s

    @property
    def active(self) -> bool:
        return self._started_at_s is not None and self._stopped_remaining_s is None

    def start(self) -> None:
        self._started_at_s = self._clock.now()
        self._stopped_remaining_s = None

    def cancel(self) -> None:
        if self._started_at_s is None or self._stopped_remaining_s is not None:
            return
        # Freeze the display value at the moment of cancellation.
        self._stopped_remaining_s = self.remaining_s()

    def remaining_s(self) -> float:
        if self._started_at_s is None:
            return self._duration_s
        if self._stopped_remaining_s is not None:
            return self._stopped_remaining_s
        elapsed = self._clock.now() - self._started_at_s
        return max(0.0, self._duration_s - elapsed)

    def expired(self) -> bool:
        return self.active and self.remaining_s() <= 0.0
