"""
Concurrent counters used for connection metrics.

Both counters guard their state with a private lock that is only held for
the duration of a single arithmetic update, so they can be shared freely
between worker threads.
"""

import threading
import time
from typing import Optional, Tuple


class Counter:
    """Thread-safe integer counter that can also be used as a gauge."""

    def __init__(self, initial: int = 0):
        self._value = initial
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        """Add ``amount`` and return the new value."""
        with self._lock:
            self._value += amount
            return self._value

    def decrement(self, amount: int = 1) -> int:
        """Subtract ``amount`` and return the new value."""
        with self._lock:
            self._value -= amount
            return self._value

    def get(self) -> int:
        return self._value

    @property
    def value(self) -> int:
        return self._value

    def __int__(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"Counter({self._value})"


class DurationCounter:
    """
    Counts events together with the cumulative time they took.

    Durations are measured in seconds against ``time.monotonic()``, so the
    ``start_time`` passed to :meth:`increment` must come from the same clock.
    """

    def __init__(self):
        self._count = 0
        self._cumulative_duration = 0.0
        self._lock = threading.Lock()

    def increment(self, start_time: float, now: Optional[float] = None) -> float:
        """
        Record one event that started at ``start_time``.

        Args:
            start_time: Monotonic timestamp at which the event started
            now: Optional end timestamp, defaults to ``time.monotonic()``

        Returns:
            The elapsed time that was recorded
        """
        if now is None:
            now = time.monotonic()
        elapsed = max(0.0, now - start_time)
        with self._lock:
            self._count += 1
            self._cumulative_duration += elapsed
        return elapsed

    def count(self) -> int:
        return self._count

    def cumulative_duration(self) -> float:
        return self._cumulative_duration

    def average_duration(self) -> float:
        """
        Average duration in seconds.

        Returns:
            cumulative duration divided by count, or 0.0 if nothing was recorded
        """
        count, total = self.totals()
        if count == 0:
            return 0.0
        return total / count

    def totals(self) -> Tuple[int, float]:
        """Return a consistent ``(count, cumulative_duration)`` pair."""
        with self._lock:
            return self._count, self._cumulative_duration

    def to_dict(self) -> dict:
        count, total = self.totals()
        return {
            "count": count,
            "cumulative_duration_seconds": round(total, 6),
            "average_duration_seconds": round(total / count, 6) if count else 0.0,
        }

    def __repr__(self) -> str:
        count, total = self.totals()
        return f"DurationCounter(count={count}, cumulative_duration={total:.6f})"
