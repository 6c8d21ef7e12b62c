"""
Registry of named counters.

A registry hands out exactly one counter instance per name. Lookups of an
already registered name never take the registry lock; the first lookup of a
name creates the counter under the lock so that concurrent callers always
end up sharing the same instance.
"""

import logging
import threading
from enum import Enum
from typing import Dict, Hashable, List, Union

from httpfuture.exceptions import CounterRegistrationError
from httpfuture.metrics.counters import Counter, DurationCounter

logger = logging.getLogger(__name__)

CounterName = Union[str, Enum, Hashable]


def _display_name(name: CounterName) -> str:
    if isinstance(name, Enum):
        return str(name.value)
    return str(name)


class CounterRegistry:
    """
    Name-keyed store of :class:`Counter` and :class:`DurationCounter` instances.

    A name is bound to the kind of counter it was first requested as. Asking
    for the same name as the other kind raises
    :class:`CounterRegistrationError`.
    """

    def __init__(self):
        self._counters: Dict[CounterName, Counter] = {}
        self._duration_counters: Dict[CounterName, DurationCounter] = {}
        self._lock = threading.Lock()

    def get_counter(self, name: CounterName) -> Counter:
        """
        Get or lazily create the plain counter registered under ``name``.

        Raises:
            CounterRegistrationError: If ``name`` is already a duration counter
        """
        counter = self._counters.get(name)
        if counter is not None:
            return counter

        with self._lock:
            if name in self._duration_counters:
                raise CounterRegistrationError(
                    f"Counter {_display_name(name)} is already registered via get_duration_counter()"
                )
            counter = self._counters.get(name)
            if counter is None:
                counter = Counter()
                self._counters[name] = counter
                logger.debug(f"Registered counter: {_display_name(name)}")
            return counter

    def get_duration_counter(self, name: CounterName) -> DurationCounter:
        """
        Get or lazily create the duration counter registered under ``name``.

        Raises:
            CounterRegistrationError: If ``name`` is already a plain counter
        """
        counter = self._duration_counters.get(name)
        if counter is not None:
            return counter

        with self._lock:
            if name in self._counters:
                raise CounterRegistrationError(
                    f"Counter {_display_name(name)} is already registered via get_counter()"
                )
            counter = self._duration_counters.get(name)
            if counter is None:
                counter = DurationCounter()
                self._duration_counters[name] = counter
                logger.debug(f"Registered duration counter: {_display_name(name)}")
            return counter

    def names(self) -> List[str]:
        """Names of all registered counters, in registration order per kind."""
        with self._lock:
            return [_display_name(n) for n in self._counters] + [
                _display_name(n) for n in self._duration_counters
            ]

    def __contains__(self, name: CounterName) -> bool:
        return name in self._counters or name in self._duration_counters

    def __len__(self) -> int:
        return len(self._counters) + len(self._duration_counters)
