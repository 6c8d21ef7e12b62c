"""
Counters, registry and connection metrics for httpfuture.
"""

from httpfuture.metrics.counters import Counter, DurationCounter
from httpfuture.metrics.registry import CounterRegistry
from httpfuture.metrics.connection_metrics import (
    ConnectionCounter,
    ConnectionMetrics,
    MetricsSnapshot,
)
from httpfuture.metrics.prometheus import ConnectionMetricsCollector, register_metrics

__all__ = [
    "Counter",
    "DurationCounter",
    "CounterRegistry",
    "ConnectionCounter",
    "ConnectionMetrics",
    "MetricsSnapshot",
    "ConnectionMetricsCollector",
    "register_metrics",
]
