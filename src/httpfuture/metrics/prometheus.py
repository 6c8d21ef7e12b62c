"""
Prometheus export for connection metrics.

Exposes a client's :class:`ConnectionMetrics` as a custom collector so the
values are read at scrape time instead of being mirrored into separate
prometheus_client metric objects.
"""

import logging
from typing import Iterable, Optional

from prometheus_client import REGISTRY, CollectorRegistry
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from httpfuture.metrics.connection_metrics import ConnectionMetrics

logger = logging.getLogger(__name__)


class ConnectionMetricsCollector:
    """prometheus_client collector reading from a :class:`ConnectionMetrics`."""

    def __init__(self, metrics: ConnectionMetrics, prefix: str = "httpfuture", client_name: str = "default"):
        self.metrics = metrics
        self.prefix = prefix
        self.client_name = client_name

    def collect(self) -> Iterable[Metric]:
        active = GaugeMetricFamily(
            f"{self.prefix}_active_connections",
            "Tasks currently executing a request",
            labels=["client"],
        )
        active.add_metric([self.client_name], self.metrics.active_connections())
        yield active

        scheduled = GaugeMetricFamily(
            f"{self.prefix}_scheduled_connections",
            "Tasks waiting for a worker",
            labels=["client"],
        )
        scheduled.add_metric([self.client_name], self.metrics.scheduled_connections())
        yield scheduled

        events = CounterMetricFamily(
            f"{self.prefix}_requests",
            "Finished requests by kind",
            labels=["client", "kind"],
        )
        durations = CounterMetricFamily(
            f"{self.prefix}_request_duration_seconds",
            "Cumulative request duration by kind",
            labels=["client", "kind"],
        )
        counters = {
            "successful": self.metrics.successful,
            "failed": self.metrics.failed,
            "all": self.metrics.requests,
            "task": self.metrics.tasks,
        }
        for kind, counter in counters.items():
            count, total = counter.totals()
            events.add_metric([self.client_name, kind], count)
            durations.add_metric([self.client_name, kind], total)
        yield events
        yield durations


def register_metrics(
    metrics: ConnectionMetrics,
    registry: Optional[CollectorRegistry] = None,
    prefix: str = "httpfuture",
    client_name: str = "default",
) -> ConnectionMetricsCollector:
    """
    Register a collector for ``metrics`` with a prometheus registry.

    Args:
        metrics: Connection metrics of a client
        registry: Target registry, defaults to the global prometheus REGISTRY
        prefix: Metric name prefix
        client_name: Value of the ``client`` label

    Returns:
        The registered collector, usable with ``registry.unregister``
    """
    target = registry if registry is not None else REGISTRY
    collector = ConnectionMetricsCollector(metrics, prefix=prefix, client_name=client_name)
    target.register(collector)
    logger.info(f"Registered connection metrics collector for client: {client_name}")
    return collector
