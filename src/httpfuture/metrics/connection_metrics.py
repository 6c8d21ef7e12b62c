"""
Connection metrics for a future-supporting HTTP client.

Tracks in-flight work (active and scheduled connections) and completed work
(successful, failed, total requests and total tasks, each with cumulative
durations). One instance is created per client and shared by every task that
client spawns.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from httpfuture.metrics.counters import Counter, DurationCounter
from httpfuture.metrics.registry import CounterRegistry


class ConnectionCounter(str, Enum):
    """Names of the counters making up :class:`ConnectionMetrics`."""
    ACTIVE_CONNECTIONS = "active_connections"
    SCHEDULED_CONNECTIONS = "scheduled_connections"
    SUCCESSFUL_CONNECTIONS = "successful_connections"
    FAILED_CONNECTIONS = "failed_connections"
    REQUESTS = "requests"
    TASKS = "tasks"


@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time view of a client's connection metrics."""
    active_connections: int
    scheduled_connections: int
    total_requests: int
    successful_connections: int
    failed_connections: int
    total_tasks: int
    average_request_duration_seconds: float
    average_task_duration_seconds: float
    average_success_duration_seconds: float
    average_failure_duration_seconds: float
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        for key, value in data.items():
            if key.startswith("average_"):
                data[key] = round(value, 6)
        return data

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


class ConnectionMetrics:
    """
    Fixed bundle of counters built on a :class:`CounterRegistry`.

    Gauges:
        active_connections: tasks currently executing their request
        scheduled_connections: tasks created but not yet started
    Duration counters:
        successful_connections / failed_connections: outcome of the request
        requests / tasks: every finished request, regardless of outcome
    """

    def __init__(self, registry: Optional[CounterRegistry] = None):
        self.registry = registry if registry is not None else CounterRegistry()
        self.active: Counter = self.registry.get_counter(ConnectionCounter.ACTIVE_CONNECTIONS)
        self.scheduled: Counter = self.registry.get_counter(ConnectionCounter.SCHEDULED_CONNECTIONS)
        self.successful: DurationCounter = self.registry.get_duration_counter(
            ConnectionCounter.SUCCESSFUL_CONNECTIONS
        )
        self.failed: DurationCounter = self.registry.get_duration_counter(
            ConnectionCounter.FAILED_CONNECTIONS
        )
        self.requests: DurationCounter = self.registry.get_duration_counter(ConnectionCounter.REQUESTS)
        self.tasks: DurationCounter = self.registry.get_duration_counter(ConnectionCounter.TASKS)

    def active_connections(self) -> int:
        return self.active.get()

    def scheduled_connections(self) -> int:
        return self.scheduled.get()

    def successful_connections(self) -> DurationCounter:
        return self.successful

    def failed_connections(self) -> DurationCounter:
        return self.failed

    def snapshot(self) -> MetricsSnapshot:
        """Capture the current counter values."""
        return MetricsSnapshot(
            active_connections=self.active.get(),
            scheduled_connections=self.scheduled.get(),
            total_requests=self.requests.count(),
            successful_connections=self.successful.count(),
            failed_connections=self.failed.count(),
            total_tasks=self.tasks.count(),
            average_request_duration_seconds=self.requests.average_duration(),
            average_task_duration_seconds=self.tasks.average_duration(),
            average_success_duration_seconds=self.successful.average_duration(),
            average_failure_duration_seconds=self.failed.average_duration(),
        )

    def metrics_as_json(self) -> str:
        return self.snapshot().to_json()

    def __str__(self) -> str:
        return self.metrics_as_json()
