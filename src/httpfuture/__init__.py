"""
httpfuture: an HTTP client returning cancellable futures.

Requests run on a worker pool and are tracked by per-client connection
metrics. An optional background monitor closes idle pooled connections.
"""

from httpfuture.builder import build_client, build_connection_manager
from httpfuture.client import FutureHttpClient
from httpfuture.config import ClientConfig
from httpfuture.exceptions import (
    ConfigurationError,
    CounterRegistrationError,
    HttpFutureError,
    InvalidConfigError,
    PoolClosedError,
    PoolError,
    PoolExhaustedError,
    RequestAbortedError,
    TaskAlreadyCancelledError,
)
from httpfuture.idle_monitor import IdleConnectionMonitor
from httpfuture.lifecycle import LoggingTaskLifecycleObserver, TaskLifecycleObserver
from httpfuture.metrics import (
    ConnectionCounter,
    ConnectionMetrics,
    Counter,
    CounterRegistry,
    DurationCounter,
    MetricsSnapshot,
)
from httpfuture.scheduler import PeriodicScheduler
from httpfuture.task import HttpFutureTask, TaskState
from httpfuture.transport import (
    HttpRequest,
    HttpxRequestExecutor,
    PooledConnectionManager,
    RequestContext,
    status_ok_handler,
)

__version__ = "1.0.0"

__all__ = [
    "build_client",
    "build_connection_manager",
    "FutureHttpClient",
    "ClientConfig",
    "ConfigurationError",
    "CounterRegistrationError",
    "HttpFutureError",
    "InvalidConfigError",
    "PoolClosedError",
    "PoolError",
    "PoolExhaustedError",
    "RequestAbortedError",
    "TaskAlreadyCancelledError",
    "IdleConnectionMonitor",
    "LoggingTaskLifecycleObserver",
    "TaskLifecycleObserver",
    "ConnectionCounter",
    "ConnectionMetrics",
    "Counter",
    "CounterRegistry",
    "DurationCounter",
    "MetricsSnapshot",
    "PeriodicScheduler",
    "HttpFutureTask",
    "TaskState",
    "HttpRequest",
    "HttpxRequestExecutor",
    "PooledConnectionManager",
    "RequestContext",
    "status_ok_handler",
]
