"""
Factory wiring a :class:`FutureHttpClient` from a :class:`ClientConfig`.
"""

import functools
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Optional

from httpfuture.client import FutureHttpClient
from httpfuture.config import ClientConfig
from httpfuture.idle_monitor import IdleConnectionMonitor
from httpfuture.metrics.connection_metrics import ConnectionMetrics
from httpfuture.scheduler import PeriodicScheduler
from httpfuture.transport.base import ResponseHandler
from httpfuture.transport.executor import HttpxRequestExecutor
from httpfuture.transport.pool import PooledConnectionManager

logger = logging.getLogger(__name__)


def build_connection_manager(config: ClientConfig) -> PooledConnectionManager:
    """
    Create the pool manager for ``config``.

    Without the idle monitor, connections idle longer than the idle timeout
    are dropped when the pool is about to hand them out.
    """
    keepalive_expiry = None if config.idle_monitor_enabled else config.idle_connection_timeout
    return PooledConnectionManager(
        max_connections=config.max_connections,
        max_connections_per_route=config.max_connections_per_route,
        keepalive_expiry=keepalive_expiry,
        verify_ssl=config.verify_ssl,
    )


def build_client(
    response_handler: ResponseHandler,
    config: Optional[ClientConfig] = None,
    executor: Optional[Executor] = None,
    scheduler: Optional[PeriodicScheduler] = None,
    metrics: Optional[ConnectionMetrics] = None,
) -> FutureHttpClient:
    """
    Build a ready to use client.

    Args:
        response_handler: Turns each response into the value of its future
        config: Client configuration, loaded from the environment by default
        executor: Worker pool, a thread pool sized to the connection limit
            by default
        scheduler: Scheduler running the idle monitor, a private one by default
        metrics: Metrics to report into, a fresh set by default

    Returns:
        The client. Closing it releases everything this function created.

    Raises:
        InvalidConfigError: If ``config`` is invalid
    """
    if config is None:
        config = ClientConfig.from_env()
    config.validate()

    connection_manager = build_connection_manager(config)
    request_executor = HttpxRequestExecutor(config=config, connection_manager=connection_manager)

    owns_executor = executor is None
    if owns_executor:
        executor = ThreadPoolExecutor(
            max_workers=config.effective_worker_threads,
            thread_name_prefix="httpfuture",
        )

    client = FutureHttpClient(request_executor, executor, response_handler, metrics=metrics)

    if config.idle_monitor_enabled:
        owns_scheduler = scheduler is None
        if owns_scheduler:
            scheduler = PeriodicScheduler()
        monitor = IdleConnectionMonitor(connection_manager, config.idle_connection_timeout)
        job_name = f"idle-connection-monitor-{id(client):x}"
        scheduler.schedule_with_fixed_delay(job_name, monitor, config.effective_idle_check_interval)
        if owns_scheduler:
            scheduler.start()

        client.add_shutdown_hook(lambda: scheduler.cancel(job_name))
        if owns_scheduler:
            client.add_shutdown_hook(scheduler.stop)
        logger.info(
            f"Idle connection monitor enabled: timeout={config.idle_connection_timeout}s, "
            f"interval={config.effective_idle_check_interval}s"
        )

    if owns_executor:
        client.add_shutdown_hook(functools.partial(executor.shutdown, wait=False))

    return client
