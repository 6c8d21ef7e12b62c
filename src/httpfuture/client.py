"""
Future-supporting HTTP client.

Wraps a blocking request executor so that every request runs on a worker
pool and is represented by a cancellable :class:`HttpFutureTask`. Size the
worker pool to the number of connections the executor may open: extra
threads just block waiting for a pooled connection.
"""

import logging
import threading
from concurrent.futures import Executor, wait
from typing import Any, Callable, List, Optional

from httpfuture.lifecycle import TaskLifecycleObserver
from httpfuture.metrics.connection_metrics import ConnectionMetrics, MetricsSnapshot
from httpfuture.task import HttpFutureTask
from httpfuture.transport.base import AbortableRequest, RequestExecutor, ResponseHandler

logger = logging.getLogger(__name__)


class FutureHttpClient:
    """
    Thread-safe client returning futures for HTTP requests.

    One client owns one :class:`ConnectionMetrics`; every task it creates
    reports into it.
    """

    def __init__(
        self,
        request_executor: RequestExecutor,
        executor: Executor,
        response_handler: ResponseHandler,
        metrics: Optional[ConnectionMetrics] = None,
    ):
        """
        Initialize the client.

        Args:
            request_executor: Blocking primitive that performs one request
            executor: Worker pool the tasks are submitted to
            response_handler: Turns a response into the value of the future.
                Must be thread-safe.
            metrics: Metrics to report into, a fresh set by default
        """
        self.request_executor = request_executor
        self.executor = executor
        self.response_handler = response_handler
        self._metrics = metrics if metrics is not None else ConnectionMetrics()
        self._shutdown_hooks: List[Callable[[], Any]] = []
        self._closed = False
        self._close_lock = threading.Lock()

        logger.info(f"FutureHttpClient initialized with {type(request_executor).__name__}")

    @property
    def metrics(self) -> ConnectionMetrics:
        return self._metrics

    def snapshot(self) -> MetricsSnapshot:
        return self._metrics.snapshot()

    def execute(
        self,
        request: AbortableRequest,
        context: Optional[Any] = None,
        observer: Optional[TaskLifecycleObserver] = None,
    ) -> HttpFutureTask:
        """
        Schedule ``request`` for execution.

        Args:
            request: Request to send
            context: Optional per-call context passed to the request executor
            observer: Lifecycle observer, a logging observer by default

        Returns:
            The task, usable as a ``concurrent.futures.Future``

        Raises:
            RuntimeError: If the worker pool no longer accepts work
        """
        task = HttpFutureTask(
            request,
            self.request_executor,
            self.response_handler,
            self._metrics,
            observer=observer,
            context=context,
        )
        try:
            self.executor.submit(task.run)
        except RuntimeError:
            logger.warning(f"Worker pool rejected request {request.name}")
            task.cancel()
            task.run()
            raise
        return task

    def execute_multiple(
        self,
        *requests: AbortableRequest,
        timeout: Optional[float] = None,
        context: Optional[Any] = None,
    ) -> List[HttpFutureTask]:
        """
        Execute several requests and wait for them.

        Behaves as one :meth:`execute` call per request plus a shared
        watchdog: without a timeout this returns once every task finished;
        with a timeout, tasks still unfinished at the deadline are cancelled
        (without aborting their requests).

        Returns:
            Tasks in the same order as ``requests``

        Raises:
            RuntimeError: If the worker pool rejects a request; the tasks
                already submitted for the batch are cancelled first
        """
        tasks: List[HttpFutureTask] = []
        try:
            for request in requests:
                tasks.append(self.execute(request, context=context))
        except RuntimeError:
            logger.warning(f"Batch rejected after {len(tasks)} of {len(requests)} requests, cancelling them")
            for task in tasks:
                task.cancel(may_interrupt=True)
            raise
        if not tasks:
            return tasks

        _, not_done = wait(tasks, timeout=timeout)
        if not_done:
            logger.info(
                f"Batch deadline of {timeout}s reached, cancelling "
                f"{len(not_done)} of {len(tasks)} requests"
            )
            for task in not_done:
                task.cancel(may_interrupt=False)
        return tasks

    def add_shutdown_hook(self, hook: Callable[[], Any]) -> None:
        """Register a callable run by :meth:`close`, in registration order."""
        self._shutdown_hooks.append(hook)

    def close(self) -> None:
        """Run shutdown hooks and close the request executor."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        for hook in self._shutdown_hooks:
            hook()
        close = getattr(self.request_executor, "close", None)
        if callable(close):
            close()
        logger.info("FutureHttpClient closed")

    def __enter__(self) -> "FutureHttpClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
