"""
Cancellable task wrapping one blocking HTTP request.

An :class:`HttpFutureTask` is both the unit of work handed to a worker pool
(via :meth:`HttpFutureTask.run`) and the future returned to the caller. The
lifecycle is::

    SCHEDULED -> RUNNING -> SUCCEEDED | FAILED
    SCHEDULED -> CANCELLED
    RUNNING   -> CANCEL_REQUESTED (cancel() landed while the request was in flight)
    CANCEL_REQUESTED -> CANCELLED (the request ended; its real outcome is kept in ``outcome``)

The cancellation flag is read exactly once, when a worker picks the task up.
After that point the request runs to completion unless the request object
honours an abort.
"""

import logging
import threading
import time
from concurrent.futures import Future, InvalidStateError
from enum import Enum
from typing import Any, Optional

from httpfuture.exceptions import TaskAlreadyCancelledError
from httpfuture.lifecycle import LoggingTaskLifecycleObserver, TaskLifecycleObserver
from httpfuture.metrics.connection_metrics import ConnectionMetrics
from httpfuture.transport.base import AbortableRequest, RequestExecutor, ResponseHandler

logger = logging.getLogger(__name__)


class TaskState(str, Enum):
    """Lifecycle state of a task"""
    SCHEDULED = "scheduled"
    RUNNING = "running"
    CANCEL_REQUESTED = "cancel_requested"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class HttpFutureTask(Future):
    """
    Future-like handle for a request executed on a worker thread.

    The handle reports cancellation as soon as :meth:`cancel` is called on an
    unfinished task, even when the request itself is already in flight and
    later succeeds or fails. Metrics and observer notifications always
    reflect what actually happened to the request.
    """

    def __init__(
        self,
        request: AbortableRequest,
        request_executor: RequestExecutor,
        response_handler: ResponseHandler,
        metrics: ConnectionMetrics,
        observer: Optional[TaskLifecycleObserver] = None,
        context: Optional[Any] = None,
    ):
        super().__init__()
        self._request = request
        self._request_executor = request_executor
        self._response_handler = response_handler
        self._metrics = metrics
        self._observer = observer if observer is not None else LoggingTaskLifecycleObserver(request.name)
        self._context = context

        self._cancel_requested = threading.Event()
        self._abort_sent = False
        # Reentrant: done callbacks run while cancel() holds it.
        self._transition_lock = threading.RLock()
        self._outcome: Optional[TaskState] = None

        self.scheduled_at: float = time.monotonic()
        self.started_at: Optional[float] = None
        self.ended_at: Optional[float] = None

        self._notify("on_scheduled")
        self._metrics.scheduled.increment()

    @property
    def request(self) -> AbortableRequest:
        return self._request

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    @property
    def outcome(self) -> Optional[TaskState]:
        """What actually happened to the request, None until it ended."""
        return self._outcome

    @property
    def state(self) -> TaskState:
        if super().cancelled():
            if self.started_at is not None and self._outcome is None:
                return TaskState.CANCEL_REQUESTED
            return TaskState.CANCELLED
        if self._outcome is not None:
            return self._outcome
        if self.started_at is None:
            return TaskState.CANCELLED if self._cancel_requested.is_set() else TaskState.SCHEDULED
        return TaskState.CANCEL_REQUESTED if self._cancel_requested.is_set() else TaskState.RUNNING

    def running(self) -> bool:
        return self.started_at is not None and self.ended_at is None

    def request_duration(self) -> float:
        """Seconds between start and end of the request, 0 until it ended."""
        if self.ended_at is None or self.started_at is None:
            return 0.0
        return self.ended_at - self.started_at

    def task_duration(self) -> float:
        """Seconds between scheduling and end of the request, 0 until it ended."""
        if self.ended_at is None:
            return 0.0
        return self.ended_at - self.scheduled_at

    def cancel(self, may_interrupt: bool = False) -> bool:
        """
        Request cancellation of this task.

        Safe to call from any thread, in any state, any number of times. The
        "cancelled" notification fires once, on the first call. With
        ``may_interrupt`` the request is asked to abort (at most once per
        task); the worker thread itself is never interrupted.

        Returns:
            True if the handle now reports the task as cancelled
        """
        with self._transition_lock:
            first_request = not self._cancel_requested.is_set()
            self._cancel_requested.set()
            send_abort = may_interrupt and not self._abort_sent and not self.done()
            if send_abort:
                self._abort_sent = True
            already_cancelled = super().cancelled()
            cancelled = super().cancel()
            if cancelled and not already_cancelled:
                # Wake up concurrent.futures.wait() callers.
                self.set_running_or_notify_cancel()
        if send_abort:
            self._request.abort()
        if first_request:
            self._notify("on_cancelled")
        return cancelled

    def run(self) -> None:
        """
        Execute the task on the calling thread.

        Meant to be submitted to a worker pool. Never raises: the result or
        error is stored on this future.
        """
        try:
            result = self._call()
        except Exception as e:
            self._store_outcome(exception=e)
        else:
            self._store_outcome(result=result)

    def _call(self) -> Any:
        with self._transition_lock:
            cancelled = self._cancel_requested.is_set()
            if not cancelled:
                self.started_at = time.monotonic()

        if cancelled:
            self._metrics.scheduled.decrement()
            raise TaskAlreadyCancelledError(f"call has been cancelled for request {self._request.name}")

        self._metrics.active.increment()
        self._metrics.scheduled.decrement()
        try:
            self._notify("on_start")
            try:
                result = self._request_executor.execute(self._request, self._response_handler, self._context)
            except Exception as e:
                self.ended_at = time.monotonic()
                self._outcome = TaskState.FAILED
                self._metrics.failed.increment(self.started_at, self.ended_at)
                self._notify("on_failure", e)
                raise
            self.ended_at = time.monotonic()
            self._outcome = TaskState.SUCCEEDED
            self._metrics.successful.increment(self.started_at, self.ended_at)
            self._notify("on_success")
            return result
        finally:
            end = self.ended_at if self.ended_at is not None else time.monotonic()
            self._metrics.requests.increment(self.started_at, end)
            self._metrics.tasks.increment(self.started_at, end)
            self._metrics.active.decrement()

    def _store_outcome(self, result: Any = None, exception: Optional[BaseException] = None) -> None:
        try:
            if exception is not None:
                self.set_exception(exception)
            else:
                self.set_result(result)
        except InvalidStateError:
            # Cancelled while in flight; the handle keeps reporting cancellation.
            logger.debug(f"Discarding outcome of cancelled task {self}")

    def _notify(self, event: str, *args: Any) -> None:
        try:
            getattr(self._observer, event)(self, *args)
        except Exception as e:
            logger.warning(f"Lifecycle observer {event} failed for {self}: {e}", exc_info=True)

    def __str__(self) -> str:
        return self._request.name
