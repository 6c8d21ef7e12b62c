"""
In-memory stand-ins for the request, executor and observer collaborators.
"""

import threading
import time
from typing import Any, List, Optional, Tuple

from httpfuture.exceptions import RequestAbortedError
from httpfuture.lifecycle import TaskLifecycleObserver
from httpfuture.transport.base import AbortableRequest, RequestExecutor


class FakeRequest(AbortableRequest):
    """
    Request that "takes" ``delay`` seconds and can be aborted.

    An abort wakes up an executor sleeping on the request.
    """

    def __init__(self, name: str = "fake", delay: float = 0.0, error: Optional[Exception] = None):
        self._name = name
        self.delay = delay
        self.error = error
        self.abort_count = 0
        self._aborted = threading.Event()

    @property
    def name(self) -> str:
        return self._name

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    def abort(self) -> None:
        self.abort_count += 1
        self._aborted.set()

    def wait_for_abort(self, timeout: float) -> bool:
        return self._aborted.wait(timeout)


class FakeRequestExecutor(RequestExecutor):
    """
    Executor honouring :class:`FakeRequest` delays, errors and aborts.

    Records every call and the highest number of concurrent calls seen.
    """

    def __init__(self):
        self.calls: List[Tuple[FakeRequest, Any]] = []
        self.started = threading.Event()
        self.max_concurrency = 0
        self._in_flight = 0
        self._lock = threading.Lock()

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)

    def execute(self, request: FakeRequest, response_handler, context=None):
        with self._lock:
            self.calls.append((request, context))
            self._in_flight += 1
            self.max_concurrency = max(self.max_concurrency, self._in_flight)
        self.started.set()
        try:
            if request.delay > 0 and request.wait_for_abort(request.delay):
                raise RequestAbortedError(f"Request {request.name} was aborted")
            if request.error is not None:
                raise request.error
            return response_handler(request)
        finally:
            with self._lock:
                self._in_flight -= 1


class RecordingObserver(TaskLifecycleObserver):
    """Observer appending ``(event, task)`` pairs to ``events``."""

    def __init__(self):
        self.events: List[Tuple[str, Any]] = []
        self.errors: List[BaseException] = []
        self._lock = threading.Lock()

    @property
    def names(self) -> List[str]:
        with self._lock:
            return [event for event, _ in self.events]

    def _record(self, event: str, task: Any) -> None:
        with self._lock:
            self.events.append((event, task))

    def on_scheduled(self, task):
        self._record("scheduled", task)

    def on_start(self, task):
        self._record("start", task)

    def on_success(self, task):
        self._record("success", task)

    def on_failure(self, task, error):
        self.errors.append(error)
        self._record("failure", task)

    def on_cancelled(self, task):
        self._record("cancelled", task)


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.005) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
