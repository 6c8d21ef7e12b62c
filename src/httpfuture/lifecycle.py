"""
Task lifecycle observers.

An observer is notified synchronously, on the worker thread, as a task moves
through its lifecycle. Observers must be cheap and must not block; exceptions
raised by an observer are logged by the task and never reach the caller.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class TaskLifecycleObserver(ABC):
    """Receives lifecycle events of an :class:`~httpfuture.task.HttpFutureTask`."""

    @abstractmethod
    def on_scheduled(self, task: Any) -> None:
        """Task was created and is waiting for a worker."""
        pass

    @abstractmethod
    def on_start(self, task: Any) -> None:
        """A worker started executing the request."""
        pass

    @abstractmethod
    def on_success(self, task: Any) -> None:
        """The request completed and the response handler returned a value."""
        pass

    @abstractmethod
    def on_failure(self, task: Any, error: BaseException) -> None:
        """The request or its response handler raised ``error``."""
        pass

    @abstractmethod
    def on_cancelled(self, task: Any) -> None:
        """Cancellation was requested for the task (fires once per task)."""
        pass


class LoggingTaskLifecycleObserver(TaskLifecycleObserver):
    """Default observer that logs each lifecycle event under the task's name."""

    def __init__(self, name: str):
        self.name = name

    def on_scheduled(self, task: Any) -> None:
        logger.debug(f"schedule request {self.name}")

    def on_start(self, task: Any) -> None:
        logger.debug(f"start request {self.name}")

    def on_success(self, task: Any) -> None:
        logger.debug(f"successfully completed {self.name}")

    def on_failure(self, task: Any, error: BaseException) -> None:
        logger.debug(f"failed {self.name}: {error}")

    def on_cancelled(self, task: Any) -> None:
        logger.debug(f"cancelled {self.name}")
