"""
Interfaces of the collaborators the task core depends on.

The core only needs three things from the outside world: a request object
that can be asked to abort, a blocking executor that turns a request into a
value, and a pool manager that can drop expired and idle connections.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

ResponseHandler = Callable[[Any], T]


class AbortableRequest(ABC):
    """A request whose in-flight execution can be asked to stop early."""

    @abstractmethod
    def abort(self) -> None:
        """
        Ask an in-flight execution of this request to fail promptly.

        Must be safe to call from any thread and more than once.
        """
        pass

    @property
    @abstractmethod
    def aborted(self) -> bool:
        pass

    @property
    def name(self) -> str:
        """Human readable identification used in logs."""
        return repr(self)


class RequestExecutor(ABC, Generic[T]):
    """Blocking request execution primitive."""

    @abstractmethod
    def execute(
        self,
        request: AbortableRequest,
        response_handler: ResponseHandler,
        context: Optional[Any] = None,
    ) -> T:
        """
        Send ``request``, block until a response arrives and return the
        value produced by ``response_handler``.

        Raises:
            Exception: Any transport, handler or abort error
        """
        pass


class ConnectionManager(ABC):
    """Pool manager operations used by the idle connection monitor."""

    @abstractmethod
    def close_expired_connections(self) -> int:
        """Close connections the pool already knows to be expired."""
        pass

    @abstractmethod
    def close_idle_connections(self, max_idle_seconds: float) -> int:
        """Close connections that have been idle longer than ``max_idle_seconds``."""
        pass
