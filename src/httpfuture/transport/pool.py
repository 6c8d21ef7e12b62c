"""
Connection pool manager for the httpx based executor.

Builds on ``httpcore.ConnectionPool`` and adds what the idle connection
monitor needs: per-connection idle tracking, closing of expired and idle
connections on demand, and a per-route connection limit.

``httpx.HTTPTransport`` always builds its own pool, so :class:`ManagedTransport`
plugs this one into httpx and maps httpcore errors to httpx errors the same
way httpx's default transport does.
"""

import logging
import ssl
import threading
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import httpcore
import httpx

from httpfuture.exceptions import PoolClosedError, PoolExhaustedError
from httpfuture.transport.base import ConnectionManager

logger = logging.getLogger(__name__)

Route = Tuple[bytes, bytes, Optional[int]]


class _ClosingStream:
    """Response body wrapper running ``on_close`` once when the body is closed."""

    def __init__(self, stream: Any, on_close: Callable[[], None]):
        self._stream = stream
        self._on_close: Optional[Callable[[], None]] = on_close

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self._stream:
            yield chunk

    def close(self) -> None:
        try:
            if hasattr(self._stream, "close"):
                self._stream.close()
        finally:
            on_close, self._on_close = self._on_close, None
            if on_close is not None:
                on_close()


class TrackedConnection(httpcore.ConnectionInterface):
    """
    Pooled httpcore connection that remembers when it was last used.

    Attributes:
        origin: Scheme, host and port the connection talks to
        created_at: Monotonic timestamp of creation
        last_used: Monotonic timestamp of the last request start or response close
        use_count: Number of requests sent over the connection
    """

    def __init__(self, connection: httpcore.ConnectionInterface, origin: httpcore.Origin):
        self._connection = connection
        self.origin = origin
        self.created_at = time.monotonic()
        self.last_used = self.created_at
        self.use_count = 0

    def mark_used(self) -> None:
        self.last_used = time.monotonic()

    def idle_seconds(self, now: Optional[float] = None) -> float:
        if now is None:
            now = time.monotonic()
        return now - self.last_used

    def handle_request(self, request: httpcore.Request) -> httpcore.Response:
        self.mark_used()
        self.use_count += 1
        response = self._connection.handle_request(request)
        return httpcore.Response(
            status=response.status,
            headers=response.headers,
            content=_ClosingStream(response.stream, self.mark_used),
            extensions=response.extensions,
        )

    def close(self) -> None:
        self._connection.close()

    def info(self) -> str:
        return self._connection.info()

    def can_handle_request(self, origin: httpcore.Origin) -> bool:
        return self._connection.can_handle_request(origin)

    def is_available(self) -> bool:
        return self._connection.is_available()

    def has_expired(self) -> bool:
        return self._connection.has_expired()

    def is_idle(self) -> bool:
        return self._connection.is_idle()

    def is_closed(self) -> bool:
        return self._connection.is_closed()

    def __repr__(self) -> str:
        return f"<TrackedConnection [{self.info()}] idle={self.idle_seconds():.3f}s>"


class _TrackingConnectionPool(httpcore.ConnectionPool):
    def create_connection(self, origin: httpcore.Origin) -> httpcore.ConnectionInterface:
        return TrackedConnection(super().create_connection(origin), origin)


@dataclass
class PoolStats:
    """Current pool statistics snapshot."""
    open_connections: int
    idle_connections: int
    active_connections: int
    max_connections: int
    max_connections_per_route: int
    routes: int
    total_requests: int
    total_expired_closed: int
    total_idle_closed: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def create_ssl_context(verify: bool = True) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class PooledConnectionManager(ConnectionManager):
    """
    Thread-safe HTTP connection pool with total and per-route limits.

    ``keepalive_expiry`` controls staleness checking on borrow: when set,
    httpcore drops connections idle longer than that before reusing one.
    Leave it unset when an :class:`IdleConnectionMonitor` sweeps the pool.
    """

    def __init__(
        self,
        max_connections: int = 100,
        max_connections_per_route: int = 10,
        keepalive_expiry: Optional[float] = None,
        verify_ssl: bool = True,
    ):
        self.max_connections = max_connections
        self.max_connections_per_route = max_connections_per_route
        self.keepalive_expiry = keepalive_expiry

        self._pool = _TrackingConnectionPool(
            ssl_context=create_ssl_context(verify_ssl),
            max_connections=max_connections,
            max_keepalive_connections=max_connections,
            keepalive_expiry=keepalive_expiry,
        )
        self._route_slots: Dict[Route, threading.BoundedSemaphore] = {}
        self._lock = threading.Lock()
        self._closed = False

        self._total_requests = 0
        self._total_expired_closed = 0
        self._total_idle_closed = 0

        logger.info(
            f"PooledConnectionManager initialized: max_connections={max_connections}, "
            f"max_per_route={max_connections_per_route}, keepalive_expiry={keepalive_expiry}"
        )

    @property
    def connections(self) -> List[TrackedConnection]:
        """Connections currently held by the pool, open or not yet reaped."""
        return [c for c in self._pool.connections if isinstance(c, TrackedConnection)]

    def _route_slot(self, route: Route) -> threading.BoundedSemaphore:
        slot = self._route_slots.get(route)
        if slot is None:
            with self._lock:
                slot = self._route_slots.get(route)
                if slot is None:
                    slot = threading.BoundedSemaphore(self.max_connections_per_route)
                    self._route_slots[route] = slot
        return slot

    def handle_request(self, request: httpcore.Request, timeout: Optional[float] = None) -> httpcore.Response:
        """
        Send ``request`` over a pooled connection.

        The route slot is held until the response body is closed.

        Raises:
            PoolClosedError: If the manager has been closed
            PoolExhaustedError: If no route slot frees up within ``timeout``
        """
        if self._closed:
            raise PoolClosedError("Cannot send request through closed connection manager")

        route = (request.url.scheme, request.url.host, request.url.port)
        slot = self._route_slot(route)
        acquired = slot.acquire(timeout=timeout) if timeout is not None else slot.acquire()
        if not acquired:
            raise PoolExhaustedError(
                f"No connection available for {request.url.host!r} within {timeout}s "
                f"(max per route: {self.max_connections_per_route})"
            )

        try:
            with self._lock:
                self._total_requests += 1
            response = self._pool.handle_request(request)
        except BaseException:
            slot.release()
            raise

        return httpcore.Response(
            status=response.status,
            headers=response.headers,
            content=_ClosingStream(response.stream, slot.release),
            extensions=response.extensions,
        )

    def close_expired_connections(self) -> int:
        """
        Close idle connections httpcore reports as expired.

        A connection expires once its keep-alive expiry has passed or the
        server has closed its end.

        Returns:
            Number of connections closed
        """
        closed = 0
        for connection in self.connections:
            if connection.is_idle() and connection.has_expired():
                logger.debug(f"Closing expired connection {connection.info()}")
                connection.close()
                closed += 1
        if closed:
            with self._lock:
                self._total_expired_closed += closed
        return closed

    def close_idle_connections(self, max_idle_seconds: float) -> int:
        """
        Close connections idle for longer than ``max_idle_seconds``.

        Returns:
            Number of connections closed
        """
        now = time.monotonic()
        closed = 0
        for connection in self.connections:
            if connection.is_idle() and connection.idle_seconds(now) > max_idle_seconds:
                logger.debug(
                    f"Closing idle connection {connection.info()} "
                    f"(idle {connection.idle_seconds(now):.3f}s)"
                )
                connection.close()
                closed += 1
        if closed:
            with self._lock:
                self._total_idle_closed += closed
        return closed

    def get_stats(self) -> PoolStats:
        connections = [c for c in self.connections if not c.is_closed()]
        idle = sum(1 for c in connections if c.is_idle())
        with self._lock:
            return PoolStats(
                open_connections=len(connections),
                idle_connections=idle,
                active_connections=len(connections) - idle,
                max_connections=self.max_connections,
                max_connections_per_route=self.max_connections_per_route,
                routes=len(self._route_slots),
                total_requests=self._total_requests,
                total_expired_closed=self._total_expired_closed,
                total_idle_closed=self._total_idle_closed,
            )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pool.close()
        logger.info("PooledConnectionManager closed")


_HTTPCORE_EXCEPTIONS = [
    (httpcore.ConnectTimeout, httpx.ConnectTimeout),
    (httpcore.ReadTimeout, httpx.ReadTimeout),
    (httpcore.WriteTimeout, httpx.WriteTimeout),
    (httpcore.PoolTimeout, httpx.PoolTimeout),
    (httpcore.TimeoutException, httpx.TimeoutException),
    (httpcore.ConnectError, httpx.ConnectError),
    (httpcore.ReadError, httpx.ReadError),
    (httpcore.WriteError, httpx.WriteError),
    (httpcore.NetworkError, httpx.NetworkError),
    (httpcore.ProxyError, httpx.ProxyError),
    (httpcore.UnsupportedProtocol, httpx.UnsupportedProtocol),
    (httpcore.RemoteProtocolError, httpx.RemoteProtocolError),
    (httpcore.LocalProtocolError, httpx.LocalProtocolError),
    (httpcore.ProtocolError, httpx.ProtocolError),
]


@contextmanager
def _map_httpcore_exceptions(request: httpx.Request) -> Iterator[None]:
    try:
        yield
    except Exception as e:
        for core_exc, httpx_exc in _HTTPCORE_EXCEPTIONS:
            if isinstance(e, core_exc):
                raise httpx_exc(str(e), request=request) from e
        raise


class _ResponseStream(httpx.SyncByteStream):
    def __init__(self, stream: Any, request: httpx.Request):
        self._stream = stream
        self._request = request

    def __iter__(self) -> Iterator[bytes]:
        with _map_httpcore_exceptions(self._request):
            for chunk in self._stream:
                yield chunk

    def close(self) -> None:
        if hasattr(self._stream, "close"):
            self._stream.close()


class ManagedTransport(httpx.BaseTransport):
    """httpx transport sending requests through a :class:`PooledConnectionManager`."""

    def __init__(self, manager: PooledConnectionManager):
        self.manager = manager

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        core_request = httpcore.Request(
            method=request.method,
            url=httpcore.URL(
                scheme=request.url.raw_scheme,
                host=request.url.raw_host,
                port=request.url.port,
                target=request.url.raw_path,
            ),
            headers=request.headers.raw,
            content=request.stream,
            extensions=request.extensions,
        )
        pool_timeout = request.extensions.get("timeout", {}).get("pool")
        with _map_httpcore_exceptions(request):
            core_response = self.manager.handle_request(core_request, timeout=pool_timeout)

        return httpx.Response(
            status_code=core_response.status,
            headers=core_response.headers,
            stream=_ResponseStream(core_response.stream, request),
            extensions=core_response.extensions,
        )

    def close(self) -> None:
        self.manager.close()
