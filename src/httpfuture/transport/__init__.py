"""
Request model, httpx executor and pooled connection manager.
"""

from httpfuture.transport.base import AbortableRequest, ConnectionManager, RequestExecutor
from httpfuture.transport.request import HttpRequest, RequestContext
from httpfuture.transport.pool import ManagedTransport, PooledConnectionManager, PoolStats, TrackedConnection
from httpfuture.transport.executor import HttpxRequestExecutor
from httpfuture.transport.handlers import bytes_handler, json_handler, status_ok_handler, text_handler

__all__ = [
    "AbortableRequest",
    "ConnectionManager",
    "RequestExecutor",
    "HttpRequest",
    "RequestContext",
    "ManagedTransport",
    "PooledConnectionManager",
    "PoolStats",
    "TrackedConnection",
    "HttpxRequestExecutor",
    "bytes_handler",
    "json_handler",
    "status_ok_handler",
    "text_handler",
]
