"""
Custom exceptions for the future-supporting HTTP client.
"""


class HttpFutureError(Exception):
    """Base exception for httpfuture errors."""
    pass


class TaskAlreadyCancelledError(HttpFutureError):
    """Raised when a worker picks up a task that was cancelled before it started."""
    pass


class RequestAbortedError(HttpFutureError):
    """Raised by an executor when the request it was sending has been aborted."""
    pass


class ConfigurationError(HttpFutureError):
    """Base exception for programming and configuration mistakes."""
    pass


class CounterRegistrationError(ConfigurationError):
    """Raised when a counter name is requested as two different counter kinds."""
    pass


class InvalidConfigError(ConfigurationError, ValueError):
    """Raised when client configuration values are invalid."""
    pass


class PoolError(HttpFutureError):
    """Base exception for connection pool errors."""
    pass


class PoolClosedError(PoolError):
    """Raised when attempting to use a closed connection manager."""
    pass


class PoolExhaustedError(PoolError):
    """Raised when no per-route connection slot frees up within the pool timeout."""
    pass
