"""
Periodic sweep of expired and idle pooled connections.
"""

import logging

from httpfuture.transport.base import ConnectionManager

logger = logging.getLogger(__name__)


class IdleConnectionMonitor:
    """
    Zero-argument job closing stale connections of a pool manager.

    Meant to be run on a fixed-delay schedule. Errors raised by the manager
    propagate to whatever runs the job.
    """

    def __init__(self, connection_manager: ConnectionManager, idle_timeout: float):
        if idle_timeout < 0:
            raise ValueError("idle_timeout must not be negative")
        self.connection_manager = connection_manager
        self.idle_timeout = idle_timeout

    def __call__(self) -> None:
        expired = self.connection_manager.close_expired_connections()
        idle = self.connection_manager.close_idle_connections(self.idle_timeout)
        if expired or idle:
            logger.debug(
                f"Idle connection sweep closed {expired} expired and {idle} idle connections"
            )

    def __repr__(self) -> str:
        return f"IdleConnectionMonitor(idle_timeout={self.idle_timeout}s)"
