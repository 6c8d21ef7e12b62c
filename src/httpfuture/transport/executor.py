"""
Blocking request executor backed by httpx.

Sends an :class:`HttpRequest` through a shared ``httpx.Client`` and hands the
fully read response to a response handler. Aborting the request is
cooperative: the executor refuses to send an aborted request, closes the
response if it is aborted while the body is being read, and discards the
response if the abort lands while waiting for it.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional

import httpx

from httpfuture.config import ClientConfig
from httpfuture.exceptions import RequestAbortedError
from httpfuture.transport.base import RequestExecutor, ResponseHandler
from httpfuture.transport.pool import ManagedTransport, PooledConnectionManager
from httpfuture.transport.request import HttpRequest, RequestContext

logger = logging.getLogger(__name__)


class HttpxRequestExecutor(RequestExecutor):
    """
    Executes requests synchronously with an ``httpx.Client``.

    The client is created lazily on first use. When a connection manager is
    given, the client sends through it so that the idle connection monitor
    can reach the pooled connections.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        connection_manager: Optional[PooledConnectionManager] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.config = config if config is not None else ClientConfig()
        self.connection_manager = connection_manager
        self._client = client
        self._client_lock = threading.Lock()

    def _get_client_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "timeout": httpx.Timeout(self.config.socket_timeout, connect=self.config.connect_timeout),
            "follow_redirects": self.config.follow_redirects,
        }
        if self.connection_manager is not None:
            kwargs["transport"] = ManagedTransport(self.connection_manager)
        else:
            kwargs["verify"] = self.config.verify_ssl
            kwargs["limits"] = httpx.Limits(
                max_connections=self.config.max_connections,
                max_keepalive_connections=self.config.max_connections,
                keepalive_expiry=self.config.idle_connection_timeout,
            )
        if not self.config.compression:
            kwargs["headers"] = {"Accept-Encoding": "identity"}
        return kwargs

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = httpx.Client(**self._get_client_kwargs())
                    logger.debug("Created httpx client")
        return self._client

    def execute(
        self,
        request: HttpRequest,
        response_handler: ResponseHandler,
        context: Optional[RequestContext] = None,
    ) -> Any:
        """
        Send ``request`` and return ``response_handler(response)``.

        Raises:
            RequestAbortedError: If the request was aborted
            httpx.HTTPError: On transport errors
            Exception: Whatever the response handler raises
        """
        if request.aborted:
            raise RequestAbortedError(f"Request {request.name} was aborted before it was sent")

        headers = dict(request.headers)
        timeout: Any = httpx.USE_CLIENT_DEFAULT
        if context is not None:
            headers.update(context.headers)
            if context.timeout is not None:
                timeout = context.timeout

        http_request = self.client.build_request(
            request.method,
            request.url,
            params=request.params or None,
            headers=headers,
            content=request.content,
            json=request.json,
            timeout=timeout,
        )

        started = time.monotonic()
        try:
            response = self.client.send(http_request, stream=True)
        except Exception as e:
            if request.aborted:
                raise RequestAbortedError(f"Request {request.name} was aborted") from e
            raise

        request.attach_response(response)
        try:
            try:
                response.read()
            except Exception as e:
                if request.aborted:
                    raise RequestAbortedError(f"Request {request.name} was aborted while reading the response") from e
                raise
            if request.aborted:
                raise RequestAbortedError(f"Request {request.name} was aborted")

            if context is not None:
                context.set_attribute("status_code", response.status_code)
                context.set_attribute("http_version", response.http_version)
                context.set_attribute("elapsed", time.monotonic() - started)
            return response_handler(response)
        finally:
            request.detach_response()
            response.close()

    def close(self) -> None:
        """Close the underlying client and its connections."""
        if self._client is not None:
            self._client.close()
            self._client = None
        elif self.connection_manager is not None:
            self.connection_manager.close()
        logger.debug("HttpxRequestExecutor closed")
