"""
Request and per-call context objects for the httpx based executor.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

import httpx

from httpfuture.transport.base import AbortableRequest

logger = logging.getLogger(__name__)


class HttpRequest(AbortableRequest):
    """
    Description of one HTTP request that can be aborted from another thread.

    Aborting sets a flag the executor checks before sending and after the
    response arrives, and closes the response stream if one is currently
    being read. A request should be executed at most once.
    """

    def __init__(
        self,
        method: str,
        url: Union[str, httpx.URL],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        content: Optional[Union[str, bytes]] = None,
        json: Optional[Any] = None,
    ):
        self.method = method.upper()
        self.url = httpx.URL(url)
        self.headers = dict(headers or {})
        self.params = dict(params or {})
        self.content = content
        self.json = json

        self._aborted = threading.Event()
        self._lock = threading.Lock()
        self._response: Optional[httpx.Response] = None

    @classmethod
    def get(cls, url: Union[str, httpx.URL], **kwargs) -> "HttpRequest":
        return cls("GET", url, **kwargs)

    @classmethod
    def post(cls, url: Union[str, httpx.URL], **kwargs) -> "HttpRequest":
        return cls("POST", url, **kwargs)

    @classmethod
    def put(cls, url: Union[str, httpx.URL], **kwargs) -> "HttpRequest":
        return cls("PUT", url, **kwargs)

    @classmethod
    def delete(cls, url: Union[str, httpx.URL], **kwargs) -> "HttpRequest":
        return cls("DELETE", url, **kwargs)

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    @property
    def name(self) -> str:
        return str(self.url.copy_merge_params(self.params)) if self.params else str(self.url)

    def abort(self) -> None:
        with self._lock:
            if self._aborted.is_set():
                return
            self._aborted.set()
            response = self._response
        logger.debug(f"Aborting request {self.method} {self.name}")
        if response is not None:
            response.close()

    def attach_response(self, response: httpx.Response) -> None:
        """
        Track the response currently being read so abort() can close it.

        If the request was aborted before the response arrived, the response
        is closed right away.
        """
        with self._lock:
            if not self._aborted.is_set():
                self._response = response
                return
        response.close()

    def detach_response(self) -> None:
        with self._lock:
            self._response = None

    def __repr__(self) -> str:
        return f"HttpRequest({self.method} {self.name})"

    def __str__(self) -> str:
        return self.name


@dataclass
class RequestContext:
    """
    Per-call execution context.

    ``headers`` are merged into the request, ``timeout``
    overrides the client timeout and ``attributes`` is filled in by the
    executor with details about the exchange.
    """
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[Union[float, httpx.Timeout]] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def get_attribute(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)
