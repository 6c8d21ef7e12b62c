"""
Stock response handlers.

A response handler receives the fully read ``httpx.Response`` and returns
the value of the future. Handlers run on worker threads and must be
thread-safe.
"""

from typing import Any

import httpx


def status_ok_handler(response: httpx.Response) -> bool:
    """True if the server answered 200."""
    return response.status_code == 200


def text_handler(response: httpx.Response) -> str:
    """Response body as text; non-2xx responses raise ``httpx.HTTPStatusError``."""
    response.raise_for_status()
    return response.text


def json_handler(response: httpx.Response) -> Any:
    """Decoded JSON body; non-2xx responses raise ``httpx.HTTPStatusError``."""
    response.raise_for_status()
    return response.json()


def bytes_handler(response: httpx.Response) -> bytes:
    response.raise_for_status()
    return response.content
