"""
httpfuture Test Utilities

Mock servers and fakes shared by the test suite.
"""

from .mock_server import MockHTTPServer
from .fakes import FakeRequest, FakeRequestExecutor, RecordingObserver, wait_until

__all__ = [
    'MockHTTPServer',
    'FakeRequest',
    'FakeRequestExecutor',
    'RecordingObserver',
    'wait_until',
]
