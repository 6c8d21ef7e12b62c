"""Shared fixtures for httpfuture tests."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from httpfuture.client import FutureHttpClient
from httpfuture.metrics.connection_metrics import ConnectionMetrics
from tests.utils import FakeRequestExecutor, MockHTTPServer, RecordingObserver


def echo_handler(request):
    return request.name


@pytest.fixture
def metrics():
    return ConnectionMetrics()


@pytest.fixture
def fake_executor():
    return FakeRequestExecutor()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def worker_pool():
    pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="test-worker")
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def fake_client(fake_executor, worker_pool, metrics):
    client = FutureHttpClient(fake_executor, worker_pool, echo_handler, metrics=metrics)
    yield client
    client.close()


@pytest.fixture
def http_server():
    server = MockHTTPServer()
    with server.run():
        yield server
