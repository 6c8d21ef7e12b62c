"""End-to-end tests against a local HTTP server"""

import httpx
import pytest

from httpfuture import build_client
from httpfuture.config import ClientConfig
from httpfuture.exceptions import RequestAbortedError
from httpfuture.transport.executor import HttpxRequestExecutor
from httpfuture.transport.handlers import json_handler, status_ok_handler, text_handler
from httpfuture.transport.request import HttpRequest, RequestContext


@pytest.fixture
def config():
    return ClientConfig(max_connections=10, max_connections_per_route=10, socket_timeout=5.0)


class TestFutureHttpClientEndToEnd:
    def test_single_request(self, http_server, config):
        with build_client(status_ok_handler, config=config) as client:
            task = client.execute(HttpRequest.get(http_server.url + "/ping"))

            assert task.result(timeout=5) is True
            assert str(task) == http_server.url + "/ping"
            assert client.metrics.successful.count() == 1
            assert client.metrics.active_connections() == 0
        assert http_server.get_request_count("/ping") == 1

    def test_batch_timeout_cancels_slow_request(self, http_server, config):
        with build_client(status_ok_handler, config=config) as client:
            tasks = client.execute_multiple(
                HttpRequest.get(http_server.url + "/ping?sleep=10"),
                HttpRequest.get(http_server.url + "/ping?sleep=10"),
                HttpRequest.get(http_server.url + "/ping?sleep=3000"),
                timeout=0.1,
            )

            assert len(tasks) == 3
            assert [t.cancelled() for t in tasks] == [False, False, True]
            assert tasks[0].result() is True
            assert tasks[1].result() is True
            assert tasks[2].request.params == {}
            assert str(tasks[2]).endswith("sleep=3000")

    def test_error_status_goes_through_failure_path(self, http_server, config):
        with build_client(text_handler, config=config) as client:
            task = client.execute(HttpRequest.get(http_server.url + "/ping", params={"status": 500}))

            with pytest.raises(httpx.HTTPStatusError):
                task.result(timeout=5)
            assert client.metrics.failed.count() == 1

    def test_idle_monitor_enabled(self, http_server):
        config = ClientConfig(idle_monitor_enabled=True, idle_connection_timeout=30.0, max_connections=4,
                              max_connections_per_route=4)
        with build_client(json_handler, config=config) as client:
            task = client.execute(HttpRequest.get(http_server.url + "/status"))
            assert task.result(timeout=5) == {"status": "ok", "path": "/status"}


class TestHttpxRequestExecutor:
    @pytest.fixture
    def executor(self):
        executor = HttpxRequestExecutor(ClientConfig(compression=False))
        yield executor
        executor.close()

    def test_context_headers_and_attributes(self, http_server, executor):
        context = RequestContext(headers={"X-Trace": "abc"})
        request = HttpRequest.post(http_server.url + "/submit", json={"a": 1})

        assert executor.execute(request, status_ok_handler, context) is True
        recorded = http_server.received_requests[-1]
        assert recorded["method"] == "POST"
        assert recorded["headers"]["x-trace"] == "abc"
        assert recorded["headers"]["accept-encoding"] == "identity"
        assert recorded["body"] == '{"a":1}' or recorded["body"] == '{"a": 1}'
        assert context.get_attribute("status_code") == 200
        assert context.get_attribute("http_version") == "HTTP/1.1"
        assert context.get_attribute("elapsed") >= 0

    def test_aborted_request_is_not_sent(self, http_server, executor):
        request = HttpRequest.get(http_server.url + "/ping")
        request.abort()

        with pytest.raises(RequestAbortedError):
            executor.execute(request, status_ok_handler)
        assert http_server.request_count == 0

    def test_abort_is_idempotent(self):
        request = HttpRequest.get("http://127.0.0.1/never")
        request.abort()
        request.abort()
        assert request.aborted
