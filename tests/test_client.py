"""Tests for FutureHttpClient"""

import threading
import time
from concurrent.futures import CancelledError, ThreadPoolExecutor, as_completed, wait

import pytest

from httpfuture.client import FutureHttpClient
from httpfuture.task import HttpFutureTask, TaskState
from tests.utils import FakeRequest, FakeRequestExecutor, RecordingObserver, wait_until


def echo_handler(request):
    return request.name


class RejectingPool(ThreadPoolExecutor):
    """Worker pool refusing its n-th submission."""

    def __init__(self, reject_on, **kwargs):
        super().__init__(**kwargs)
        self.reject_on = reject_on
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        if self.submitted == self.reject_on:
            raise RuntimeError("cannot schedule new futures")
        return super().submit(fn, *args, **kwargs)


class TestExecute:
    def test_execute_returns_future(self, fake_client):
        task = fake_client.execute(FakeRequest("one"))

        assert isinstance(task, HttpFutureTask)
        assert task.result(timeout=2) == "one"

    def test_custom_observer_and_context(self, fake_client, fake_executor):
        observer = RecordingObserver()
        task = fake_client.execute(FakeRequest("one"), context="ctx", observer=observer)
        task.result(timeout=2)

        assert fake_executor.calls[0][1] == "ctx"
        assert observer.names == ["scheduled", "start", "success"]

    def test_active_connections_bounded_by_workers(self, fake_executor, metrics):
        pool = ThreadPoolExecutor(max_workers=3)
        client = FutureHttpClient(fake_executor, pool, echo_handler, metrics=metrics)
        peak = []

        tasks = [client.execute(FakeRequest(f"r{i}", delay=0.05)) for i in range(12)]
        while not all(t.done() for t in tasks):
            peak.append(metrics.active_connections())
            time.sleep(0.001)
        wait(tasks, timeout=5)

        assert max(peak) <= 3
        assert fake_executor.max_concurrency <= 3
        assert metrics.active_connections() == 0
        assert metrics.scheduled_connections() == 0
        assert metrics.requests.count() == 12
        client.close()
        pool.shutdown(wait=True)

    def test_cancel_queued_task_skips_execution(self, fake_executor, metrics):
        pool = ThreadPoolExecutor(max_workers=1)
        client = FutureHttpClient(fake_executor, pool, echo_handler, metrics=metrics)

        blocker = client.execute(FakeRequest("blocker", delay=0.2))
        queued = client.execute(FakeRequest("queued"))
        assert queued.cancel() is True
        blocker.result(timeout=2)
        pool.shutdown(wait=True)

        assert [req.name for req, _ in fake_executor.calls] == ["blocker"]
        assert queued.state == TaskState.CANCELLED
        assert metrics.scheduled_connections() == 0
        client.close()

    def test_rejected_submission_cancels_task(self, fake_executor, metrics):
        pool = ThreadPoolExecutor(max_workers=1)
        pool.shutdown()
        client = FutureHttpClient(fake_executor, pool, echo_handler, metrics=metrics)

        with pytest.raises(RuntimeError):
            client.execute(FakeRequest("late"))

        assert fake_executor.call_count == 0
        assert metrics.scheduled_connections() == 0

    def test_snapshot_delegates_to_metrics(self, fake_client):
        fake_client.execute(FakeRequest("one")).result(timeout=2)
        assert wait_until(lambda: fake_client.snapshot().total_requests == 1)
        assert fake_client.metrics.successful.count() == 1


class TestExecuteMultiple:
    def test_without_timeout_waits_for_all(self, fake_client):
        tasks = fake_client.execute_multiple(
            FakeRequest("a", delay=0.02), FakeRequest("b"), FakeRequest("c", delay=0.01)
        )

        assert all(t.done() for t in tasks)
        assert [t.result() for t in tasks] == ["a", "b", "c"]

    def test_timeout_cancels_stragglers(self, fake_client, fake_executor):
        tasks = fake_client.execute_multiple(
            FakeRequest("fast1", delay=0.01),
            FakeRequest("fast2", delay=0.01),
            FakeRequest("slow", delay=1.0),
            timeout=0.1,
        )

        assert [str(t) for t in tasks] == ["fast1", "fast2", "slow"]
        assert [t.cancelled() for t in tasks] == [False, False, True]
        assert tasks[0].result() == "fast1"
        assert tasks[1].result() == "fast2"
        with pytest.raises(CancelledError):
            tasks[2].result()
        # Stragglers are cancelled without aborting their request.
        assert tasks[2].request.abort_count == 0
        assert tasks[2].state == TaskState.CANCEL_REQUESTED
        assert wait_until(lambda: tasks[2].state == TaskState.CANCELLED)
        assert tasks[2].outcome == TaskState.SUCCEEDED

    def test_tasks_work_with_as_completed(self, fake_client):
        tasks = [
            fake_client.execute(FakeRequest("slow", delay=0.1)),
            fake_client.execute(FakeRequest("quick")),
        ]
        finished = [t.result() for t in as_completed(tasks, timeout=5)]
        assert finished == ["quick", "slow"]

    def test_empty_batch(self, fake_client):
        assert fake_client.execute_multiple(timeout=0.1) == []

    def test_rejected_batch_cancels_submitted_tasks(self, fake_executor, metrics):
        release = threading.Event()
        pool = RejectingPool(reject_on=3, max_workers=1)
        pool.submit(release.wait, 5)
        client = FutureHttpClient(fake_executor, pool, echo_handler, metrics=metrics)

        with pytest.raises(RuntimeError):
            client.execute_multiple(FakeRequest("first", delay=0.2), FakeRequest("second"), timeout=0.05)

        release.set()
        pool.shutdown(wait=True)
        assert fake_executor.call_count == 0
        assert metrics.scheduled_connections() == 0
        assert metrics.active_connections() == 0
        client.close()


class TestClose:
    def test_shutdown_hooks_run_once_in_order(self, fake_executor, worker_pool):
        client = FutureHttpClient(fake_executor, worker_pool, echo_handler)
        calls = []
        client.add_shutdown_hook(lambda: calls.append("first"))
        client.add_shutdown_hook(lambda: calls.append("second"))

        with client:
            pass
        client.close()

        assert calls == ["first", "second"]

    def test_close_closes_request_executor(self, worker_pool):
        closed = []

        class ClosingExecutor(FakeRequestExecutor):
            def close(self):
                closed.append(True)

        FutureHttpClient(ClosingExecutor(), worker_pool, echo_handler).close()
        assert closed == [True]
