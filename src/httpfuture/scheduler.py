"""
Fixed-delay background scheduler.

Runs maintenance jobs such as the idle connection monitor on a single daemon
thread. A failing job is logged and stays scheduled.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Job execution status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ScheduledJob:
    """Represents a job re-run a fixed delay after each run finished"""
    name: str
    handler: Callable[[], Any]
    interval_seconds: float
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    last_run: Optional[datetime] = None
    next_run_at: float = 0.0
    run_count: int = 0
    error_count: int = 0
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "interval_seconds": self.interval_seconds,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "run_count": self.run_count,
            "error_count": self.error_count,
            "last_error": self.last_error,
        }


class PeriodicScheduler:
    """
    Background scheduler for fixed-delay jobs.

    Jobs are keyed by name and executed sequentially on one daemon thread.
    """

    def __init__(self, thread_name: str = "httpfuture-scheduler"):
        self._jobs: Dict[str, ScheduledJob] = {}
        self._running = False
        self._condition = threading.Condition()
        self._thread: Optional[threading.Thread] = None
        self._thread_name = thread_name

        logger.info("PeriodicScheduler initialized")

    @property
    def running(self) -> bool:
        return self._running

    def schedule_with_fixed_delay(
        self,
        name: str,
        handler: Callable[[], Any],
        interval_seconds: float,
        initial_delay: Optional[float] = None,
    ) -> str:
        """
        Schedule a job to run repeatedly.

        Args:
            name: Unique job name
            handler: Zero-argument callable
            interval_seconds: Delay between the end of one run and the next
            initial_delay: Delay before the first run, ``interval_seconds``
                by default

        Returns:
            Job name

        Raises:
            ValueError: If the delays are invalid or the name is taken
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        delay = interval_seconds if initial_delay is None else initial_delay
        if delay < 0:
            raise ValueError("initial_delay must not be negative")

        with self._condition:
            if name in self._jobs:
                raise ValueError(f"Job {name} is already scheduled")
            self._jobs[name] = ScheduledJob(
                name=name,
                handler=handler,
                interval_seconds=interval_seconds,
                next_run_at=time.monotonic() + delay,
            )
            self._condition.notify_all()

        logger.info(f"Scheduled job: {name}, interval={interval_seconds}s")
        return name

    def cancel(self, name: str) -> bool:
        """
        Cancel a scheduled job. A run already in progress completes.

        Returns:
            True if the job was found and cancelled
        """
        with self._condition:
            job = self._jobs.pop(name, None)
            if job is None:
                return False
            job.status = JobStatus.CANCELLED
            self._condition.notify_all()

        logger.info(f"Cancelled job: {name}")
        return True

    def get_job(self, name: str) -> Optional[ScheduledJob]:
        with self._condition:
            return self._jobs.get(name)

    def list_jobs(self) -> List[Dict[str, Any]]:
        with self._condition:
            return [job.to_dict() for job in self._jobs.values()]

    def start(self) -> None:
        """Start the scheduler thread."""
        with self._condition:
            if self._running:
                logger.warning("Scheduler already running")
                return
            self._running = True
            self._thread = threading.Thread(target=self._scheduler_loop, name=self._thread_name, daemon=True)
            self._thread.start()

        logger.info("PeriodicScheduler started")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the scheduler thread and wait for it to exit."""
        with self._condition:
            if not self._running:
                return
            self._running = False
            self._condition.notify_all()
            thread = self._thread
            self._thread = None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("PeriodicScheduler stopped")

    def _scheduler_loop(self) -> None:
        while True:
            with self._condition:
                job = self._next_due_job()
                while self._running and job is None:
                    self._condition.wait(self._seconds_until_next_run())
                    job = self._next_due_job()
                if not self._running:
                    return
                job.status = JobStatus.RUNNING

            self._run_job(job)

    def _next_due_job(self) -> Optional[ScheduledJob]:
        now = time.monotonic()
        due = [job for job in self._jobs.values() if job.next_run_at <= now]
        if not due:
            return None
        return min(due, key=lambda job: job.next_run_at)

    def _seconds_until_next_run(self) -> Optional[float]:
        if not self._jobs:
            return None
        next_run_at = min(job.next_run_at for job in self._jobs.values())
        return max(0.0, next_run_at - time.monotonic())

    def _run_job(self, job: ScheduledJob) -> None:
        logger.debug(f"Running job: {job.name}")
        job.last_run = datetime.now()
        try:
            job.handler()
        except Exception as e:
            with self._condition:
                job.error_count += 1
                job.last_error = str(e)
                job.status = JobStatus.FAILED
            logger.error(f"Job {job.name} failed: {e}", exc_info=True)
        else:
            with self._condition:
                job.status = JobStatus.COMPLETED
        finally:
            with self._condition:
                job.run_count += 1
                job.next_run_at = time.monotonic() + job.interval_seconds
                if job.name not in self._jobs:
                    job.status = JobStatus.CANCELLED
