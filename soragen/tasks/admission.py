"""Admission of pending tasks under a concurrency cap.

Each scan walks pending tasks oldest first and admits them one at a time
while a slot is free. The submission call itself runs as a background asyncio
task so a slow generation API never holds up the scan.
"""

import asyncio
import logging
import threading
from datetime import datetime
from typing import Callable

from ..errors import SubmissionError
from .models import Task, TaskStatus, utcnow
from .ports import JobSubmitter
from .store import TaskStore

logger = logging.getLogger(__name__)

PROCESSING_PROGRESS = 10
GENERATING_PROGRESS = 50


class AdmissionController:
    """Bounds the number of tasks that hold an external job at once."""

    def __init__(
        self,
        store: TaskStore,
        submitter: JobSubmitter,
        max_concurrent: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the controller.

        Args:
            store: Task store to admit from.
            submitter: Client for the external generation API.
            max_concurrent: Maximum number of in-flight jobs.
            clock: Source of the current time.
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._store = store
        self._submitter = submitter
        self._max_concurrent = max_concurrent
        self._clock = clock
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()
        self._submissions: set[asyncio.Task] = set()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def holds_slot(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._in_flight

    def try_acquire(self, task_id: str) -> bool:
        """Take a slot for ``task_id`` if one is free."""
        with self._lock:
            if task_id in self._in_flight:
                return True
            if len(self._in_flight) >= self._max_concurrent:
                return False
            self._in_flight.add(task_id)
            return True

    def release(self, task_id: str) -> bool:
        """Free the slot held by ``task_id``. Returns False if it held none."""
        with self._lock:
            if task_id not in self._in_flight:
                return False
            self._in_flight.discard(task_id)
            return True

    async def scan(self) -> list[str]:
        """Admit pending tasks, oldest first, until capacity runs out.

        Capacity is re-checked before every admission since a submission
        can fail and free its slot while the scan is still running.

        Returns:
            Ids of the tasks admitted by this scan.
        """
        admitted: list[str] = []
        for task in self._store.list_by_status(TaskStatus.PENDING):
            if not self.try_acquire(task.id):
                break

            claimed = self._store.compare_and_set(
                task.id,
                TaskStatus.PENDING,
                status=TaskStatus.PROCESSING,
                progress=PROCESSING_PROGRESS,
            )
            if claimed is None:
                self.release(task.id)
                continue

            logger.info(
                "Admitted task %s (%d/%d in flight)",
                task.id,
                self.in_flight_count,
                self._max_concurrent,
            )
            self._spawn_submission(claimed)
            admitted.append(task.id)
        return admitted

    async def wait_for_submissions(self) -> None:
        """Wait until every submission started so far has settled."""
        while self._submissions:
            await asyncio.gather(*list(self._submissions), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel submissions still waiting on the generation API."""
        for submission in list(self._submissions):
            submission.cancel()
        await self.wait_for_submissions()

    def _spawn_submission(self, task: Task) -> None:
        submission = asyncio.create_task(self._submit(task), name=f"submit-{task.id}")
        self._submissions.add(submission)
        submission.add_done_callback(self._submissions.discard)

    async def _submit(self, task: Task) -> None:
        try:
            job_id = await self._submitter.submit(task.prompt, task.options)
        except SubmissionError as e:
            logger.warning("Submission failed for task %s: %s", task.id, e)
            self._fail(task.id, str(e))
            return
        except asyncio.CancelledError:
            self._fail(task.id, "Submission aborted during shutdown")
            raise
        except Exception as e:
            logger.exception("Unexpected error submitting task %s", task.id)
            self._fail(task.id, f"Submission error: {e}")
            return

        updated = self._store.compare_and_set(
            task.id,
            TaskStatus.PROCESSING,
            status=TaskStatus.GENERATING,
            external_job_id=job_id,
            progress=GENERATING_PROGRESS,
            generating_since=self._clock(),
        )
        if updated is None:
            # Cancelled while the request was in flight; the job keeps running
            # upstream but nothing here tracks it anymore.
            logger.info(
                "Task %s left processing before job %s was accepted; ignoring",
                task.id,
                job_id,
            )
            return
        logger.info("Task %s generating as external job %s", task.id, job_id)

    def _fail(self, task_id: str, message: str) -> None:
        failed = self._store.compare_and_set(
            task_id,
            TaskStatus.PROCESSING,
            status=TaskStatus.FAILED,
            error=message,
            progress=0,
        )
        if failed is not None:
            self.release(task_id)
