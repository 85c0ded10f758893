"""Resolution of generating tasks from two independent signals.

A task waiting on the generation API is finished by whichever arrives first:
the webhook callback, or the periodic sweep that queries the job status and
gives up after a grace period. Both go through ``try_complete``, which only
applies a transition while the task is still active, so the loser of the race
is a no-op.
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta
from typing import Callable

from ..errors import TaskNotFoundError, ValidationError
from .admission import AdmissionController
from .models import (
    Cancelled,
    Completed,
    Failed,
    JobReport,
    Outcome,
    Task,
    TaskResult,
    TaskStatus,
    utcnow,
)
from .ports import JobSubmitter
from .store import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_FAIL_MESSAGE = "Generation failed"
TIMEOUT_MESSAGE = "Generation timed out waiting for the video service"


def parse_result(report: JobReport) -> TaskResult:
    """Build a task result from a successful job report.

    Raises:
        ValidationError: If ``resultJson`` is not a JSON object with a
            list of URLs.
    """
    if not report.result_json:
        urls: list[str] = []
    else:
        try:
            payload = json.loads(report.result_json)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValidationError(f"Malformed resultJson: {e}") from e
        if not isinstance(payload, dict):
            raise ValidationError("Malformed resultJson: expected an object")
        urls = payload.get("resultUrls") or []
        if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
            raise ValidationError("Malformed resultJson: resultUrls must be a list of strings")

    return TaskResult(
        urls=list(urls),
        consume_credits=report.consume_credits,
        cost_time=report.cost_time,
        remained_credits=report.remained_credits,
    )


def outcome_from_report(report: JobReport) -> Outcome | None:
    """Map a job report to a terminal outcome, or None while still running."""
    if report.is_success:
        return Completed(parse_result(report))
    if report.is_failure:
        return Failed(report.fail_msg or DEFAULT_FAIL_MESSAGE)
    return None


class CompletionReconciler:
    """Applies terminal transitions exactly once per task."""

    def __init__(
        self,
        store: TaskStore,
        admission: AdmissionController,
        submitter: JobSubmitter,
        status_check_after: float = 120.0,
        generation_timeout: float = 600.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the reconciler.

        Args:
            store: Task store.
            admission: Controller whose slots are released on completion.
            submitter: Client used for fallback status queries.
            status_check_after: Seconds in ``generating`` before the sweep
                starts querying the job status.
            generation_timeout: Seconds in ``generating`` after which the task
                is failed.
            clock: Source of the current time.
        """
        if generation_timeout < status_check_after:
            raise ValueError("generation_timeout must not be shorter than status_check_after")
        self._store = store
        self._admission = admission
        self._submitter = submitter
        self._status_check_after = timedelta(seconds=status_check_after)
        self._generation_timeout = timedelta(seconds=generation_timeout)
        self._clock = clock

    def try_complete(self, task_id: str, outcome: Outcome) -> bool:
        """Move an active task to the terminal state described by ``outcome``.

        Returns:
            True if the transition was applied, False if the task had already
            left the states this outcome can finish.
        """
        if isinstance(outcome, Completed):
            updated = self._store.compare_and_set(
                task_id,
                TaskStatus.GENERATING,
                status=TaskStatus.COMPLETED,
                result=outcome.result,
                progress=100,
            )
        elif isinstance(outcome, Failed):
            updated = self._store.compare_and_set(
                task_id,
                TaskStatus.GENERATING,
                status=TaskStatus.FAILED,
                error=outcome.message,
                progress=0,
            )
        elif isinstance(outcome, Cancelled):
            updated = self._store.compare_and_set(
                task_id,
                (TaskStatus.PROCESSING, TaskStatus.GENERATING),
                status=TaskStatus.CANCELLED,
            )
        else:
            raise TypeError(f"Unknown outcome: {outcome!r}")

        if updated is None:
            return False
        self._admission.release(task_id)
        logger.info("Task %s finished as %s", task_id, updated.status.value)
        return True

    def cancel(self, task_id: str) -> bool:
        """Cancel a processing or generating task.

        The external job is not stopped; its eventual callback is discarded.

        Raises:
            TaskNotFoundError: If the task does not exist.
        """
        self._store.get(task_id)
        return self.try_complete(task_id, Cancelled())

    def handle_report(self, report: JobReport) -> tuple[Task, bool]:
        """Apply a webhook report to the task that owns the external job.

        Returns:
            The task as it stands afterwards and whether a transition applied.

        Raises:
            ValidationError: If the report has no job id or a malformed result.
            TaskNotFoundError: If no task owns the external job id.
        """
        if not report.job_id:
            raise ValidationError("Callback is missing taskId")

        task = self._store.find_by_external_id(report.job_id)
        if task is None:
            logger.info("No task for external job %s; discarding callback", report.job_id)
            raise TaskNotFoundError(report.job_id, external=True)

        outcome = outcome_from_report(report)
        if outcome is None:
            logger.debug("Ignoring non-terminal state %r for task %s", report.state, task.id)
            return task, False

        applied = self.try_complete(task.id, outcome)
        if not applied:
            logger.info(
                "Duplicate or late callback for task %s (status %s)",
                task.id,
                task.status.value,
            )
        return self._store.get(task.id), applied

    async def sweep(self) -> list[str]:
        """Check generating tasks that have waited too long for a callback.

        Returns:
            Ids of tasks finished by this sweep.
        """
        now = self._clock()
        overdue = [
            task
            for task in self._store.list_by_status(TaskStatus.GENERATING)
            if task.external_job_id
            and now - (task.generating_since or task.created_at) > self._status_check_after
        ]
        if not overdue:
            return []

        results = await asyncio.gather(*(self._check(task, now) for task in overdue))
        return [task.id for task, finished in zip(overdue, results) if finished]

    async def _check(self, task: Task, now: datetime) -> bool:
        logger.info("Checking status for task %s (job %s)", task.id, task.external_job_id)
        try:
            report = await self._submitter.query(task.external_job_id)
            outcome = outcome_from_report(report) if report is not None else None
        except Exception:
            logger.warning("Status check failed for task %s", task.id, exc_info=True)
            outcome = None

        if outcome is not None:
            return self.try_complete(task.id, outcome)

        waited = now - (task.generating_since or task.created_at)
        if waited > self._generation_timeout:
            logger.warning(
                "Task %s still generating after %.0fs; failing it",
                task.id,
                waited.total_seconds(),
            )
            return self.try_complete(task.id, Failed(TIMEOUT_MESSAGE))
        return False
