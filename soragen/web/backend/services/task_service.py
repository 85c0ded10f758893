"""Task service: the single entry point the routers talk to.

Wires the store, admission controller, reconciler and retention sweep
together and registers their periodic loops on a scheduler.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Callable

from soragen.config import QueueConfig
from soragen.errors import InternalError, ValidationError
from soragen.kie.client import report_from_payload
from soragen.tasks import (
    AdmissionController,
    CompletionReconciler,
    JobSubmitter,
    Notifier,
    RetentionSweeper,
    Scheduler,
    Task,
    TaskOptions,
    TaskStore,
)
from soragen.tasks.models import utcnow

logger = logging.getLogger(__name__)


class TaskService:
    """Creates, lists, cancels and completes video generation tasks."""

    def __init__(
        self,
        submitter: JobSubmitter,
        config: QueueConfig | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the service.

        Args:
            submitter: Client for the external generation API.
            config: Queue capacity and timing settings.
            notifier: Fan-out for task events. A fresh one is created if omitted.
            clock: Source of the current time, shared by every component.
        """
        self.config = config or QueueConfig()
        self.notifier = notifier or Notifier()
        self._clock = clock

        self.store = TaskStore(notifier=self.notifier, clock=clock)
        self.admission = AdmissionController(
            self.store,
            submitter,
            max_concurrent=self.config.max_concurrent_tasks,
            clock=clock,
        )
        self.reconciler = CompletionReconciler(
            self.store,
            self.admission,
            submitter,
            status_check_after=self.config.status_check_after,
            generation_timeout=self.config.generation_timeout,
            clock=clock,
        )
        self.retention = RetentionSweeper(
            self.store, retention_hours=self.config.retention_hours, clock=clock
        )

        self.scheduler = Scheduler()
        self.scheduler.add("admission", self.config.admission_interval, self.admission.scan)
        self.scheduler.add("reconcile", self.config.reconcile_interval, self.reconciler.sweep)
        self.scheduler.add("retention", self.config.retention_interval, self.retention.sweep)

    def create_task(self, prompt: Any, options: TaskOptions | None = None) -> Task:
        """Queue a new task in ``pending``.

        Raises:
            ValidationError: If the prompt is missing, empty or not a string.
        """
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValidationError("Prompt is required")

        now = self._clock()
        task = Task(
            id=str(uuid.uuid4()),
            prompt=prompt,
            options=options or TaskOptions(),
            created_at=now,
            updated_at=now,
        )
        created = self.store.put(task)
        logger.info("Created task %s", created.id)
        return created

    def create_batch(
        self, prompts: list[Any], options: TaskOptions | None = None
    ) -> list[Task]:
        """Queue one task per prompt, all with the same options.

        The whole batch is validated before any task is created.

        Raises:
            ValidationError: If the batch is empty or any prompt is invalid.
        """
        if not isinstance(prompts, (list, tuple)) or not prompts:
            raise ValidationError("Prompts array is required")
        for index, prompt in enumerate(prompts):
            if not isinstance(prompt, str) or not prompt.strip():
                raise ValidationError(f"Prompt {index + 1} must be a non-empty string")
        return [self.create_task(prompt, options) for prompt in prompts]

    def list_tasks(self) -> list[Task]:
        """All tasks, newest first."""
        return self.store.list_tasks(newest_first=True)

    def get_task(self, task_id: str) -> Task:
        return self.store.get(task_id)

    def cancel_task(self, task_id: str) -> tuple[Task, bool]:
        """Cancel a task if it is processing or generating.

        Returns:
            The task afterwards and whether this call cancelled it.

        Raises:
            TaskNotFoundError: If the task does not exist.
        """
        cancelled = self.reconciler.cancel(task_id)
        return self.store.get(task_id), cancelled

    def handle_callback(self, data: dict[str, Any] | None) -> tuple[Task, bool]:
        """Apply a Kie.ai webhook ``data`` object.

        Raises:
            ValidationError: If ``data`` or its ``taskId`` is missing, or the
                result payload is malformed.
            TaskNotFoundError: If no task owns the reported job.
            InternalError: If the transition could not be applied.
        """
        if not isinstance(data, dict) or not data.get("taskId"):
            raise ValidationError("Invalid callback data")
        report = report_from_payload(data)
        try:
            return self.reconciler.handle_report(report)
        except ValueError as e:
            # The store rejects a bad transition before committing it
            raise InternalError(f"Could not apply callback for job {report.job_id}: {e}") from e

    def stats(self) -> dict[str, int]:
        return {
            "inFlight": self.admission.in_flight_count,
            "maxConcurrent": self.admission.max_concurrent,
            "total": len(self.store),
        }

    def start(self) -> None:
        """Start the periodic loops on the running event loop."""
        self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()
        await self.admission.shutdown()
