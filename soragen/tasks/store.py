"""In-memory task store.

Process-lifetime only: everything is lost on restart. All access goes through
a lock because FastAPI runs sync endpoints on a worker thread pool while the
scheduler mutates tasks from the event loop.
"""

import dataclasses
import threading
from datetime import datetime
from typing import Any, Callable, Iterable

from ..errors import TaskNotFoundError
from .models import TRANSITIONS, Task, TaskStatus, utcnow
from .notifier import TASK_COMPLETED, TASK_CREATED, TASK_DELETED, TASK_UPDATE, Notifier

_MUTABLE_FIELDS = frozenset(
    {"status", "external_job_id", "progress", "result", "error", "generating_since"}
)


class TaskStore:
    """Mapping from task id to task record."""

    def __init__(
        self,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._tasks: dict[str, Task] = {}
        self._lock = threading.Lock()
        self._notifier = notifier
        self._clock = clock

    def put(self, task: Task) -> Task:
        """Insert a new task. Ids are never reused."""
        with self._lock:
            if task.id in self._tasks:
                raise ValueError(f"Task already exists: {task.id}")
            stored = dataclasses.replace(task)
            self._tasks[task.id] = stored
            snapshot = dataclasses.replace(stored)
        self._publish(TASK_CREATED, snapshot)
        return snapshot

    def get(self, task_id: str) -> Task:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            return dataclasses.replace(task)

    def list_tasks(self, *, newest_first: bool = False) -> list[Task]:
        """All tasks ordered by creation time (oldest first by default)."""
        with self._lock:
            tasks = [dataclasses.replace(t) for t in self._tasks.values()]
        # sorted() is stable, so ties keep insertion order
        tasks = sorted(tasks, key=lambda t: t.created_at)
        if newest_first:
            tasks.reverse()
        return tasks

    def list_by_status(self, status: TaskStatus) -> list[Task]:
        return [t for t in self.list_tasks() if t.status == status]

    def find_by_external_id(self, external_job_id: str) -> Task | None:
        with self._lock:
            for task in self._tasks.values():
                if task.external_job_id == external_job_id:
                    return dataclasses.replace(task)
        return None

    def delete(self, task_id: str) -> Task:
        with self._lock:
            task = self._tasks.pop(task_id, None)
        if task is None:
            raise TaskNotFoundError(task_id)
        self._publish(TASK_DELETED, task)
        return task

    def delete_many(self, task_ids: Iterable[str]) -> int:
        removed = 0
        for task_id in task_ids:
            try:
                self.delete(task_id)
            except TaskNotFoundError:
                continue
            removed += 1
        return removed

    def compare_and_set(
        self,
        task_id: str,
        expected: TaskStatus | Iterable[TaskStatus],
        **changes: Any,
    ) -> Task | None:
        """Apply ``changes`` only if the task's status is one of ``expected``.

        Returns the updated snapshot, or None when the task is gone or its
        status no longer matches. This is the only way stored tasks change.
        """
        if isinstance(expected, TaskStatus):
            expected = {expected}
        else:
            expected = set(expected)

        unknown = set(changes) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot change task fields: {sorted(unknown)}")

        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.status not in expected:
                return None

            new_status = changes.get("status", task.status)
            if new_status != task.status and new_status not in TRANSITIONS[task.status]:
                raise ValueError(
                    f"Illegal transition {task.status.value} -> {new_status.value}"
                )

            updated = dataclasses.replace(task, **changes, updated_at=self._clock())
            _check_invariants(updated)
            self._tasks[task_id] = updated
            snapshot = dataclasses.replace(updated)

        event = TASK_COMPLETED if snapshot.status.is_terminal else TASK_UPDATE
        self._publish(event, snapshot)
        return snapshot

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def _publish(self, event_type: str, task: Task) -> None:
        if self._notifier is not None:
            self._notifier.publish(event_type, task)


def _check_invariants(task: Task) -> None:
    if (task.result is not None) != (task.status == TaskStatus.COMPLETED):
        raise ValueError(f"Task {task.id}: result must be set iff completed")
    if (task.error is not None) != (task.status == TaskStatus.FAILED):
        raise ValueError(f"Task {task.id}: error must be set iff failed")
