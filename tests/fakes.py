"""Test doubles for the task core."""

import asyncio
from datetime import datetime, timedelta, timezone

from soragen.errors import SubmissionError
from soragen.tasks.models import JobReport, Task, TaskEvent, TaskOptions, TaskStatus


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeSubmitter:
    """Scripted stand-in for the Kie.ai client.

    - Job ids are ``kie_1``, ``kie_2``, ... in submission order
    - Prompts in ``fail_prompts`` are rejected with SubmissionError
    - ``gate`` holds every submission open until it is set
    - ``reports`` answers status queries by job id
    """

    def __init__(self) -> None:
        self.submitted: list[tuple[str, TaskOptions]] = []
        self.fail_prompts: set[str] = set()
        self.gate: asyncio.Event | None = None
        self.reports: dict[str, JobReport] = {}
        self.query_error: Exception | None = None
        self.queried: list[str] = []
        self.open_calls = 0
        self.max_open_calls = 0

    async def submit(self, prompt: str, options: TaskOptions) -> str:
        self.submitted.append((prompt, options))
        job_id = f"kie_{len(self.submitted)}"
        self.open_calls += 1
        self.max_open_calls = max(self.max_open_calls, self.open_calls)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if prompt in self.fail_prompts:
                raise SubmissionError(f"Rejected prompt: {prompt}")
            return job_id
        finally:
            self.open_calls -= 1

    async def query(self, external_job_id: str) -> JobReport | None:
        self.queried.append(external_job_id)
        if self.query_error is not None:
            raise self.query_error
        return self.reports.get(external_job_id)


class EventRecorder:
    """Notifier observer that keeps every event."""

    def __init__(self) -> None:
        self.events: list[TaskEvent] = []

    def __call__(self, event: TaskEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [event.type for event in self.events]


def assert_result_error_invariants(tasks: list[Task]) -> None:
    """result is set iff completed, error is set iff failed."""
    for task in tasks:
        assert (task.result is not None) == (task.status == TaskStatus.COMPLETED), task
        assert (task.error is not None) == (task.status == TaskStatus.FAILED), task


def run_admission(service) -> list[str]:
    """Run one admission tick on a fresh loop and wait for its submissions."""

    async def _tick() -> list[str]:
        admitted = await service.scheduler.run_once("admission")
        await service.admission.wait_for_submissions()
        return admitted

    return asyncio.run(_tick())


def run_reconcile(service) -> list[str]:
    return asyncio.run(service.scheduler.run_once("reconcile"))
