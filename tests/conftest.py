"""Shared test fixtures."""

import pytest

from soragen.config import QueueConfig
from soragen.tasks import (
    AdmissionController,
    CompletionReconciler,
    Notifier,
    Task,
    TaskStore,
)
from soragen.web.backend.services.task_service import TaskService

from fakes import EventRecorder, FakeSubmitter, ManualClock


@pytest.fixture
def clock() -> ManualClock:
    """Provide a clock that tests advance by hand."""
    return ManualClock()


@pytest.fixture
def submitter() -> FakeSubmitter:
    """Provide a scripted job submitter."""
    return FakeSubmitter()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def notifier(recorder: EventRecorder) -> Notifier:
    """Provide a notifier with an event recorder attached."""
    notifier = Notifier()
    notifier.subscribe(recorder)
    return notifier


@pytest.fixture
def store(notifier: Notifier, clock: ManualClock) -> TaskStore:
    return TaskStore(notifier=notifier, clock=clock)


@pytest.fixture
def admission(
    store: TaskStore, submitter: FakeSubmitter, clock: ManualClock
) -> AdmissionController:
    return AdmissionController(store, submitter, max_concurrent=2, clock=clock)


@pytest.fixture
def reconciler(
    store: TaskStore,
    admission: AdmissionController,
    submitter: FakeSubmitter,
    clock: ManualClock,
) -> CompletionReconciler:
    return CompletionReconciler(
        store,
        admission,
        submitter,
        status_check_after=120,
        generation_timeout=600,
        clock=clock,
    )


@pytest.fixture
def make_task(store: TaskStore, clock: ManualClock):
    """Factory that stores a pending task, one second after the previous one."""
    counter = {"n": 0}

    def _make(prompt: str | None = None) -> Task:
        counter["n"] += 1
        clock.advance(1)
        task = Task(
            id=f"task-{counter['n']}",
            prompt=prompt or f"Prompt {counter['n']}",
            created_at=clock(),
            updated_at=clock(),
        )
        return store.put(task)

    return _make


@pytest.fixture
def task_service(submitter: FakeSubmitter, clock: ManualClock) -> TaskService:
    """Provide a fully wired task service with default capacity."""
    return TaskService(submitter, config=QueueConfig(), clock=clock)
