"""Task records and the outcomes that finish them."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union


def utcnow() -> datetime:
    """Default clock for every component."""
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    """Status of a video generation task."""

    PENDING = "pending"
    PROCESSING = "processing"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        """Admitted and holding an in-flight slot."""
        return self in (TaskStatus.PROCESSING, TaskStatus.GENERATING)


TERMINAL_STATUSES = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}
)

# Allowed forward transitions; anything else is rejected by the store.
TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.PROCESSING}),
    TaskStatus.PROCESSING: frozenset(
        {TaskStatus.GENERATING, TaskStatus.FAILED, TaskStatus.CANCELLED}
    ),
    TaskStatus.GENERATING: frozenset(
        {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}
    ),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}


class AspectRatio(str, Enum):
    """Aspect ratios accepted by the generation API."""

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"


@dataclass(frozen=True)
class TaskOptions:
    """Per-task generation options."""

    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE
    remove_watermark: bool = True


@dataclass(frozen=True)
class TaskResult:
    """Artifacts and cost metadata of a completed generation."""

    urls: list[str] = field(default_factory=list)
    consume_credits: float | None = None
    cost_time: float | None = None
    remained_credits: float | None = None


@dataclass
class Task:
    """A video generation task.

    Stored tasks are only ever replaced wholesale by the store; anything
    handed out by the store is a snapshot.
    """

    id: str
    prompt: str
    options: TaskOptions = field(default_factory=TaskOptions)
    status: TaskStatus = TaskStatus.PENDING
    external_job_id: str | None = None
    progress: int = 0
    result: TaskResult | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    generating_since: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase wire form used by the API and WebSocket."""
        result = None
        if self.result is not None:
            result = {
                "urls": list(self.result.urls),
                "consumeCredits": self.result.consume_credits,
                "costTime": self.result.cost_time,
                "remainedCredits": self.result.remained_credits,
            }
        return {
            "id": self.id,
            "prompt": self.prompt,
            "options": {
                "aspectRatio": self.options.aspect_ratio.value,
                "removeWatermark": self.options.remove_watermark,
            },
            "status": self.status.value,
            "externalJobId": self.external_job_id,
            "progress": self.progress,
            "result": result,
            "error": self.error,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class Completed:
    result: TaskResult


@dataclass(frozen=True)
class Failed:
    message: str


@dataclass(frozen=True)
class Cancelled:
    pass


Outcome = Union[Completed, Failed, Cancelled]


@dataclass(frozen=True)
class JobReport:
    """State of an external job, as delivered by webhook or status query.

    Mirrors the ``data`` object of a Kie.ai callback.
    """

    job_id: str
    state: str | None = None
    result_json: str | None = None
    fail_msg: str | None = None
    consume_credits: float | None = None
    cost_time: float | None = None
    remained_credits: float | None = None

    @property
    def is_success(self) -> bool:
        return self.state == "success"

    @property
    def is_failure(self) -> bool:
        return self.state == "fail"


@dataclass(frozen=True)
class TaskEvent:
    """A task state change pushed to observers."""

    type: str
    task: Task

    def to_message(self) -> dict[str, Any]:
        return {"type": self.type, "task": self.task.to_dict()}
