"""In-process task queue: store, admission, reconciliation and fan-out."""

from .admission import AdmissionController
from .models import (
    AspectRatio,
    Cancelled,
    Completed,
    Failed,
    JobReport,
    Task,
    TaskEvent,
    TaskOptions,
    TaskResult,
    TaskStatus,
)
from .notifier import Notifier
from .ports import JobSubmitter
from .reconciler import CompletionReconciler
from .retention import RetentionSweeper
from .scheduler import Scheduler
from .store import TaskStore

__all__ = [
    "AdmissionController",
    "AspectRatio",
    "Cancelled",
    "Completed",
    "CompletionReconciler",
    "Failed",
    "JobReport",
    "JobSubmitter",
    "Notifier",
    "RetentionSweeper",
    "Scheduler",
    "Task",
    "TaskEvent",
    "TaskOptions",
    "TaskResult",
    "TaskStatus",
    "TaskStore",
]
