"""Best-effort fan-out of task state changes to observers."""

import logging
import threading
from typing import Callable

from .models import Task, TaskEvent

logger = logging.getLogger(__name__)

TASK_CREATED = "task_created"
TASK_UPDATE = "task_update"
TASK_COMPLETED = "task_completed"
TASK_DELETED = "task_deleted"

Observer = Callable[[TaskEvent], None]


class Notifier:
    """Broadcasts task events to every registered observer.

    No ordering or delivery guarantee: an observer that raises is logged and
    skipped. Observers that miss an update re-fetch the full task list.
    """

    def __init__(self) -> None:
        self._observers: list[Observer] = []
        self._lock = threading.Lock()

    def subscribe(self, observer: Observer) -> None:
        with self._lock:
            if observer not in self._observers:
                self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def publish(self, event_type: str, task: Task) -> None:
        """Deliver an event to all observers."""
        event = TaskEvent(type=event_type, task=task)
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(event)
            except Exception:
                logger.warning(
                    "Dropped %s for task %s: observer %r failed",
                    event_type,
                    task.id,
                    observer,
                    exc_info=True,
                )
