"""Periodic removal of old completed tasks."""

import logging
from datetime import datetime, timedelta
from typing import Callable

from .models import TaskStatus, utcnow
from .store import TaskStore

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """Removes completed tasks older than the retention window."""

    def __init__(
        self,
        store: TaskStore,
        retention_hours: float = 24.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._retention = timedelta(hours=retention_hours)
        self._clock = clock

    async def sweep(self) -> int:
        cutoff = self._clock() - self._retention
        expired = [
            task.id
            for task in self._store.list_by_status(TaskStatus.COMPLETED)
            if task.created_at < cutoff
        ]
        removed = self._store.delete_many(expired)
        logger.info("Cleaned up %d old tasks", removed)
        return removed
