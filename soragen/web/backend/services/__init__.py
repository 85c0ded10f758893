"""Service layer for the web backend.

Services wrap the task core to provide a clean interface for API endpoints.
"""

from .task_service import TaskService

__all__ = ["TaskService"]
