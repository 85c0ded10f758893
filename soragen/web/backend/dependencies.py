"""Dependency injection for FastAPI."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from .config import WebConfig
from .services.task_service import TaskService
from .websocket.manager import WebSocketManager


@lru_cache
def get_config() -> WebConfig:
    """Get the web configuration (cached)."""
    return WebConfig()


def get_task_service(request: Request) -> TaskService:
    """Get the task service owned by the running app."""
    return request.app.state.task_service


def get_websocket_manager(request: Request) -> WebSocketManager:
    """Get the WebSocket manager owned by the running app."""
    return request.app.state.ws_manager


# Type aliases for cleaner router signatures
TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
WebSocketManagerDep = Annotated[WebSocketManager, Depends(get_websocket_manager)]
