"""API routers for the web backend."""

from .callback import router as callback_router
from .health import router as health_router
from .tasks import router as tasks_router

__all__ = [
    "callback_router",
    "health_router",
    "tasks_router",
]
