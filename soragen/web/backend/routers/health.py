"""Health check router."""

from typing import Any

from fastapi import APIRouter

from ..dependencies import TaskServiceDep, WebSocketManagerDep

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check(service: TaskServiceDep, ws_manager: WebSocketManagerDep) -> dict[str, Any]:
    """Health check endpoint with queue occupancy."""
    return {
        "status": "ok",
        **service.stats(),
        "connections": ws_manager.connection_count,
    }
