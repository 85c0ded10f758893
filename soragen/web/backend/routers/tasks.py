"""Video generation task router."""

from typing import Any

from fastapi import APIRouter, HTTPException, status

from soragen.errors import TaskNotFoundError, ValidationError

from ..dependencies import TaskServiceDep
from ..models.requests import CreateBatchRequest, CreateTaskRequest

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("")
def list_tasks(service: TaskServiceDep) -> dict[str, Any]:
    """List all tasks, newest first."""
    return {"tasks": [task.to_dict() for task in service.list_tasks()]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(request: CreateTaskRequest, service: TaskServiceDep) -> dict[str, Any]:
    """Queue a video generation task."""
    try:
        task = service.create_task(request.prompt, request.task_options())
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"task": task.to_dict()}


@router.post("/batch", status_code=status.HTTP_201_CREATED)
def create_batch(request: CreateBatchRequest, service: TaskServiceDep) -> dict[str, Any]:
    """Queue one task per prompt."""
    try:
        tasks = service.create_batch(request.prompts, request.task_options())
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"tasks": [task.to_dict() for task in tasks]}


@router.get("/{task_id}")
def get_task(task_id: str, service: TaskServiceDep) -> dict[str, Any]:
    """Get a single task."""
    try:
        task = service.get_task(task_id)
    except TaskNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task not found: {task_id}",
        )
    return {"task": task.to_dict()}


@router.delete("/{task_id}")
def cancel_task(task_id: str, service: TaskServiceDep) -> dict[str, Any]:
    """Cancel a task that is processing or generating.

    Tasks in any other state are left alone; the response has the same
    shape either way.
    """
    try:
        task, cancelled = service.cancel_task(task_id)
    except TaskNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task not found: {task_id}",
        )
    return {
        "message": "Task cancelled" if cancelled else "Task not active; nothing to cancel",
        "cancelled": cancelled,
        "task": task.to_dict(),
    }
