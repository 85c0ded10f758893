"""Kie.ai webhook router."""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, status

from soragen.errors import TaskNotFoundError, ValidationError

from ..dependencies import TaskServiceDep
from ..models.requests import CallbackRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/callback", tags=["callback"])


@router.post("")
def receive_callback(request: CallbackRequest, service: TaskServiceDep) -> dict[str, Any]:
    """Receive a job completion notice from Kie.ai."""
    try:
        task, applied = service.handle_callback(request.data)
    except ValidationError as e:
        logger.warning("Rejected callback: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except TaskNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return {
        "message": "Callback processed" if applied else "Callback ignored",
        "applied": applied,
        "taskId": task.id,
        "status": task.status.value,
    }
