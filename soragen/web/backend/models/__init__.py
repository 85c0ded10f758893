"""Pydantic models for API requests."""

from .requests import (
    CallbackRequest,
    CreateBatchRequest,
    CreateTaskRequest,
    TaskOptionsRequest,
)

__all__ = [
    "CallbackRequest",
    "CreateBatchRequest",
    "CreateTaskRequest",
    "TaskOptionsRequest",
]
