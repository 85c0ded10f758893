"""Pydantic request models for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from soragen.tasks.models import AspectRatio, TaskOptions


class TaskOptionsRequest(BaseModel):
    """Generation options shared by single and batch requests."""

    model_config = ConfigDict(populate_by_name=True)

    aspect_ratio: AspectRatio = Field(
        default=AspectRatio.LANDSCAPE,
        alias="aspectRatio",
        description="Video aspect ratio (landscape or portrait)",
    )
    remove_watermark: bool = Field(
        default=True,
        alias="removeWatermark",
        description="Ask the provider to remove its watermark",
    )

    def to_options(self) -> TaskOptions:
        return TaskOptions(
            aspect_ratio=self.aspect_ratio,
            remove_watermark=self.remove_watermark,
        )


class CreateTaskRequest(BaseModel):
    """Request to queue a single video generation task."""

    prompt: StrictStr = Field(..., min_length=1, description="Video prompt")
    options: TaskOptionsRequest | None = Field(default=None, description="Generation options")

    def task_options(self) -> TaskOptions:
        return (self.options or TaskOptionsRequest()).to_options()


class CreateBatchRequest(BaseModel):
    """Request to queue several prompts with the same options."""

    prompts: list[StrictStr] = Field(..., min_length=1, description="Video prompts")
    options: TaskOptionsRequest | None = Field(default=None, description="Generation options")

    def task_options(self) -> TaskOptions:
        return (self.options or TaskOptionsRequest()).to_options()


class CallbackRequest(BaseModel):
    """Webhook body posted by Kie.ai when a job finishes.

    ``data`` is kept loosely typed: it is validated by the task service so
    that a bad payload is reported without touching any task.
    """

    data: dict[str, Any] | None = None
