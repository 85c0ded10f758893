"""Contract of the external generation API as seen by the task core."""

from typing import Protocol

from .models import JobReport, TaskOptions


class JobSubmitter(Protocol):
    """Submits generation jobs and reports on their state.

    Implementations raise ``SubmissionError`` when a job is rejected or the
    service cannot be reached.
    """

    async def submit(self, prompt: str, options: TaskOptions) -> str:
        """Start a job and return its external job id."""
        ...

    async def query(self, external_job_id: str) -> JobReport | None:
        """Current state of a job, or None if the service does not know it."""
        ...
