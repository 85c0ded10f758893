"""Error taxonomy shared by the task core and the web layer."""


class SoragenError(Exception):
    """Base class for all domain errors."""


class ValidationError(SoragenError):
    """A request field is missing or malformed. No task is created or changed."""


class SubmissionError(SoragenError):
    """The generation API rejected the job or could not be reached."""


class TaskNotFoundError(SoragenError):
    """No task matches the given id (or external job id)."""

    def __init__(self, task_id: str, *, external: bool = False):
        self.task_id = task_id
        self.external = external
        label = "external job id" if external else "id"
        super().__init__(f"Task not found for {label}: {task_id}")


class InternalError(SoragenError):
    """Unexpected fault while handling a request."""
