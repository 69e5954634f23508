from __future__ import annotations


class ReviseFlowError(Exception):
    """Base class for errors raised by the scheduling core."""


class ValidationError(ReviseFlowError):
    pass


class InvalidSchedule(ValidationError):
    pass


class InvalidTransition(ValidationError):
    pass


class NotFoundError(ReviseFlowError):
    pass


class TaskNotFound(NotFoundError):
    def __init__(self, task_id: object) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class RevisionNotFound(NotFoundError):
    def __init__(self, revision_id: object) -> None:
        super().__init__(f"Revision not found: {revision_id}")
        self.revision_id = revision_id


class InvalidTimezone(ReviseFlowError):
    def __init__(self, name: object) -> None:
        super().__init__(f"Unknown timezone: {name!r}")
        self.name = name


class DispatchFailure(ReviseFlowError):
    pass


class StaleTaskError(ReviseFlowError):
    """Raised when a task was replaced by someone else since it was read."""

    def __init__(self, task_id: object, version: int) -> None:
        super().__init__(f"Task {task_id} changed since version {version}")
        self.task_id = task_id
        self.version = version
