from __future__ import annotations

from enum import StrEnum


class RevisionStatus(StrEnum):
    PENDING = "pending"
    DONE = "done"
    SKIPPED = "skipped"


class RevisionAction(StrEnum):
    DONE = "done"
    SKIPPED = "skipped"
    POSTPONED = "postponed"


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReminderOutcome(StrEnum):
    SENT = "sent"
    SKIPPED = "skipped"
    ERRORED = "errored"
    NOT_DUE = "not_due"
