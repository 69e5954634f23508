from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from .enums import ReminderOutcome, RevisionStatus, TaskPriority


@dataclass(frozen=True)
class RevisionEntity:
    id: str
    scheduled_date: datetime
    status: RevisionStatus = RevisionStatus.PENDING
    completed_at: Optional[datetime] = None
    reminders_sent: int = 0
    last_reminder_sent: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == RevisionStatus.PENDING


@dataclass(frozen=True)
class TaskEntity:
    id: int | None
    user_id: int
    title: str
    notes: str | None
    completed_date: datetime
    revisions: tuple[RevisionEntity, ...] = ()
    tags: tuple[str, ...] = ()
    priority: TaskPriority = TaskPriority.MEDIUM
    is_archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 1


@dataclass(frozen=True)
class UserEntity:
    id: int
    email: str
    timezone: str = "Asia/Kolkata"
    email_notifications: bool = True
    is_verified: bool = False

    @property
    def display_name(self) -> str:
        return self.email.split("@", 1)[0]


@dataclass(frozen=True)
class DueRevision:
    task_id: int
    task_title: str
    task_notes: str | None
    task_created_at: Optional[datetime]
    revision_id: str
    revision_day: int
    scheduled_date: datetime
    is_first_revision: bool


@dataclass(frozen=True)
class CalendarDay:
    day: date
    pending: int = 0
    done: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.done + self.skipped


@dataclass(frozen=True)
class UserOutcome:
    user_id: int
    outcome: ReminderOutcome
    revisions: int = 0
    error: str | None = None


@dataclass
class RunReport:
    started_at: datetime
    outcomes: list[UserOutcome] = field(default_factory=list)
    cancelled: bool = False

    def count(self, outcome: ReminderOutcome) -> int:
        return sum(1 for o in self.outcomes if o.outcome == outcome)

    @property
    def sent(self) -> int:
        return self.count(ReminderOutcome.SENT)

    @property
    def skipped(self) -> int:
        return self.count(ReminderOutcome.SKIPPED)

    @property
    def errors(self) -> int:
        return self.count(ReminderOutcome.ERRORED)


@dataclass(frozen=True)
class WeeklySummary:
    user_id: int
    email: str
    tasks_created: int
    revisions_completed: int
