from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Iterable

from reviseflow.domain import revisions as revision_rules
from reviseflow.domain.entities import RevisionEntity, TaskEntity
from reviseflow.domain.enums import RevisionAction, TaskPriority
from reviseflow.domain.errors import StaleTaskError, TaskNotFound, ValidationError
from reviseflow.domain.filters import TaskFilters
from reviseflow.domain.schedule import (
    build_schedule,
    generate_from_items,
    parse_instant,
    validate_schedule,
)
from reviseflow.domain.timezones import utc_now
from reviseflow.infra.repository import TaskRepository

logger = logging.getLogger(__name__)

TITLE_MAX = 200
NOTES_MAX = 1000
MAX_REPLACE_ATTEMPTS = 3
LOCK_STRIPES = 64


@dataclass(frozen=True)
class RevisionUpdate:
    task: TaskEntity
    revision: RevisionEntity
    new_date: datetime | None = None


class TaskService:
    def __init__(
        self,
        repo: TaskRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = repo
        self._clock = clock
        self._locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))

    def list_tasks(self, user_id: int, filters: TaskFilters | None = None) -> list[TaskEntity]:
        return self._repo.list_tasks(user_id, filters or TaskFilters())

    def count_tasks(self, user_id: int, filters: TaskFilters | None = None) -> int:
        return self._repo.count_tasks(user_id, filters or TaskFilters())

    def get_task(self, user_id: int, task_id: int) -> TaskEntity:
        task = self._repo.get_task(task_id, user_id)
        if not task:
            raise TaskNotFound(task_id)
        return task

    def create_task(self, user_id: int, data: dict) -> TaskEntity:
        normalized = self._normalize_data(data, partial=False)
        completed_date = normalized["completed_date"]
        task = TaskEntity(
            id=None,
            user_id=user_id,
            title=normalized["title"],
            notes=normalized.get("notes"),
            completed_date=completed_date,
            revisions=tuple(build_schedule(completed_date, data.get("revisions"))),
            tags=normalized.get("tags", ()),
            priority=normalized.get("priority", TaskPriority.MEDIUM),
        )
        created = self._repo.create_task(task)
        logger.info("Task %s created for user %s with %d revisions", created.id, user_id, len(created.revisions))
        return created

    def update_task(self, user_id: int, task_id: int, data: dict) -> TaskEntity:
        normalized = self._normalize_data(data, partial=True)
        items = data.get("revisions")

        def apply(task: TaskEntity) -> TaskEntity:
            updated = replace(task, **normalized)
            if items is not None:
                updated = replace(
                    updated,
                    revisions=tuple(generate_from_items(updated.completed_date, items)),
                )
            else:
                validate_schedule(updated.completed_date, updated.revisions)
            return updated

        return self._mutate(user_id, task_id, apply)

    def replace_schedule(self, user_id: int, task_id: int, items: Iterable[Any]) -> TaskEntity:
        items = list(items)

        def apply(task: TaskEntity) -> TaskEntity:
            return replace(task, revisions=tuple(generate_from_items(task.completed_date, items)))

        return self._mutate(user_id, task_id, apply)

    def archive_task(self, user_id: int, task_id: int, archived: bool = True) -> TaskEntity:
        task = self._repo.set_archived(task_id, user_id, archived)
        if not task:
            raise TaskNotFound(task_id)
        return task

    def delete_task(self, user_id: int, task_id: int) -> None:
        if not self._repo.delete_task(task_id, user_id):
            raise TaskNotFound(task_id)
        logger.info("Task %s deleted for user %s", task_id, user_id)

    def update_revision_status(
        self,
        user_id: int,
        task_id: int,
        revision_id: str,
        status: RevisionAction | str = RevisionAction.DONE,
    ) -> RevisionUpdate:
        outcome: dict[str, datetime | None] = {}

        def apply(task: TaskEntity) -> TaskEntity:
            revisions, new_date = revision_rules.apply_action(
                task.revisions, revision_id, status, self._clock()
            )
            outcome["new_date"] = new_date
            return replace(task, revisions=revisions)

        task = self._mutate(user_id, task_id, apply)
        new_date = outcome.get("new_date")
        if new_date is not None:
            logger.info("Revision %s of task %s postponed to %s", revision_id, task_id, new_date.isoformat())
        return RevisionUpdate(
            task=task,
            revision=revision_rules.get_revision(task.revisions, revision_id),
            new_date=new_date,
        )

    def reschedule_revision(self, user_id: int, task_id: int, revision_id: str, new_date: Any) -> RevisionUpdate:
        scheduled = parse_instant(new_date)

        def apply(task: TaskEntity) -> TaskEntity:
            return replace(
                task,
                revisions=revision_rules.reschedule(
                    task.revisions, revision_id, scheduled, task.completed_date
                ),
            )

        task = self._mutate(user_id, task_id, apply)
        return RevisionUpdate(
            task=task,
            revision=revision_rules.get_revision(task.revisions, revision_id),
            new_date=scheduled,
        )

    def record_reminders(self, task_id: int, revision_ids: Iterable[str], sent_at: datetime) -> TaskEntity:
        revision_ids = list(revision_ids)

        def apply(task: TaskEntity) -> TaskEntity:
            return replace(task, revisions=revision_rules.record_reminder(task.revisions, revision_ids, sent_at))

        return self._mutate(None, task_id, apply)

    def get_stats(
        self,
        user_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, int]:
        return self._repo.get_stats(user_id, start, end)

    def _lock_for(self, task_id: int) -> threading.Lock:
        return self._locks[hash(task_id) % LOCK_STRIPES]

    def _mutate(
        self,
        user_id: int | None,
        task_id: int,
        apply: Callable[[TaskEntity], TaskEntity],
    ) -> TaskEntity:
        """Read, transform and replace a task, retrying when another writer won."""
        with self._lock_for(task_id):
            for attempt in range(1, MAX_REPLACE_ATTEMPTS + 1):
                task = self._repo.get_task(task_id, user_id)
                if not task:
                    raise TaskNotFound(task_id)
                try:
                    return self._repo.replace_task(apply(task))
                except StaleTaskError:
                    if attempt == MAX_REPLACE_ATTEMPTS:
                        raise
                    logger.warning("Task %s changed concurrently, retrying (%d)", task_id, attempt)
        raise AssertionError("unreachable")

    def _normalize_data(self, data: dict, partial: bool) -> dict:
        normalized: dict[str, Any] = {}

        if "title" in data or not partial:
            title = (data.get("title") or "").strip()
            if not title:
                raise ValidationError("Task title is required")
            if len(title) > TITLE_MAX:
                raise ValidationError(f"Task title cannot exceed {TITLE_MAX} characters")
            normalized["title"] = title

        if "notes" in data:
            notes = (data.get("notes") or "").strip()
            if len(notes) > NOTES_MAX:
                raise ValidationError(f"Notes cannot exceed {NOTES_MAX} characters")
            normalized["notes"] = notes or None

        if "completed_date" in data or not partial:
            if data.get("completed_date") is None:
                raise ValidationError("Completed date is required")
            normalized["completed_date"] = parse_instant(data["completed_date"])

        if "tags" in data:
            tags = data.get("tags") or []
            if not isinstance(tags, (list, tuple)) or not all(isinstance(tag, str) for tag in tags):
                raise ValidationError("Tags must be a list of strings")
            normalized["tags"] = tuple(dict.fromkeys(tag.strip().lower() for tag in tags if tag.strip()))

        if "priority" in data:
            try:
                normalized["priority"] = TaskPriority(data["priority"])
            except ValueError as exc:
                raise ValidationError("Priority must be low, medium, or high") from exc

        return normalized
