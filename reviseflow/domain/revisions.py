"""Lifecycle rules for a single revision.

Every function takes the task's revisions as a tuple and returns a new tuple;
callers persist the result by replacing the whole task.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable

from .entities import RevisionEntity
from .enums import RevisionAction, RevisionStatus
from .errors import InvalidTransition, RevisionNotFound, ValidationError
from .schedule import validate_schedule
from .timezones import ensure_utc, next_utc_day

Revisions = tuple[RevisionEntity, ...]


def find_index(revisions: Revisions, revision_id: str) -> int:
    for index, revision in enumerate(revisions):
        if revision.id == revision_id:
            return index
    raise RevisionNotFound(revision_id)


def get_revision(revisions: Revisions, revision_id: str) -> RevisionEntity:
    return revisions[find_index(revisions, revision_id)]


def _swap(revisions: Revisions, index: int, revision: RevisionEntity) -> Revisions:
    return revisions[:index] + (revision,) + revisions[index + 1:]


def mark_done(revisions: Revisions, revision_id: str, now: datetime) -> Revisions:
    index = find_index(revisions, revision_id)
    current = revisions[index]
    if current.status not in (RevisionStatus.PENDING, RevisionStatus.DONE):
        raise InvalidTransition(f"Cannot mark a {current.status} revision as done")
    updated = replace(current, status=RevisionStatus.DONE, completed_at=ensure_utc(now))
    return _swap(revisions, index, updated)


def skip(revisions: Revisions, revision_id: str) -> Revisions:
    index = find_index(revisions, revision_id)
    current = revisions[index]
    if current.status not in (RevisionStatus.PENDING, RevisionStatus.SKIPPED):
        raise InvalidTransition(f"Cannot skip a {current.status} revision")
    updated = replace(current, status=RevisionStatus.SKIPPED, completed_at=None)
    return _swap(revisions, index, updated)


def postpone(revisions: Revisions, revision_id: str) -> tuple[Revisions, datetime]:
    """Move a revision to UTC midnight of the day after its scheduled date."""
    index = find_index(revisions, revision_id)
    current = revisions[index]
    new_date = next_utc_day(current.scheduled_date)
    updated = replace(
        current,
        scheduled_date=new_date,
        status=RevisionStatus.PENDING,
        completed_at=None,
    )
    return _swap(revisions, index, updated), new_date


def reschedule(
    revisions: Revisions,
    revision_id: str,
    new_date: datetime,
    completed_date: datetime,
) -> Revisions:
    index = find_index(revisions, revision_id)
    updated = replace(
        revisions[index],
        scheduled_date=ensure_utc(new_date),
        status=RevisionStatus.PENDING,
        completed_at=None,
    )
    validate_schedule(completed_date, [updated])
    return _swap(revisions, index, updated)


def apply_action(
    revisions: Revisions,
    revision_id: str,
    action: RevisionAction | str,
    now: datetime,
) -> tuple[Revisions, datetime | None]:
    """Apply a user action; the second value is the new date for postponements."""
    try:
        action = RevisionAction(action)
    except ValueError as exc:
        raise ValidationError(f"Unsupported revision status: {action!r}") from exc

    if action == RevisionAction.POSTPONED:
        return postpone(revisions, revision_id)
    if action == RevisionAction.SKIPPED:
        return skip(revisions, revision_id), None
    return mark_done(revisions, revision_id, now), None


def record_reminder(revisions: Revisions, revision_ids: Iterable[str], sent_at: datetime) -> Revisions:
    wanted = set(revision_ids)
    return tuple(
        replace(r, reminders_sent=r.reminders_sent + 1, last_reminder_sent=ensure_utc(sent_at))
        if r.id in wanted
        else r
        for r in revisions
    )
