from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import date, datetime

from zoneinfo import ZoneInfo

from .entities import CalendarDay, DueRevision, TaskEntity
from .enums import RevisionStatus
from .timezones import ensure_utc, local_date

SECONDS_PER_DAY = 24 * 60 * 60

# (max elapsed days, ordinal)
ORDINAL_BUCKETS = ((3, 1), (7, 2), (14, 3), (30, 4))
LAST_ORDINAL = 5


def elapsed_days(completed_date: datetime, scheduled_date: datetime) -> int:
    delta = ensure_utc(scheduled_date) - ensure_utc(completed_date)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def revision_ordinal(completed_date: datetime, scheduled_date: datetime) -> int:
    days = elapsed_days(completed_date, scheduled_date)
    for limit, ordinal in ORDINAL_BUCKETS:
        if days <= limit:
            return ordinal
    return LAST_ORDINAL


def collect_due(
    tasks: Iterable[TaskEntity],
    start: datetime | None,
    end: datetime | None,
    *,
    end_inclusive: bool = True,
) -> list[DueRevision]:
    """Pending revisions of non-archived tasks scheduled within ``[start, end]``.

    ``None`` leaves that side unbounded. With ``end_inclusive=False`` the
    range is half-open, which is what the overdue view wants.
    """
    start = ensure_utc(start) if start is not None else None
    end = ensure_utc(end) if end is not None else None
    due = []
    for task in tasks:
        if task.is_archived:
            continue
        for revision in task.revisions:
            if revision.status != RevisionStatus.PENDING:
                continue
            scheduled = ensure_utc(revision.scheduled_date)
            if start is not None and scheduled < start:
                continue
            if end is not None and (scheduled > end if end_inclusive else scheduled >= end):
                continue
            ordinal = revision_ordinal(task.completed_date, scheduled)
            due.append(
                DueRevision(
                    task_id=task.id,
                    task_title=task.title,
                    task_notes=task.notes,
                    task_created_at=task.created_at,
                    revision_id=revision.id,
                    revision_day=ordinal,
                    scheduled_date=scheduled,
                    is_first_revision=ordinal == 1,
                )
            )
    return due


def summarize_by_day(
    tasks: Iterable[TaskEntity],
    start_day: date,
    end_day: date,
    zone: ZoneInfo,
) -> list[CalendarDay]:
    counts: dict[date, dict[RevisionStatus, int]] = {}
    for task in tasks:
        if task.is_archived:
            continue
        for revision in task.revisions:
            day = local_date(revision.scheduled_date, zone)
            if not start_day <= day <= end_day:
                continue
            bucket = counts.setdefault(day, {status: 0 for status in RevisionStatus})
            bucket[revision.status] += 1
    return [
        CalendarDay(
            day=day,
            pending=bucket[RevisionStatus.PENDING],
            done=bucket[RevisionStatus.DONE],
            skipped=bucket[RevisionStatus.SKIPPED],
        )
        for day, bucket in sorted(counts.items())
    ]
