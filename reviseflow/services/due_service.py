from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Callable

from zoneinfo import ZoneInfo

from reviseflow.domain.due import collect_due, summarize_by_day
from reviseflow.domain.entities import CalendarDay, DueRevision
from reviseflow.domain.errors import ValidationError
from reviseflow.domain.timezones import (
    DEFAULT_TIMEZONE,
    day_bounds,
    ensure_utc,
    local_day_bounds,
    utc_now,
    zone_or_default,
)
from reviseflow.infra.repository import TaskRepository

MAX_OVERVIEW_DAYS = 366
DEFAULT_LIST_LIMIT = 50


def _earliest_first(due: list[DueRevision], limit: int) -> list[DueRevision]:
    if limit < 1:
        raise ValidationError("Limit must be positive")
    return sorted(due, key=lambda item: item.scheduled_date)[:limit]


class DueSetResolver:
    """Answers "which pending revisions fall in this window" for one user.

    The reminder job and the calendar views both go through here so the two
    can never disagree about what is due.
    """

    def __init__(
        self,
        repo: TaskRepository,
        default_timezone: str = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = repo
        self._default_timezone = default_timezone
        self._clock = clock

    def _zone(self, tz: ZoneInfo | str | None) -> ZoneInfo:
        if isinstance(tz, ZoneInfo):
            return tz
        return zone_or_default(tz, self._default_timezone)

    def due_between(
        self,
        user_id: int,
        start: datetime | None,
        end: datetime | None,
        *,
        end_inclusive: bool = True,
    ) -> list[DueRevision]:
        tasks = self._repo.list_active_tasks(user_id)
        return collect_due(tasks, start, end, end_inclusive=end_inclusive)

    def due_today(
        self,
        user_id: int,
        tz: ZoneInfo | str | None = None,
        as_of: datetime | None = None,
    ) -> list[DueRevision]:
        start, end = day_bounds(as_of or self._clock(), self._zone(tz))
        return self.due_between(user_id, start, end)

    def due_on_date(self, user_id: int, day: date, tz: ZoneInfo | str | None = None) -> list[DueRevision]:
        start, end = local_day_bounds(day, self._zone(tz))
        return self.due_between(user_id, start, end)

    def upcoming(
        self,
        user_id: int,
        horizon_days: int = 7,
        now: datetime | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[DueRevision]:
        if horizon_days < 0:
            raise ValidationError("Horizon must not be negative")
        start = ensure_utc(now or self._clock())
        due = self.due_between(user_id, start, start + timedelta(days=horizon_days))
        return _earliest_first(due, limit)

    def overdue(
        self,
        user_id: int,
        now: datetime | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[DueRevision]:
        due = self.due_between(user_id, None, now or self._clock(), end_inclusive=False)
        return _earliest_first(due, limit)

    def calendar_overview(
        self,
        user_id: int,
        start_day: date,
        end_day: date,
        tz: ZoneInfo | str | None = None,
    ) -> list[CalendarDay]:
        if end_day < start_day:
            raise ValidationError("End date must not be before start date")
        if (end_day - start_day).days > MAX_OVERVIEW_DAYS:
            raise ValidationError(f"Date range cannot exceed {MAX_OVERVIEW_DAYS} days")
        tasks = self._repo.list_active_tasks(user_id)
        return summarize_by_day(tasks, start_day, end_day, self._zone(tz))
