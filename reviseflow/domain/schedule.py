from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta
from typing import Any

from .entities import RevisionEntity
from .enums import RevisionStatus
from .errors import InvalidSchedule, ValidationError
from .timezones import UTC, ensure_utc

DEFAULT_OFFSETS_DAYS = (3, 7)


def new_revision_id() -> str:
    return uuid.uuid4().hex


def parse_instant(value: Any) -> datetime:
    """Coerce a datetime, date or ISO-8601 string into an aware UTC datetime."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError as exc:
            raise ValidationError(f"Invalid date: {value!r}") from exc
    raise ValidationError(f"Invalid date: {value!r}")


def _check_not_before(completed_date: datetime, scheduled: datetime) -> datetime:
    if scheduled < completed_date:
        raise InvalidSchedule(
            f"Revision date {scheduled.isoformat()} is before completion date "
            f"{completed_date.isoformat()}"
        )
    return scheduled


def generate_default(completed_date: datetime) -> list[RevisionEntity]:
    anchor = ensure_utc(completed_date)
    return [
        RevisionEntity(id=new_revision_id(), scheduled_date=anchor + timedelta(days=days))
        for days in DEFAULT_OFFSETS_DAYS
    ]


def _scheduled_from_item(anchor: datetime, item: Any) -> datetime:
    if isinstance(item, RevisionEntity):
        return ensure_utc(item.scheduled_date)
    if isinstance(item, timedelta):
        return anchor + item
    if isinstance(item, int) and not isinstance(item, bool):
        return anchor + timedelta(days=item)
    if isinstance(item, Mapping):
        raw = item.get("scheduled_date", item.get("scheduledDate"))
        if raw is None:
            raise ValidationError("Revision is missing scheduled_date")
        return parse_instant(raw)
    return parse_instant(item)


def generate_from_items(completed_date: datetime, items: Iterable[Any]) -> list[RevisionEntity]:
    anchor = ensure_utc(completed_date)
    revisions = []
    for item in items:
        scheduled = _check_not_before(anchor, _scheduled_from_item(anchor, item))
        revisions.append(
            RevisionEntity(
                id=new_revision_id(),
                scheduled_date=scheduled,
                status=RevisionStatus.PENDING,
            )
        )
    return revisions


def build_schedule(completed_date: datetime, items: Iterable[Any] | None = None) -> list[RevisionEntity]:
    items = list(items) if items is not None else []
    if not items:
        return generate_default(completed_date)
    return generate_from_items(completed_date, items)


def validate_schedule(completed_date: datetime, revisions: Iterable[RevisionEntity]) -> None:
    anchor = ensure_utc(completed_date)
    for revision in revisions:
        _check_not_before(anchor, ensure_utc(revision.scheduled_date))
