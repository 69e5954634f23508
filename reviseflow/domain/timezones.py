from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidTimezone

logger = logging.getLogger(__name__)

UTC = timezone.utc
DEFAULT_TIMEZONE = "Asia/Kolkata"

# Local end of day is reported with millisecond precision.
END_OF_DAY = time(23, 59, 59, 999000)


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@lru_cache(maxsize=128)
def resolve_zone(name: str) -> ZoneInfo:
    if not isinstance(name, str) or not name.strip():
        raise InvalidTimezone(name)
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidTimezone(name) from exc


def zone_or_default(name: str | None, default: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    if not name:
        return resolve_zone(default)
    try:
        return resolve_zone(name)
    except InvalidTimezone:
        logger.warning("Invalid timezone %r, falling back to %s", name, default)
        return resolve_zone(default)


def _as_zone(tz: ZoneInfo | str) -> ZoneInfo:
    return tz if isinstance(tz, ZoneInfo) else resolve_zone(tz)


def local_date(instant: datetime, tz: ZoneInfo | str) -> date:
    return ensure_utc(instant).astimezone(_as_zone(tz)).date()


def local_day_bounds(day: date, tz: ZoneInfo | str) -> tuple[datetime, datetime]:
    """UTC instants of local 00:00:00.000 and 23:59:59.999 on ``day``.

    Offsets are looked up separately for each end, so days that contain a
    DST transition come out 23 or 25 hours long.
    """
    zone = _as_zone(tz)
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day, END_OF_DAY, tzinfo=zone)
    return start.astimezone(UTC), end.astimezone(UTC)


def day_bounds(instant: datetime, tz: ZoneInfo | str) -> tuple[datetime, datetime]:
    zone = _as_zone(tz)
    return local_day_bounds(local_date(instant, zone), zone)


def is_local_hour(target_hour: int, tz: ZoneInfo | str, instant: datetime) -> bool:
    if not 0 <= target_hour <= 23:
        raise ValueError(f"Hour must be between 0 and 23, got {target_hour}")
    return ensure_utc(instant).astimezone(_as_zone(tz)).hour == target_hour


def utc_midnight(instant: datetime) -> datetime:
    moment = ensure_utc(instant)
    return datetime.combine(moment.date(), time.min, tzinfo=UTC)


def next_utc_day(instant: datetime) -> datetime:
    return utc_midnight(instant) + timedelta(days=1)
