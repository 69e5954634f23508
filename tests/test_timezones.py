from __future__ import annotations

import logging
from datetime import date, datetime, timezone

import pytest

from reviseflow.domain.errors import InvalidTimezone
from reviseflow.domain.timezones import (
    day_bounds,
    ensure_utc,
    is_local_hour,
    local_date,
    local_day_bounds,
    next_utc_day,
    resolve_zone,
    zone_or_default,
)

UTC = timezone.utc


def test_kolkata_day_bounds() -> None:
    start, end = day_bounds(datetime(2024, 6, 15, 12, 0, tzinfo=UTC), "Asia/Kolkata")

    assert start == datetime(2024, 6, 14, 18, 30, tzinfo=UTC)
    assert end == datetime(2024, 6, 15, 18, 29, 59, 999000, tzinfo=UTC)


def test_day_bounds_uses_local_calendar_date() -> None:
    # 19:00 UTC on the 14th is already 00:30 on the 15th in Kolkata
    bounds = day_bounds(datetime(2024, 6, 14, 19, 0, tzinfo=UTC), "Asia/Kolkata")

    assert bounds == local_day_bounds(date(2024, 6, 15), "Asia/Kolkata")


def test_day_bounds_across_year_boundary() -> None:
    start, end = day_bounds(datetime(2023, 12, 31, 20, 0, tzinfo=UTC), "Asia/Kolkata")

    assert start == datetime(2023, 12, 31, 18, 30, tzinfo=UTC)
    assert end == datetime(2024, 1, 1, 18, 29, 59, 999000, tzinfo=UTC)


def test_day_bounds_on_dst_days() -> None:
    spring_start, spring_end = local_day_bounds(date(2024, 3, 10), "America/New_York")
    fall_start, fall_end = local_day_bounds(date(2024, 11, 3), "America/New_York")

    assert spring_start == datetime(2024, 3, 10, 5, 0, tzinfo=UTC)
    assert spring_end == datetime(2024, 3, 11, 3, 59, 59, 999000, tzinfo=UTC)
    assert fall_start == datetime(2024, 11, 3, 4, 0, tzinfo=UTC)
    assert fall_end == datetime(2024, 11, 4, 4, 59, 59, 999000, tzinfo=UTC)


def test_is_local_hour() -> None:
    # 00:30 UTC is 06:00 IST
    assert is_local_hour(6, "Asia/Kolkata", datetime(2024, 6, 15, 0, 30, tzinfo=UTC))
    assert not is_local_hour(6, "Asia/Kolkata", datetime(2024, 6, 15, 0, 29, tzinfo=UTC))
    assert is_local_hour(6, "UTC", datetime(2024, 6, 15, 6, 59, tzinfo=UTC))


def test_is_local_hour_rejects_out_of_range_hour() -> None:
    with pytest.raises(ValueError):
        is_local_hour(24, "UTC", datetime(2024, 6, 15, tzinfo=UTC))


def test_unknown_timezone_raises() -> None:
    with pytest.raises(InvalidTimezone):
        resolve_zone("Mars/Olympus_Mons")
    with pytest.raises(InvalidTimezone):
        day_bounds(datetime(2024, 6, 15, tzinfo=UTC), "")


def test_zone_or_default_falls_back_with_warning(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        zone = zone_or_default("Not/AZone", "Asia/Kolkata")

    assert zone.key == "Asia/Kolkata"
    assert "Not/AZone" in caplog.text
    assert zone_or_default(None).key == "Asia/Kolkata"


def test_naive_datetimes_are_treated_as_utc() -> None:
    assert ensure_utc(datetime(2024, 6, 15, 1, 0)) == datetime(2024, 6, 15, 1, 0, tzinfo=UTC)
    assert local_date(datetime(2024, 6, 14, 19, 0), "Asia/Kolkata") == date(2024, 6, 15)


def test_next_utc_day_truncates_to_midnight() -> None:
    assert next_utc_day(datetime(2024, 1, 10, 15, 45, tzinfo=UTC)) == datetime(2024, 1, 11, tzinfo=UTC)
