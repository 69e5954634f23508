from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from reviseflow.domain.timezones import DEFAULT_TIMEZONE, ensure_utc, utc_now, zone_or_default

from .reminder_service import ReminderOrchestrator

logger = logging.getLogger(__name__)

WEEKLY_SUMMARY_WEEKDAY = 6  # Sunday
WEEKLY_SUMMARY_HOUR = 8
TOKEN_CLEANUP_HOUR = 0


def seconds_until_next_tick(now: datetime, tick_seconds: int) -> float:
    remainder = ensure_utc(now).timestamp() % tick_seconds
    return tick_seconds - remainder


class ReminderScheduler:
    """Fires the reminder jobs on every tick boundary until stopped.

    The daily job runs on every tick and decides per user whether it is their
    reminder hour. Weekly summary and token cleanup run on the tick that
    lands in their hour of the default timezone.
    """

    def __init__(
        self,
        orchestrator: ReminderOrchestrator,
        tick_seconds: int = 3600,
        default_timezone: str = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if tick_seconds <= 0:
            raise ValueError("tick_seconds must be positive")
        self._orchestrator = orchestrator
        self._tick_seconds = tick_seconds
        self._zone = zone_or_default(default_timezone)
        self._clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def stop_event(self) -> threading.Event:
        return self._stop

    def run_once(self, now: datetime | None = None) -> list[str]:
        now = ensure_utc(now or self._clock())
        local = now.astimezone(self._zone)
        ran = []

        self._run_job("daily_reminders", lambda: self._orchestrator.run_daily(now, self._stop))
        ran.append("daily_reminders")

        if local.weekday() == WEEKLY_SUMMARY_WEEKDAY and local.hour == WEEKLY_SUMMARY_HOUR:
            self._run_job("weekly_summary", lambda: self._orchestrator.weekly_summary(now))
            ran.append("weekly_summary")

        if local.hour == TOKEN_CLEANUP_HOUR:
            self._run_job("token_cleanup", lambda: self._orchestrator.purge_expired_tokens(now))
            ran.append("token_cleanup")

        return ran

    def run_forever(self) -> None:
        logger.info("Scheduler started, tick every %ds in %s", self._tick_seconds, self._zone.key)
        while not self._stop.wait(seconds_until_next_tick(self._clock(), self._tick_seconds)):
            self.run_once()
        logger.info("Scheduler stopped")

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run_forever, name="reminder-scheduler", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def _run_job(self, name: str, job: Callable[[], object]) -> None:
        try:
            job()
        except Exception:  # noqa: BLE001
            logger.exception("Error in %s job", name)
