from __future__ import annotations

from datetime import datetime, timezone

from reviseflow.services.scheduler import ReminderScheduler, seconds_until_next_tick

UTC = timezone.utc


class RecordingOrchestrator:
    def __init__(self, fail_daily: bool = False) -> None:
        self.calls: list[str] = []
        self.fail_daily = fail_daily

    def run_daily(self, now, cancel=None):
        self.calls.append("daily")
        if self.fail_daily:
            raise RuntimeError("database went away")

    def weekly_summary(self, now):
        self.calls.append("weekly")
        return []

    def purge_expired_tokens(self, now):
        self.calls.append("purge")
        return 0


def test_daily_job_runs_every_tick() -> None:
    orchestrator = RecordingOrchestrator()
    scheduler = ReminderScheduler(orchestrator, default_timezone="Asia/Kolkata")

    # Wednesday 2024-06-12 15:30 IST
    ran = scheduler.run_once(datetime(2024, 6, 12, 10, 0, tzinfo=UTC))

    assert ran == ["daily_reminders"]
    assert orchestrator.calls == ["daily"]


def test_weekly_summary_runs_sunday_morning() -> None:
    orchestrator = RecordingOrchestrator()
    scheduler = ReminderScheduler(orchestrator, default_timezone="Asia/Kolkata")

    # Sunday 2024-06-16 08:30 IST
    ran = scheduler.run_once(datetime(2024, 6, 16, 3, 0, tzinfo=UTC))

    assert ran == ["daily_reminders", "weekly_summary"]


def test_token_cleanup_runs_at_local_midnight() -> None:
    orchestrator = RecordingOrchestrator()
    scheduler = ReminderScheduler(orchestrator, default_timezone="Asia/Kolkata")

    # 00:30 IST
    ran = scheduler.run_once(datetime(2024, 6, 12, 19, 0, tzinfo=UTC))

    assert ran == ["daily_reminders", "token_cleanup"]
    assert orchestrator.calls == ["daily", "purge"]


def test_job_failure_does_not_stop_other_jobs() -> None:
    orchestrator = RecordingOrchestrator(fail_daily=True)
    scheduler = ReminderScheduler(orchestrator, default_timezone="Asia/Kolkata")

    scheduler.run_once(datetime(2024, 6, 12, 19, 0, tzinfo=UTC))

    assert orchestrator.calls == ["daily", "purge"]


def test_seconds_until_next_tick_aligns_to_the_hour() -> None:
    assert seconds_until_next_tick(datetime(2024, 6, 12, 10, 59, 30, tzinfo=UTC), 3600) == 30
    assert seconds_until_next_tick(datetime(2024, 6, 12, 10, 0, tzinfo=UTC), 3600) == 3600


def test_stop_ends_run_forever() -> None:
    scheduler = ReminderScheduler(RecordingOrchestrator(), tick_seconds=3600)

    scheduler.start()
    scheduler.stop(timeout=2)

    assert scheduler.stop_event.is_set()
