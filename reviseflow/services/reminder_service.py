from __future__ import annotations

import logging
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Callable, Protocol, Sequence

from reviseflow.domain.entities import DueRevision, RunReport, UserEntity, UserOutcome, WeeklySummary
from reviseflow.domain.enums import ReminderOutcome
from reviseflow.domain.errors import DispatchFailure
from reviseflow.domain.timezones import DEFAULT_TIMEZONE, ensure_utc, is_local_hour, utc_now, zone_or_default
from reviseflow.infra.repository import TaskRepository, UserRepository

from .due_service import DueSetResolver
from .task_service import TaskService

logger = logging.getLogger(__name__)

WEEKLY_WINDOW = timedelta(days=7)


class NotificationSender(Protocol):
    def send(self, email: str, display_name: str, due: Sequence[DueRevision]) -> None: ...


class ReminderOrchestrator:
    def __init__(
        self,
        users: UserRepository,
        resolver: DueSetResolver,
        sender: NotificationSender,
        tasks: TaskService | None = None,
        task_repo: TaskRepository | None = None,
        reminder_hour: int = 6,
        default_timezone: str = DEFAULT_TIMEZONE,
        max_workers: int = 1,
        dispatch_timeout: float = 10.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._users = users
        self._resolver = resolver
        self._sender = sender
        self._tasks = tasks
        self._task_repo = task_repo
        self._reminder_hour = reminder_hour
        self._default_timezone = default_timezone
        self._max_workers = max(int(max_workers), 1)
        self._dispatch_timeout = dispatch_timeout
        self._clock = clock

    def run_daily(self, now: datetime | None = None, cancel: threading.Event | None = None) -> RunReport:
        now = ensure_utc(now or self._clock())
        report = RunReport(started_at=now)
        users = self._users.list_reminder_candidates()
        logger.info("Starting daily reminder job for %d eligible users", len(users))

        if self._max_workers == 1:
            for user in users:
                if cancel is not None and cancel.is_set():
                    report.cancelled = True
                    break
                report.outcomes.append(self._process_user(user, now))
        else:
            with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="reminder-user") as pool:
                futures = [pool.submit(self._process_user_unless_cancelled, user, now, cancel) for user in users]
                for future in futures:
                    outcome = future.result()
                    if outcome is None:
                        report.cancelled = True
                    else:
                        report.outcomes.append(outcome)

        logger.info(
            "Daily reminder job completed. Sent: %d, Skipped: %d, Errors: %d%s",
            report.sent,
            report.skipped,
            report.errors,
            " (cancelled)" if report.cancelled else "",
        )
        return report

    def _process_user_unless_cancelled(
        self,
        user: UserEntity,
        now: datetime,
        cancel: threading.Event | None,
    ) -> UserOutcome | None:
        if cancel is not None and cancel.is_set():
            return None
        return self._process_user(user, now)

    def _process_user(self, user: UserEntity, now: datetime) -> UserOutcome:
        try:
            zone = zone_or_default(user.timezone, self._default_timezone)
            if not is_local_hour(self._reminder_hour, zone, now):
                return UserOutcome(user.id, ReminderOutcome.NOT_DUE)

            due = self._resolver.due_today(user.id, zone, now)
            if not due:
                logger.info("No revisions due today for user %s", user.email)
                return UserOutcome(user.id, ReminderOutcome.SKIPPED)

            self._dispatch(user, due)
            logger.info("Daily reminder sent to %s for %d revisions in %s", user.email, len(due), zone.key)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error processing daily reminder for user %s", user.email)
            return UserOutcome(user.id, ReminderOutcome.ERRORED, error=str(exc))

        self._record_sent(due, now)
        return UserOutcome(user.id, ReminderOutcome.SENT, revisions=len(due))

    def _dispatch(self, user: UserEntity, due: list[DueRevision]) -> None:
        # One thread per send; a hung one is abandoned after the timeout.
        errors: list[Exception] = []

        def send() -> None:
            try:
                self._sender.send(user.email, user.display_name, due)
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        worker = threading.Thread(target=send, name=f"reminder-send-{user.id}", daemon=True)
        worker.start()
        worker.join(self._dispatch_timeout)
        if worker.is_alive():
            raise DispatchFailure(f"Reminder to {user.email} timed out after {self._dispatch_timeout}s")
        if errors:
            raise errors[0]

    def _record_sent(self, due: list[DueRevision], sent_at: datetime) -> None:
        if self._tasks is None:
            return
        by_task: dict[int, list[str]] = defaultdict(list)
        for item in due:
            by_task[item.task_id].append(item.revision_id)
        for task_id, revision_ids in by_task.items():
            try:
                self._tasks.record_reminders(task_id, revision_ids, sent_at)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Could not record reminder for task %s: %s", task_id, exc)

    def weekly_summary(self, now: datetime | None = None) -> list[WeeklySummary]:
        if self._task_repo is None:
            raise RuntimeError("Weekly summary needs a task repository")
        now = ensure_utc(now or self._clock())
        since = now - WEEKLY_WINDOW
        logger.info("Starting weekly summary job...")

        summaries = []
        for user in self._users.list_reminder_candidates():
            try:
                summary = WeeklySummary(
                    user_id=user.id,
                    email=user.email,
                    tasks_created=self._task_repo.count_created_since(user.id, since),
                    revisions_completed=self._task_repo.count_completed_revisions_since(user.id, since),
                )
            except Exception:  # noqa: BLE001
                logger.exception("Error processing weekly summary for user %s", user.email)
                continue
            if summary.tasks_created or summary.revisions_completed:
                logger.info(
                    "Weekly summary for %s: %d tasks, %d revisions",
                    user.email,
                    summary.tasks_created,
                    summary.revisions_completed,
                )
                summaries.append(summary)
        return summaries

    def purge_expired_tokens(self, now: datetime | None = None) -> int:
        cleared = self._users.purge_expired_tokens(ensure_utc(now or self._clock()))
        logger.info("Cleaned up %d expired tokens", cleared)
        return cleared
