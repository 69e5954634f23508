from __future__ import annotations

import argparse
import logging
import signal
import sys

from reviseflow.config import SETTINGS
from reviseflow.infra.db import create_db_engine, create_session_factory, init_db
from reviseflow.infra.logging import setup_logging
from reviseflow.infra.mailer import SmtpNotificationSender
from reviseflow.infra.repository import TaskRepository, UserRepository
from reviseflow.services.due_service import DueSetResolver
from reviseflow.services.reminder_service import ReminderOrchestrator
from reviseflow.services.scheduler import ReminderScheduler
from reviseflow.services.task_service import TaskService

logger = logging.getLogger("reviseflow")


def build_orchestrator(session_factory) -> ReminderOrchestrator:
    task_repo = TaskRepository(session_factory)
    return ReminderOrchestrator(
        users=UserRepository(session_factory),
        resolver=DueSetResolver(task_repo, default_timezone=SETTINGS.default_timezone),
        sender=SmtpNotificationSender.from_settings(SETTINGS),
        tasks=TaskService(task_repo),
        task_repo=task_repo,
        reminder_hour=SETTINGS.reminder_hour,
        default_timezone=SETTINGS.default_timezone,
        max_workers=SETTINGS.reminder_max_workers,
        dispatch_timeout=SETTINGS.dispatch_timeout_seconds,
    )


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="reviseflow", description="ReviseFlow reminder worker")
    parser.add_argument("--log-level", help="Override LOG_LEVEL for this run")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables on startup")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="Run the hourly scheduler until interrupted")
    sub.add_parser("tick", help="Run the daily reminder job once")
    sub.add_parser("weekly", help="Run the weekly summary job once")
    sub.add_parser("purge-tokens", help="Clear expired verification and reset tokens")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    setup_logging(level=args.log_level)
    engine = create_db_engine(SETTINGS.database_url)
    try:
        init_db(engine, create_tables=args.create_tables)
    except Exception as exc:  # noqa: BLE001
        logger.error("DB error: %s", exc)
        return 1

    session_factory = create_session_factory(engine)
    orchestrator = build_orchestrator(session_factory)

    if args.command == "tick":
        report = orchestrator.run_daily()
        print(f"sent={report.sent} skipped={report.skipped} errors={report.errors}")
        return 0 if report.errors == 0 else 2
    if args.command == "weekly":
        for summary in orchestrator.weekly_summary():
            print(f"{summary.email}: {summary.tasks_created} tasks, {summary.revisions_completed} revisions")
        return 0
    if args.command == "purge-tokens":
        print(orchestrator.purge_expired_tokens())
        return 0

    scheduler = ReminderScheduler(
        orchestrator,
        tick_seconds=SETTINGS.tick_seconds,
        default_timezone=SETTINGS.default_timezone,
    )

    def _shutdown(signum, _frame) -> None:
        logger.info("Received signal %s, stopping scheduler", signum)
        scheduler.stop_event.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)
    scheduler.run_forever()
    return 0


if __name__ == "__main__":
    sys.exit(main())
