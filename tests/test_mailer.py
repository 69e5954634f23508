from __future__ import annotations

import smtplib
from datetime import datetime, timezone

import pytest

from reviseflow.domain.entities import DueRevision
from reviseflow.domain.errors import DispatchFailure
from reviseflow.infra.mailer import SmtpNotificationSender, render_daily_reminder

UTC = timezone.utc


def _due(title: str, day: int, notes: str | None = None) -> DueRevision:
    return DueRevision(
        task_id=1,
        task_title=title,
        task_notes=notes,
        task_created_at=None,
        revision_id=f"{title}-r",
        revision_day=day,
        scheduled_date=datetime(2024, 6, 15, 6, 30, tzinfo=UTC),
        is_first_revision=day == 1,
    )


def test_render_lists_every_revision() -> None:
    subject, body = render_daily_reminder(
        "learner",
        [_due("Graphs", 1, "BFS and DFS"), _due("Heaps", 3)],
        "https://reviseflow.app",
    )

    assert subject == "You have 2 revisions due today"
    assert "Good morning learner," in body
    assert "- Graphs (First revision)" in body
    assert "  BFS and DFS" in body
    assert "- Heaps (Day 3 revision)" in body
    assert "https://reviseflow.app/dashboard" in body


def test_render_singular_subject() -> None:
    subject, _ = render_daily_reminder("learner", [_due("Graphs", 2)], "http://localhost")

    assert subject == "You have 1 revision due today"


class RecordingSMTP:
    instances: list["RecordingSMTP"] = []

    def __init__(self, host, port, timeout=None) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls: list[str] = []
        self.messages = []
        RecordingSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.calls.append("quit")

    def starttls(self) -> None:
        self.calls.append("starttls")

    def login(self, username, password) -> None:
        self.calls.append(f"login:{username}")

    def send_message(self, message) -> None:
        self.messages.append(message)


def test_send_builds_one_message(monkeypatch) -> None:
    RecordingSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", RecordingSMTP)
    sender = SmtpNotificationSender(
        host="smtp.example.com",
        port=587,
        sender="ReviseFlow <no-reply@reviseflow.app>",
        username="mailer",
        password="secret",
        timeout=5,
    )

    sender.send("learner@example.com", "learner", [_due("Graphs", 1)])

    smtp = RecordingSMTP.instances[0]
    assert (smtp.host, smtp.port, smtp.timeout) == ("smtp.example.com", 587, 5)
    assert smtp.calls == ["starttls", "login:mailer", "quit"]
    message = smtp.messages[0]
    assert message["To"] == "learner@example.com"
    assert message["Subject"] == "You have 1 revision due today"


def test_transport_errors_become_dispatch_failures(monkeypatch) -> None:
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(smtplib, "SMTP", refuse)
    sender = SmtpNotificationSender(host="localhost", port=2525, sender="noreply@example.com")

    with pytest.raises(DispatchFailure):
        sender.send("learner@example.com", "learner", [_due("Graphs", 1)])
