from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Sequence

from reviseflow.domain.entities import DueRevision
from reviseflow.domain.errors import DispatchFailure

logger = logging.getLogger(__name__)


def render_daily_reminder(display_name: str, due: Sequence[DueRevision], app_url: str) -> tuple[str, str]:
    count = len(due)
    noun = "revision" if count == 1 else "revisions"
    subject = f"You have {count} {noun} due today"

    lines = [f"Good morning {display_name},", "", f"Here is what is due for revision today ({count}):", ""]
    for item in due:
        label = "First revision" if item.is_first_revision else f"Day {item.revision_day} revision"
        lines.append(f"- {item.task_title} ({label})")
        if item.task_notes:
            lines.append(f"  {item.task_notes}")
    lines.extend(["", f"Open your dashboard: {app_url}/dashboard", "", "Happy revising!"])
    return subject, "\n".join(lines)


@dataclass
class SmtpNotificationSender:
    host: str
    port: int
    sender: str
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    timeout: float = 10.0
    app_url: str = "http://localhost:3000"

    @classmethod
    def from_settings(cls, settings) -> "SmtpNotificationSender":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.mail_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.dispatch_timeout_seconds,
            app_url=settings.app_url,
        )

    def send(self, email: str, display_name: str, due: Sequence[DueRevision]) -> None:
        subject, body = render_daily_reminder(display_name, due, self.app_url)
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = email
        message.set_content(body)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise DispatchFailure(f"Could not send reminder to {email}: {exc}") from exc
        logger.debug("Reminder email sent to %s", email)
