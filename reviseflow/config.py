from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

def _resolve_project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


PROJECT_ROOT = _resolve_project_root()


def load_env() -> None:
    env_name = os.getenv("APP_ENV", "development")
    candidates = [Path.cwd(), PROJECT_ROOT]
    for base in candidates:
        env_path = base / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            break

    for base in candidates:
        env_specific = base / f".env.{env_name}"
        if env_specific.exists():
            load_dotenv(env_specific, override=True)
            break


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    log_dir: str = "logs"
    default_timezone: str = "Asia/Kolkata"
    reminder_hour: int = 6
    tick_seconds: int = 3600
    reminder_max_workers: int = 1
    dispatch_timeout_seconds: float = 10.0
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    mail_from: str = "ReviseFlow <no-reply@reviseflow.app>"
    app_url: str = "http://localhost:3000"


load_env()

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set. Create a .env file with your connection string.")

SETTINGS = Settings(
    database_url=DATABASE_URL,
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_dir=os.getenv("LOG_DIR", "logs"),
    default_timezone=os.getenv("DEFAULT_TIMEZONE", "Asia/Kolkata").strip() or "Asia/Kolkata",
    reminder_hour=int(os.getenv("REMINDER_HOUR", "6")),
    tick_seconds=int(os.getenv("TICK_SECONDS", "3600")),
    reminder_max_workers=int(os.getenv("REMINDER_MAX_WORKERS", "1")),
    dispatch_timeout_seconds=float(os.getenv("DISPATCH_TIMEOUT_SECONDS", "10")),
    smtp_host=os.getenv("SMTP_HOST", "localhost"),
    smtp_port=int(os.getenv("SMTP_PORT", "587")),
    smtp_username=os.getenv("SMTP_USERNAME", "").strip() or None,
    smtp_password=os.getenv("SMTP_PASSWORD", "") or None,
    smtp_use_tls=_env_bool("SMTP_USE_TLS", True),
    mail_from=os.getenv("MAIL_FROM", "ReviseFlow <no-reply@reviseflow.app>"),
    app_url=os.getenv("APP_URL", "http://localhost:3000").rstrip("/"),
)
