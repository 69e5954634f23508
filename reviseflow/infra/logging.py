from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from reviseflow.config import SETTINGS, PROJECT_ROOT, Settings

QUIET_LOGGERS = ("sqlalchemy.engine", "alembic.runtime.migration")


def setup_logging(settings: Settings = SETTINGS, level: str | None = None) -> None:
    log_dir = PROJECT_ROOT / settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "reviseflow.log"

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(threadName)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(log_file, maxBytes=2_000_000, backupCount=3)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        handlers=[file_handler, console_handler],
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
