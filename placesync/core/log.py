"""Logging setup shared by the CLI and the HTTP entrypoint."""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import List

from placesync.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def configure_logging(settings: Settings, *, log_to_file: bool = True) -> None:
    """Attach a console handler and, optionally, a daily rotating file handler."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if log_to_file:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(
                log_dir.joinpath("agent.log"),
                when="midnight",
                backupCount=settings.log_retention_days,
                encoding="utf-8",
            )
        )

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
