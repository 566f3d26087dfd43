"""Logging configuration for the API process."""

import logging
import logging.handlers
from pathlib import Path

from core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

_configured = False


def setup_logging(settings: Settings) -> None:
    """Configure the root logger from settings.

    Always logs to stderr; additionally writes a rotating file when
    ``LOG_FILE`` is set. Calling it again only updates the level.
    """
    global _configured

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    if not _configured:
        fmt = logging.Formatter(LOG_FORMAT)

        stream = logging.StreamHandler()
        stream.setFormatter(fmt)
        root.addHandler(stream)

        if settings.LOG_FILE:
            log_path = Path(settings.LOG_FILE).expanduser()
            log_path.parent.mkdir(parents=True, exist_ok=True)
            rotating = logging.handlers.RotatingFileHandler(
                log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
            )
            rotating.setFormatter(fmt)
            root.addHandler(rotating)

        _configured = True

    # route uvicorn records through the root handlers
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.handlers.clear()
        lg.propagate = True
