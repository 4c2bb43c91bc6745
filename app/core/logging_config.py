"""
Logging setup for the service.

Installs a stdout handler on the root logger and, when LOG_FILE is
configured, a rotating file handler (5 MB, 5 backups). Called once from
application startup.
"""
import logging
import logging.handlers
import os
import sys

from app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"


def setup_logging() -> None:
    log_level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    log_formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    if settings.LOG_FILE:
        log_dir = os.path.dirname(settings.LOG_FILE)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                settings.LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
            )
            file_handler.setFormatter(log_formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            print(f"Error setting up file logger at {settings.LOG_FILE}: {e}", file=sys.stderr)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(log_formatter)
    root_logger.addHandler(stream_handler)

    logging.info(
        f"Logging setup complete. Level: {logging.getLevelName(log_level)}, "
        f"File: {settings.LOG_FILE or 'disabled'}"
    )
