"""Logging setup for the memctx command line.

Command output goes to stdout, so log records are written to a rotating
file under ``LoggingSettings.dir``. Only problems reach stderr, prefixed
with the same ✗ / ⚠ markers the commands print. Rotated files older than
``retention_days`` are removed each time logging is configured.
"""

from __future__ import annotations

import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List

from .config import LoggingSettings

LOG_FILENAME = "memctx.log"
HANDLER_NAME = "memctx"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")

_SECONDS_PER_DAY = 86400


def purge_rotated_logs(log_file: Path, retention_days: int) -> List[Path]:
    """Delete rotated copies of ``log_file`` not written within the window.

    Args:
        log_file: Active log file; it is never removed.
        retention_days: Age limit in days. Zero or less keeps everything.

    Returns:
        The removed paths.
    """
    if retention_days <= 0 or not log_file.parent.is_dir():
        return []

    cutoff = time.time() - retention_days * _SECONDS_PER_DAY
    removed = []
    for path in sorted(log_file.parent.glob(f"{log_file.name}.*")):
        try:
            if path.stat().st_mtime >= cutoff:
                continue
            path.unlink()
        except OSError:
            continue
        removed.append(path)
    return removed


class ConsoleFormatter(logging.Formatter):
    """stderr format matching the CLI's status lines.

    Warnings and errors read like command output (``⚠ message``,
    ``✗ message``). Lower levels, only shown with ``--debug``, keep the
    logger name so they can be traced.
    """

    MARKERS = {
        logging.WARNING: "⚠",
        logging.ERROR: "✗",
        logging.CRITICAL: "✗",
    }

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        marker = self.MARKERS.get(record.levelno)
        if marker:
            return f"{marker} {message}"
        return f"[{record.levelname.lower()}] {record.name}: {message}"


def _remove_installed_handlers(root: logging.Logger) -> None:
    for handler in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(handler)
        handler.close()


def configure_logging(
    settings: LoggingSettings,
    debug: bool = False,
    console: bool = True,
) -> Path:
    """Install the memctx file and console handlers on the root logger.

    Safe to call more than once: handlers from an earlier call are replaced,
    handlers installed by anything else are left alone.

    Args:
        settings: The ``logging`` section of the app config.
        debug: Force debug level (``--debug``); ``settings.debug`` also does.
        console: Whether to echo problems to stderr.

    Returns:
        The path to the active log file.
    """
    debug = debug or settings.debug
    level = logging.DEBUG if debug else logging.INFO

    settings.dir.mkdir(parents=True, exist_ok=True)
    log_file = settings.dir / LOG_FILENAME
    removed = purge_rotated_logs(log_file, settings.retention_days)

    root = logging.getLogger()
    _remove_installed_handlers(root)
    root.setLevel(level)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=settings.max_bytes,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    file_handler.set_name(HANDLER_NAME)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    root.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.set_name(HANDLER_NAME)
        console_handler.setFormatter(ConsoleFormatter())
        console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
        root.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if debug else logging.WARNING)

    logger = logging.getLogger(__name__)
    if removed:
        logger.info(
            "Removed %d rotated log file(s) older than %d days", len(removed), settings.retention_days
        )
    logger.debug("Logging to %s", log_file)
    return log_file
