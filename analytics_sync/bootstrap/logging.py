from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, TextIO

from analytics_sync.core.observability import get_correlation_id, get_group_name

DEFAULT_LOG_MAX_BYTES = 1_048_576
DEFAULT_LOG_BACKUP_COUNT = 10
MAIN_LOG_NAME = "analytics_sync.log"
OPERATIONAL_ERROR_LOG_NAME = "operational_errors.log"
CRASH_LOG_NAME = "crash.log"
CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonLinesFormatter(logging.Formatter):
    """One JSON object per line so runs can be grepped and ingested."""

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
            "correlation_id": self._resolve_correlation_id(record),
        }

        group_name = getattr(record, "group", None) or get_group_name()
        if group_name:
            event["group"] = group_name

        payload_extra = getattr(record, "extra", None)
        if isinstance(payload_extra, dict) and payload_extra:
            event["extra"] = payload_extra

        if record.exc_info:
            event["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(event, ensure_ascii=False, default=str)

    @staticmethod
    def _resolve_correlation_id(record: logging.LogRecord) -> str | None:
        record_value = getattr(record, "correlation_id", None)
        if record_value:
            return str(record_value)
        return get_correlation_id()


class LevelOnlyFilter(logging.Filter):
    def __init__(self, level: int) -> None:
        super().__init__()
        self._level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno == self._level


def _log_files(level: int) -> tuple[tuple[str, int, logging.Filter | None], ...]:
    # (file name, handler level, extra filter); operational errors exclude crashes.
    return (
        (MAIN_LOG_NAME, level, None),
        (OPERATIONAL_ERROR_LOG_NAME, logging.ERROR, LevelOnlyFilter(logging.ERROR)),
        (CRASH_LOG_NAME, logging.CRITICAL, None),
    )


def _max_bytes_from_env(default: int) -> int:
    try:
        return int(os.environ.get("ANALYTICS_SYNC_LOG_MAX_BYTES", default))
    except ValueError:
        return default


def configure_logging(
    log_dir: Path,
    *,
    max_bytes: int | None = None,
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT,
    level: int = logging.INFO,
    console_stream: TextIO | None = None,
) -> None:
    """Routes the root logger to rotating JSON-lines files under ``log_dir`` and a plain console."""
    log_dir.mkdir(parents=True, exist_ok=True)
    rotate_at = max_bytes or _max_bytes_from_env(DEFAULT_LOG_MAX_BYTES)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(level)

    for file_name, handler_level, extra_filter in _log_files(level):
        file_handler = RotatingFileHandler(
            log_dir / file_name,
            maxBytes=rotate_at,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(handler_level)
        file_handler.setFormatter(JsonLinesFormatter())
        if extra_filter is not None:
            file_handler.addFilter(extra_filter)
        root_logger.addHandler(file_handler)

    console = logging.StreamHandler(console_stream or sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root_logger.addHandler(console)

    # urllib3 logs every retried connection at WARNING; keep it out of the console.
    logging.getLogger("urllib3").setLevel(logging.ERROR)


def write_crash_log(exc_type: type[BaseException], exc: BaseException, tb: Any, log_dir: Path) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger("analytics_sync.crash")
    logger.critical(
        "Unhandled exception",
        exc_info=(exc_type, exc, tb),
        extra={
            "extra": {
                "python": sys.version,
                "executable": sys.executable,
                "cwd": str(Path.cwd()),
            }
        },
    )
    return log_dir / CRASH_LOG_NAME


def install_exception_hook(log_dir: Path) -> None:
    def _handler(exc_type, exc, tb) -> None:
        try:
            write_crash_log(exc_type, exc, tb, log_dir)
        except OSError:
            pass

    sys.excepthook = _handler
