"""
Structured JSON Logging Module.

Every record is written as one JSON object so auth and sync activity can
be filtered by its ``event`` field.  The auth flow logs around user
credentials, so values under credential-like keys passed through
``extra`` are masked before they reach a handler.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, TextIO, Union

_REDACTED: str = "***"
_SECRET_KEYS: frozenset[str] = frozenset({
    "password",
    "confirm_password",
    "access_token",
    "refresh_token",
})


class JSONFormatter(logging.Formatter):
    """Formats log records as structured JSON objects.

    Each entry carries ``timestamp`` (UTC), ``level``, ``logger_name``,
    ``thread``, ``message`` and, when given, ``event`` at the top level.
    Remaining ``extra`` fields are nested under ``extra``.
    """

    # Attribute names every LogRecord has, computed once.
    _RECORD_ATTRS: frozenset[str] = frozenset(
        logging.LogRecord(
            name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
        ).__dict__.keys()
    ) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        extra: dict[str, str] = {}
        for key, value in record.__dict__.items():
            if key in self._RECORD_ATTRS:
                continue
            if key == "event":
                entry["event"] = str(value)
            elif key in _SECRET_KEYS:
                extra[key] = _REDACTED
            else:
                extra[key] = str(value)
        if extra:
            entry["extra"] = extra

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False)


class StructuredLogger:
    """Injectable logger wrapper.

    Build one per subsystem and pass it to the services that need it;
    the underlying ``logging.Logger`` is exposed as ``.logger``.  Unset
    arguments fall back to the ``LOG_*`` settings of ``AppConfig``.

    Usage::

        log = StructuredLogger(name="questline")
        log.info("Signed in", extra={"event": "SIGN_IN"})
    """

    def __init__(
        self,
        name: str = "questline",
        level: Optional[Union[int, str]] = None,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        # Lazy import to avoid circular dependency at module level
        from app.config import get_config
        cfg = get_config()

        resolved_level = level if level is not None else cfg.LOG_LEVEL
        self._logger: logging.Logger = logging.getLogger(name)
        self._logger.setLevel(resolved_level)
        self._logger.propagate = False

        # A name that already has handlers is reused as-is.
        if not self._logger.handlers:
            self._attach_handlers(
                stream=stream or sys.stdout,
                log_file=log_file or cfg.LOG_FILE,
                max_bytes=max_bytes if max_bytes is not None else cfg.LOG_MAX_BYTES,
                backup_count=(
                    backup_count if backup_count is not None else cfg.LOG_BACKUP_COUNT
                ),
            )

    def _attach_handlers(
        self, stream: TextIO, log_file: str, max_bytes: int, backup_count: int,
    ) -> None:
        formatter = JSONFormatter()

        console = logging.StreamHandler(stream)
        console.setFormatter(formatter)
        self._logger.addHandler(console)

        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            rotating = RotatingFileHandler(
                filename=str(log_path),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        except OSError as exc:
            self._logger.warning(
                "Could not open log file '%s': %s. Logging to console only.",
                log_file,
                exc,
            )
            return
        rotating.setFormatter(formatter)
        self._logger.addHandler(rotating)

    @property
    def logger(self) -> logging.Logger:
        """The underlying ``logging.Logger``."""
        return self._logger

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.error(msg, *args, **kwargs)


def get_logger(name: str = "questline") -> StructuredLogger:
    """Return a ``StructuredLogger`` for *name* with configured defaults."""
    return StructuredLogger(name=name)
