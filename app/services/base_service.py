"""
Base Service Class.

Shared logger plumbing for the client services.  Every service takes a
``StructuredLogger`` through ``__init__`` and reports lifecycle events
with ``_event()`` so each JSON record carries an ``event`` field that
log queries can filter on.
"""

from __future__ import annotations

import logging

from app.logger import StructuredLogger


class BaseService:
    """Base class for the client services. Provides a logger."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger

    def _event(
        self,
        event: str,
        msg: str,
        *args: object,
        level: int = logging.INFO,
        **fields: object,
    ) -> None:
        """Log *msg* tagged with *event* and any extra structured *fields*."""
        self._logger.logger.log(level, msg, *args, extra={"event": event, **fields})
