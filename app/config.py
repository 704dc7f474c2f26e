"""
Questline Client Settings.

``AppConfig`` reads Supabase credentials, auth-form rules, telemetry
timings and log settings from the environment or a ``.env`` file.
Services receive it through their constructors; ``get_config()`` exists
for the few places that build defaults on their own (the logger).
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import SecretStr, model_validator


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")

    # --- Auth flow ---
    MIN_PASSWORD_LENGTH: int = 6
    PASSWORD_RESET_REDIRECT_URL: str = ""

    # --- Telemetry sync ---
    ANALYTICS_TABLE: str = "user_analytics"
    SYNC_INTERVAL_S: float = 30.0
    SYNC_DEBOUNCE_S: float = 1.0
    SYNC_ON_START: bool = True

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "questline.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_settings(self) -> "AppConfig":
        """Reject unusable sync timings and warn when Supabase is unset.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so a missing project URL is logged rather than raised: the client
        still starts and every provider call reports a network error.
        """
        if self.SYNC_INTERVAL_S <= 0:
            raise ValueError("SYNC_INTERVAL_S must be positive")
        if self.SYNC_DEBOUNCE_S <= 0:
            raise ValueError("SYNC_DEBOUNCE_S must be positive")
        if self.MIN_PASSWORD_LENGTH < 1:
            raise ValueError("MIN_PASSWORD_LENGTH must be at least 1")
        self.LOG_LEVEL = self.LOG_LEVEL.upper()
        if self.LOG_LEVEL not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown LOG_LEVEL {self.LOG_LEVEL!r}")

        _log = logging.getLogger("app.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found. All configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL:
            _log.warning(
                "SUPABASE_URL is empty. Supabase connectivity is disabled. "
                "Sign-in and analytics sync will be unavailable."
            )

        return self


# ---------------------------------------------------------------------------
# Shared instance
# ---------------------------------------------------------------------------

_shared: Optional[AppConfig] = None
_shared_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return the process-wide ``AppConfig``, building it on first use."""
    global _shared
    if _shared is None:
        with _shared_lock:
            if _shared is None:
                _shared = AppConfig()
    return _shared
