"""
Supabase Connection.

``DatabaseManager`` owns the one Supabase client shared by the identity
provider and the analytics repository.  It holds no query logic.

Without a project URL and anon key no client is built and the client
runs offline: reading ``.supabase`` raises ``SupabaseOfflineError``.  The
provider reports that as a network error; the sync job logs it and
retries on its next tick.

Usage::

    db = DatabaseManager.from_config(config, logger)
"""

from __future__ import annotations

from typing import Optional

from supabase import Client as SupabaseClient, ClientOptions, create_client

from app.config import AppConfig
from app.logger import StructuredLogger


class SupabaseOfflineError(RuntimeError):
    """Raised by ``DatabaseManager.supabase`` when no client exists."""


class DatabaseManager:
    """Holds the Supabase client for the lifetime of the application.

    Parameters
    ----------
    supabase_url:
        Project URL, e.g. ``https://xyz.supabase.co``.  Empty means offline.
    supabase_key:
        Anonymous (public) key.  Empty means offline.
    logger:
        Structured logger.
    client:
        Ready-made client used as-is; ``create_client`` is skipped.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        logger: StructuredLogger,
        client: Optional[SupabaseClient] = None,
    ) -> None:
        self._logger: StructuredLogger = logger
        self._supabase: Optional[SupabaseClient] = client
        if client is None:
            self._supabase = self._connect(supabase_url, supabase_key)

    @classmethod
    def from_config(cls, config: AppConfig, logger: StructuredLogger) -> "DatabaseManager":
        return cls(
            supabase_url=config.SUPABASE_URL,
            supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
            logger=logger,
        )

    def _connect(self, url: str, key: str) -> Optional[SupabaseClient]:
        if not (url and key):
            self._logger.warning(
                "Supabase URL or anon key missing; running offline.",
                extra={"event": "SUPABASE_OFFLINE"},
            )
            return None

        # The auth client keeps and refreshes its own session so that
        # ``restore()`` can pick it up again.
        options = ClientOptions(auto_refresh_token=True, persist_session=True)
        try:
            client = create_client(url, key, options=options)
        except (ValueError, TypeError) as exc:
            self._logger.warning(
                "Supabase credentials rejected (%s); running offline.", exc,
                extra={"event": "SUPABASE_OFFLINE"},
            )
            return None
        except Exception as exc:
            self._logger.error(
                "Supabase client could not be created (%s); running offline.", exc,
                exc_info=True,
                extra={"event": "SUPABASE_OFFLINE"},
            )
            return None

        self._logger.info("Supabase client ready.", extra={"event": "SUPABASE_ONLINE"})
        return client

    @property
    def supabase(self) -> SupabaseClient:
        """The Supabase client.

        Raises
        ------
        SupabaseOfflineError
            When running offline.
        """
        if self._supabase is None:
            raise SupabaseOfflineError("Supabase is unavailable: the client is running offline.")
        return self._supabase

    @property
    def is_online(self) -> bool:
        return self._supabase is not None
