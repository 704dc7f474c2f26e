"""
Analytics Repository.

Data access for the ``user_analytics`` table: one row of gameplay
metrics per user, keyed by ``user_id``.

Unlike read paths elsewhere, nothing here swallows errors.  Every
Supabase failure (including ``SupabaseOfflineError`` in offline mode) propagates
to the caller; ``TelemetrySyncJob`` decides what a failure means.
"""

from __future__ import annotations

from typing import Optional

from app.models.analytics import AnalyticsRow
from app.repositories.base_repository import BaseRepository


class AnalyticsRepository(BaseRepository):
    """Point lookup, update-by-user and insert on ``user_analytics``."""

    TABLE = "user_analytics"

    def find_by_user(self, user_id: str) -> Optional[AnalyticsRow]:
        """Return the row for *user_id*, or ``None`` when absent.

        ``limit(1)`` rather than ``single()`` so that duplicate rows left
        by older clients still resolve instead of raising.
        """
        response = (
            self.supabase.table(self._table)
            .select("*")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return AnalyticsRow(**rows[0]) if rows else None

    def update(self, user_id: str, fields: dict[str, object]) -> None:
        """Overwrite the row of *user_id* with *fields*."""
        self.supabase.table(self._table).update(fields).eq("user_id", user_id).execute()
        self._logger.debug("Updated %s row for %s.", self.table_name, user_id)

    def insert(self, fields: dict[str, object]) -> None:
        """Insert a new row; *fields* must include ``user_id``."""
        if "user_id" not in fields:
            raise ValueError("Analytics rows require a user_id.")
        self.supabase.table(self._table).insert(fields).execute()
        self._logger.debug("Inserted %s row for %s.", self.table_name, fields["user_id"])
