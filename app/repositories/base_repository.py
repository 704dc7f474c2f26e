"""
Base Repository.

Provides shared infrastructure for all repositories:
- DatabaseManager reference (Supabase)
- Logger reference
- The target table name
"""

from __future__ import annotations

from typing import Optional

from supabase import Client as SupabaseClient

from app.database import DatabaseManager
from app.logger import StructuredLogger


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__.

    Subclasses set ``TABLE``; a different table may be passed at
    construction for deployments that rename it.
    """

    TABLE: str = ""

    def __init__(
        self,
        db: DatabaseManager,
        logger: StructuredLogger,
        table: Optional[str] = None,
    ) -> None:
        self._db = db
        self._logger = logger
        self._table: str = table or self.TABLE

    @property
    def supabase(self) -> SupabaseClient:
        """Returns the Supabase client; raises ``SupabaseOfflineError`` offline."""
        return self._db.supabase

    @property
    def table_name(self) -> str:
        return self._table
