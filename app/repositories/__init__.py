"""
Repository Layer Package.

Provides data-access abstractions over Supabase tables.
All table access flows through repositories; services never touch
``db.supabase`` table builders directly.

Usage:
    from app.repositories.analytics_repository import AnalyticsRepository
"""

from app.repositories.base_repository import BaseRepository
from app.repositories.analytics_repository import AnalyticsRepository

__all__ = [
    "BaseRepository",
    "AnalyticsRepository",
]
