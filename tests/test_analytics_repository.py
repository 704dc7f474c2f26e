from __future__ import annotations

import pytest

from app.database import DatabaseManager, SupabaseOfflineError
from app.repositories.analytics_repository import AnalyticsRepository

from fakes_supabase import FakeSupabase


@pytest.fixture()
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture()
def repo(supabase, logger) -> AnalyticsRepository:
    db = DatabaseManager(supabase_url="", supabase_key="", logger=logger, client=supabase)
    return AnalyticsRepository(db=db, logger=logger)


def test_find_by_user_returns_row(repo, supabase):
    supabase.select_data = [
        {"id": 3, "user_id": "user-1", "coins": 12, "gems": 1, "health": 80,
         "max_health": 100, "zone": 2, "attack": 9, "defense": 4,
         "updated_at": "2024-03-01T12:00:00+00:00"},
    ]

    row = repo.find_by_user("user-1")

    assert row is not None
    assert row.coins == 12
    assert row.id == 3
    query = supabase.queries[0]
    assert query.table == "user_analytics"
    assert ("eq", ("user_id", "user-1")) in query.steps
    assert ("limit", (1,)) in query.steps


def test_find_by_user_returns_none_when_absent(repo, supabase):
    supabase.select_data = []

    assert repo.find_by_user("user-1") is None


def test_update_filters_by_user(repo, supabase):
    repo.update("user-1", {"user_id": "user-1", "coins": 5})

    steps = supabase.queries[0].steps
    assert steps == [("update", ({"user_id": "user-1", "coins": 5},)), ("eq", ("user_id", "user-1"))]


def test_insert_requires_user_id(repo, supabase):
    with pytest.raises(ValueError):
        repo.insert({"coins": 5})

    assert supabase.queries == []


def test_errors_propagate(repo, supabase):
    supabase.error = ConnectionError("down")

    with pytest.raises(ConnectionError):
        repo.find_by_user("user-1")


def test_offline_raises_offline_error(logger):
    repo = AnalyticsRepository(
        db=DatabaseManager(supabase_url="", supabase_key="", logger=logger),
        logger=logger,
    )

    with pytest.raises(SupabaseOfflineError):
        repo.insert({"user_id": "user-1"})


def test_table_name_override(supabase, logger):
    db = DatabaseManager(supabase_url="", supabase_key="", logger=logger, client=supabase)
    repo = AnalyticsRepository(db=db, logger=logger, table="analytics_v2")

    repo.insert({"user_id": "user-1"})

    assert supabase.queries[0].table == "analytics_v2"
