from __future__ import annotations

import io
import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import pytest

from app.config import AppConfig
from app.logger import StructuredLogger
from app.models.analytics import AnalyticsRow, GameState, PlayerStats
from app.models.auth_models import AuthResult
from app.models.session import Session
from app.services.scheduler import ScheduledTask


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeSessionProvider:
    """Records calls; returns queued results or raises queued exceptions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self.results: dict[str, AuthResult] = {}
        self.errors: dict[str, Exception] = {}
        self.during_call: Optional[Callable[[str], None]] = None
        self.session: Optional[Session] = None

    def _respond(self, operation: str, *args: str) -> AuthResult:
        self.calls.append((operation, args))
        if self.during_call is not None:
            self.during_call(operation)
        if operation in self.errors:
            raise self.errors[operation]
        return self.results.get(operation, AuthResult.ok())

    def sign_up(self, email: str, password: str) -> AuthResult:
        return self._respond("sign_up", email, password)

    def sign_in(self, email: str, password: str) -> AuthResult:
        return self._respond("sign_in", email, password)

    def reset_password(self, email: str) -> AuthResult:
        return self._respond("reset_password", email)

    def sign_out(self) -> AuthResult:
        return self._respond("sign_out")

    @property
    def current_session(self) -> Optional[Session]:
        return self.session


class FakeAnalyticsStore:
    """In-memory ``user_analytics`` table keyed by user id."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, object]] = {}
        self.calls: list[str] = []
        self.fail_on: set[str] = set()
        self.after_find: Optional[Callable[[], None]] = None
        self.find_delay: float = 0.0

    def find_by_user(self, user_id: str) -> Optional[AnalyticsRow]:
        self.calls.append("find")
        if "find" in self.fail_on:
            raise ConnectionError("lookup failed")
        if self.find_delay:
            time.sleep(self.find_delay)
        row = self.rows.get(user_id)
        if self.after_find is not None:
            self.after_find()
        return AnalyticsRow(**row) if row is not None else None

    def update(self, user_id: str, fields: dict[str, object]) -> None:
        self.calls.append("update")
        if "update" in self.fail_on:
            raise ConnectionError("update failed")
        self.rows[user_id] = dict(fields)

    def insert(self, fields: dict[str, object]) -> None:
        self.calls.append("insert")
        if "insert" in self.fail_on:
            raise ConnectionError("insert failed")
        self.rows[str(fields["user_id"])] = dict(fields)

    @property
    def writes(self) -> list[str]:
        return [call for call in self.calls if call in ("update", "insert")]


@dataclass(order=True)
class _Entry:
    due: float
    seq: int
    task: ScheduledTask = field(compare=False)
    callback: Callable[[], None] = field(compare=False)
    interval: Optional[float] = field(default=None, compare=False)


class ManualScheduler:
    """Virtual-clock scheduler; callbacks run only inside ``advance()``."""

    def __init__(self) -> None:
        self.now: float = 0.0
        self._entries: list[_Entry] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask()
        self._entries.append(_Entry(self.now + delay, next(self._seq), task, callback))
        return task

    def call_every(self, interval: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask()
        self._entries.append(
            _Entry(self.now + interval, next(self._seq), task, callback, interval)
        )
        return task

    @property
    def pending(self) -> int:
        return sum(1 for entry in self._entries if not entry.task.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            live = [e for e in self._entries if not e.task.cancelled and e.due <= target]
            if not live:
                break
            entry = min(live)
            self.now = entry.due
            if entry.interval is None:
                self._entries.remove(entry)
            else:
                entry.due += entry.interval
            entry.callback()
        self._entries = [e for e in self._entries if not e.task.cancelled]
        self.now = target


def make_state(coins: int = 0, gems: int = 0, zone: int = 1, hp: int = 100,
               max_hp: int = 100, atk: int = 10, defense: int = 5) -> GameState:
    return GameState(
        coins=coins,
        gems=gems,
        zone=zone,
        player_stats=PlayerStats(hp=hp, max_hp=max_hp, atk=atk, def_=defense),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> AppConfig:
    return AppConfig(
        _env_file=None,
        SUPABASE_URL="https://example.supabase.co",
        SYNC_INTERVAL_S=30.0,
        SYNC_DEBOUNCE_S=1.0,
        SYNC_ON_START=True,
    )


@pytest.fixture()
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture()
def logger(request: pytest.FixtureRequest, tmp_path, log_stream) -> StructuredLogger:
    log = StructuredLogger(
        name=f"test.{request.node.nodeid}",
        stream=log_stream,
        log_file=str(tmp_path / "test.log"),
    )
    yield log
    for handler in list(log.logger.handlers):
        handler.close()
        log.logger.removeHandler(handler)


@pytest.fixture()
def provider() -> FakeSessionProvider:
    return FakeSessionProvider()


@pytest.fixture()
def store() -> FakeAnalyticsStore:
    return FakeAnalyticsStore()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def session() -> Session:
    return Session(id="user-1", email="hero@example.com")
