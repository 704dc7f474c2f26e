"""
Telemetry Sync Job.

Keeps one ``user_analytics`` row per signed-in user approximately in
step with the game.  Two triggers feed a single write sequence:

- **periodic**: every ``SYNC_INTERVAL_S`` seconds while a session is
  present, whether or not anything changed;
- **debounce**: ``SYNC_DEBOUNCE_S`` seconds after the last change to a
  tracked field (coins, gems, zone, health, attack, defense), restarted
  on every further change.

Write sequence: look the row up by user, update it when found, insert
it otherwise.  Sequences are serialized by ``self._write_lock`` so the
two triggers can never both see "not found" and insert twice.

Failures are logged and swallowed; the next tick retries.  Stopping the
job cancels both timers and bumps the session epoch, so a sequence that
is already in flight discards its write instead of touching the row of
a session that has ended.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

from app.auth import SessionManager
from app.config import AppConfig
from app.logger import StructuredLogger
from app.models.analytics import AnalyticsRow, AnalyticsSnapshot, GameState, tracked_values
from app.models.enums import SyncTrigger
from app.models.session import Session
from app.services.base_service import BaseService
from app.services.scheduler import ScheduledTask, Scheduler


class AnalyticsStore(Protocol):
    """Keyed per-user analytics table."""

    def find_by_user(self, user_id: str) -> Optional[AnalyticsRow]: ...

    def update(self, user_id: str, fields: dict[str, object]) -> None: ...

    def insert(self, fields: dict[str, object]) -> None: ...


class TelemetrySyncJob(BaseService):
    """Pushes gameplay snapshots to the analytics store.

    Parameters
    ----------
    store:
        The ``user_analytics`` repository.
    scheduler:
        Source of the periodic and debounce timers.
    config:
        Application configuration (intervals, initial-sync switch).
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        store: AnalyticsStore,
        scheduler: Scheduler,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._store: AnalyticsStore = store
        self._scheduler: Scheduler = scheduler
        self._config: AppConfig = config

        self._state_lock: threading.Lock = threading.Lock()
        self._write_lock: threading.Lock = threading.Lock()

        self._user_id: Optional[str] = None
        self._epoch: int = 0
        self._game_state: Optional[GameState] = None
        self._last_tracked: Optional[tuple[int, ...]] = None
        self._periodic_task: Optional[ScheduledTask] = None
        self._pending_task: Optional[ScheduledTask] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, session: Session) -> None:
        """Begin syncing for *session*.

        Idempotent for the same user; a different user replaces the
        current one.
        """
        with self._state_lock:
            if self._user_id == session.id:
                self._logger.debug("Telemetry sync already running for %s.", session.id)
                return
            if self._user_id is not None:
                self._stop_locked()

            self._user_id = session.id
            self._epoch += 1
            epoch = self._epoch
            self._periodic_task = self._scheduler.call_every(
                self._config.SYNC_INTERVAL_S,
                lambda: self._sync(SyncTrigger.PERIODIC, epoch),
            )
            if self._config.SYNC_ON_START and self._game_state is not None:
                self._pending_task = self._scheduler.call_later(
                    0.0, lambda: self._sync(SyncTrigger.INITIAL, epoch),
                )

        self._event(
            "ANALYTICS_SYNC_STARTED", "Telemetry sync started for %s.", session.id,
            user_id=session.id,
        )

    def stop(self) -> None:
        """Cancel both timers.  Safe to call when not running."""
        with self._state_lock:
            user_id = self._user_id
            if user_id is None:
                return
            self._stop_locked()

        self._event(
            "ANALYTICS_SYNC_STOPPED", "Telemetry sync stopped for %s.", user_id,
            user_id=user_id,
        )

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._user_id is not None

    def attach(self, session_manager: SessionManager) -> Callable[[], None]:
        """Follow *session_manager*: start on sign-in, stop on sign-out.

        Returns the function that detaches the job again.
        """

        def _on_session_change(session: Optional[Session]) -> None:
            if session is None:
                self.stop()
            else:
                self.start(session)

        unsubscribe = session_manager.subscribe(_on_session_change)
        current = session_manager.current_session
        if current is not None:
            self.start(current)
        return unsubscribe

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def observe(self, game_state: GameState) -> None:
        """Record the latest game state; restart the debounce on change."""
        tracked = tracked_values(game_state)
        with self._state_lock:
            self._game_state = game_state
            changed = tracked != self._last_tracked
            self._last_tracked = tracked
            if not changed or self._user_id is None:
                return

            if self._pending_task is not None:
                self._pending_task.cancel()
            epoch = self._epoch
            self._pending_task = self._scheduler.call_later(
                self._config.SYNC_DEBOUNCE_S,
                lambda: self._sync(SyncTrigger.DEBOUNCE, epoch),
            )

    def sync_now(self, trigger: SyncTrigger = SyncTrigger.MANUAL) -> bool:
        """Run one write sequence immediately.

        Returns ``True`` when a row was written.
        """
        with self._state_lock:
            epoch = self._epoch
        return self._sync(trigger, epoch)

    # ------------------------------------------------------------------
    # Write sequence
    # ------------------------------------------------------------------

    def _sync(self, trigger: SyncTrigger, epoch: int) -> bool:
        with self._write_lock:
            with self._state_lock:
                if epoch != self._epoch or self._user_id is None:
                    return False
                if self._game_state is None:
                    self._logger.debug("No game state yet; %s sync skipped.", trigger)
                    return False
                snapshot = AnalyticsSnapshot.from_game_state(self._user_id, self._game_state)

            try:
                existing = self._store.find_by_user(snapshot.user_id)
                if not self._is_current(epoch):
                    self._logger.debug(
                        "Session ended during %s sync; write discarded.", trigger,
                    )
                    return False
                if existing is not None:
                    self._store.update(snapshot.user_id, snapshot.to_row())
                else:
                    self._store.insert(snapshot.to_row())
            except Exception as exc:
                self._event(
                    "ANALYTICS_SYNC_FAILED", "Analytics sync (%s) failed for %s: %s",
                    trigger, snapshot.user_id, exc,
                    level=logging.WARNING, user_id=snapshot.user_id,
                )
                return False

        self._event(
            "ANALYTICS_SYNCED", "Analytics %s for %s (%s).",
            "updated" if existing is not None else "inserted", snapshot.user_id, trigger,
            level=logging.DEBUG, trigger=str(trigger),
        )
        return True

    def _is_current(self, epoch: int) -> bool:
        with self._state_lock:
            return epoch == self._epoch and self._user_id is not None

    def _stop_locked(self) -> None:
        """Cancel timers and end the epoch.  Caller holds ``_state_lock``."""
        for task in (self._periodic_task, self._pending_task):
            if task is not None:
                task.cancel()
        self._periodic_task = None
        self._pending_task = None
        self._user_id = None
        self._epoch += 1
