"""
Session State.

Provides an injectable ``SessionManager`` that holds the signed-in
``Session`` for the lifetime of the client, and notifies subscribers
whenever a session appears, changes, or ends.

Usage::

    from app.auth import SessionManager
    from app.models.session import Session

    session = SessionManager()
    unsubscribe = session.subscribe(lambda s: print("session:", s))
    session.set_current_session(Session(id="abc-123", email="hero@example.com"))
    session.clear()
    unsubscribe()
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from app.models.session import Session

SessionListener = Callable[[Optional[Session]], None]


class SessionManager:
    """Injectable, observable holder for the current session.

    Listeners are invoked outside the internal lock, on the thread that
    changed the session.
    """

    def __init__(self) -> None:
        self._lock: threading.RLock = threading.RLock()
        self._current: Optional[Session] = None
        self._listeners: list[SessionListener] = []

    def set_current_session(self, session: Session) -> None:
        """Record *session* as the signed-in account."""
        with self._lock:
            changed = self._current != session
            self._current = session
        if changed:
            self._notify(session)

    @property
    def current_session(self) -> Optional[Session]:
        """The signed-in account, or ``None``."""
        with self._lock:
            return self._current

    def get_current_session(self) -> Session:
        """Return the signed-in account.

        Raises:
            RuntimeError: If no session is present.
        """
        with self._lock:
            if self._current is None:
                raise RuntimeError("No session is present. Sign-in required.")
            return self._current

    @property
    def is_authenticated(self) -> bool:
        """``True`` when a session is present."""
        with self._lock:
            return self._current is not None

    def clear(self) -> None:
        """End the current session."""
        with self._lock:
            had_session = self._current is not None
            self._current = None
        if had_session:
            self._notify(None)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register *listener* and return a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, session: Optional[Session]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(session)
