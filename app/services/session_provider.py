"""
Session Provider.

The identity-provider boundary of the auth flow.  ``SessionProvider``
is the protocol ``AuthFlowController`` depends on;
``SupabaseSessionProvider`` implements it over Supabase Auth and
publishes every session change into the shared ``SessionManager``.

Classification rules
--------------------
- Supabase ``AuthError`` → failed ``AuthResult`` carrying the provider's
  message verbatim (``PROVIDER_ERROR``).
- Offline mode (``SupabaseOfflineError``) and socket-level
  ``ConnectionError`` / ``TimeoutError`` → failed ``AuthResult`` with
  ``NETWORK_ERROR``.
- Anything else propagates; the controller reports it as unexpected.

Only the Supabase call itself is classified.  The session is published
after the call returns, so a failing session listener is never reported
as a failed sign-in.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Protocol

from supabase import AuthError as SupabaseAuthError

from app.auth import SessionManager
from app.config import AppConfig
from app.database import DatabaseManager, SupabaseOfflineError
from app.logger import StructuredLogger
from app.models.auth_models import AuthResult
from app.models.enums import AuthErrorCode
from app.models.session import Session
from app.services.base_service import BaseService

_NETWORK_ERROR_MESSAGE: str = "Cannot reach the server. Check your internet connection."


class SessionProvider(Protocol):
    """Identity operations consumed by the auth flow."""

    def sign_up(self, email: str, password: str) -> AuthResult: ...

    def sign_in(self, email: str, password: str) -> AuthResult: ...

    def reset_password(self, email: str) -> AuthResult: ...

    def sign_out(self) -> AuthResult: ...

    @property
    def current_session(self) -> Optional[Session]: ...


class SupabaseSessionProvider(BaseService):
    """Supabase Auth implementation of ``SessionProvider``.

    Parameters
    ----------
    db:
        Connection manager exposing ``.supabase``.
    session:
        Shared session holder; updated on sign-in, sign-out and restore.
    config:
        Application configuration (password-reset redirect URL).
    logger:
        Structured JSON logger for audit-grade logging.
    """

    def __init__(
        self,
        db: DatabaseManager,
        session: SessionManager,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._db: DatabaseManager = db
        self._session: SessionManager = session
        self._config: AppConfig = config

    @property
    def current_session(self) -> Optional[Session]:
        return self._session.current_session

    # ==================================================================
    # Sign up / sign in
    # ==================================================================

    def sign_up(self, email: str, password: str) -> AuthResult:
        """Create an account.  New accounts must confirm their email."""
        result, response = self._guarded(
            "sign_up",
            lambda: self._db.supabase.auth.sign_up({"email": email, "password": password}),
        )
        if not result.success:
            return result

        self._event(
            "SIGN_UP", "Account created for %s; awaiting email confirmation.", email,
            email=email,
        )
        # Projects with confirmation disabled return a live session.
        if response.session is not None and response.user is not None:
            self._publish(self._to_session(response.user, email), "sign_up")
        return result

    def sign_in(self, email: str, password: str) -> AuthResult:
        """Authenticate with email and password."""
        result, response = self._guarded(
            "sign_in",
            lambda: self._db.supabase.auth.sign_in_with_password({
                "email": email,
                "password": password,
            }),
        )
        if not result.success:
            return result

        session = self._to_session(response.user, email)
        self._event(
            "SIGN_IN", "User signed in: %s", session.email,
            email=session.email, user_id=session.id,
        )
        self._publish(session, "sign_in")
        return result

    # ==================================================================
    # Password reset
    # ==================================================================

    def reset_password(self, email: str) -> AuthResult:
        """Ask Supabase to email a password-reset link to *email*."""

        def _call() -> None:
            redirect_to = self._config.PASSWORD_RESET_REDIRECT_URL
            if redirect_to:
                self._db.supabase.auth.reset_password_for_email(
                    email, {"redirect_to": redirect_to},
                )
            else:
                self._db.supabase.auth.reset_password_for_email(email)

        result, _ = self._guarded("reset_password", _call)
        if result.success:
            self._event(
                "PASSWORD_RESET_REQUESTED", "Password reset requested for %s.", email,
                email=email,
            )
        return result

    # ==================================================================
    # Sign out / restore
    # ==================================================================

    def sign_out(self) -> AuthResult:
        """Revoke the server session and always clear the local one.

        The local session is cleared even when the server call fails so
        the sync job stops regardless of connectivity.
        """
        current = self._session.current_session
        user_email = current.email if current is not None else "unknown"

        try:
            result, _ = self._guarded("sign_out", lambda: self._db.supabase.auth.sign_out())
        finally:
            self._session.clear()

        self._event(
            "SIGN_OUT", "User signed out: %s", user_email, email=user_email,
        )
        return result

    def restore(self) -> Optional[Session]:
        """Adopt a session the Supabase client already holds, if any.

        Called once at start-up.  Failures are logged and treated as
        "no session".
        """
        try:
            response = self._db.supabase.auth.get_session()
        except SupabaseOfflineError:
            self._logger.debug("Offline; no session to restore.")
            return None
        except Exception as exc:
            self._logger.warning("Could not restore session: %s", exc)
            return None

        if response is None or response.user is None:
            return None

        session = self._to_session(response.user, response.user.email or "")
        self._event(
            "SESSION_RESTORED", "Session restored for %s.", session.email,
            user_id=session.id,
        )
        self._publish(session, "restore")
        return session

    # ==================================================================
    # Helpers
    # ==================================================================

    def _guarded(
        self, operation: str, call: Callable[[], Any],
    ) -> tuple[AuthResult, Any]:
        """Run the Supabase *call* and classify provider and network failures.

        Returns the result and, on success, the value *call* returned.
        """
        try:
            response = call()
        except SupabaseAuthError as exc:
            message = getattr(exc, "message", None) or str(exc)
            self._event(
                "AUTH_PROVIDER_ERROR", "Auth provider rejected %s: %s", operation, message,
                level=logging.WARNING, operation=operation,
            )
            return AuthResult.fail(message, AuthErrorCode.PROVIDER_ERROR), None
        except (SupabaseOfflineError, ConnectionError, TimeoutError) as exc:
            self._event(
                "AUTH_NETWORK_ERROR", "Network error during %s: %s", operation, exc,
                level=logging.WARNING, operation=operation,
            )
            return AuthResult.fail(_NETWORK_ERROR_MESSAGE, AuthErrorCode.NETWORK_ERROR), None
        return AuthResult.ok(), response

    def _publish(self, session: Session, operation: str) -> None:
        """Hand *session* to the session holder and its listeners.

        The account is already authenticated at this point; a listener
        failure is logged and does not change the result of *operation*.
        """
        try:
            self._session.set_current_session(session)
        except Exception:
            self._logger.error(
                "Session listener failed after %s for %s.", operation, session.id,
                exc_info=True,
                extra={"event": "SESSION_LISTENER_FAILED", "user_id": session.id},
            )

    @staticmethod
    def _to_session(user: object, fallback_email: str) -> Session:
        return Session(
            id=str(getattr(user, "id")),
            email=getattr(user, "email", None) or fallback_email,
            created_at=getattr(user, "created_at", None),
        )
