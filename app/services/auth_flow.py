"""
Auth Flow Controller.

State machine behind the sign-in / sign-up / password-reset form.  The
UI edits ``form``, calls the operations below, and renders ``outcome``;
it never talks to the identity provider itself.

States
------
``Idle(mode)`` → ``Submitting(mode)`` → one of ``Failed(mode, message)``,
``Succeeded(mode, message)``, ``AwaitingEmailConfirmation(email)``, or
back to ``Idle(signin)`` when a sign-in completes the flow.

``change_mode()`` and ``close()`` are accepted in every state.  They bump
a generation counter, and a provider call that completes under an older
generation is discarded, so a slow response never overwrites a newer
screen.

Thread Safety
-------------
State transitions run under ``self._lock``; the lock is never held
across a provider call, so ``close()`` from the UI thread is not blocked
by a slow submission on a worker thread.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from app.config import AppConfig, get_config
from app.logger import StructuredLogger
from app.models.auth_models import (
    AuthFormState,
    AuthOutcome,
    AwaitingEmailConfirmation,
    Failed,
    Idle,
    Submitting,
    Succeeded,
    ValidationResult,
)
from app.models.enums import AuthErrorCode, AuthMode
from app.services.base_service import BaseService
from app.services.session_provider import SessionProvider

OutcomeListener = Callable[[AuthOutcome], None]


class AuthFlowController(BaseService):
    """Drives one auth form.

    Parameters
    ----------
    provider:
        Identity provider used for every submission.
    logger:
        Structured JSON logger.
    config:
        Application configuration (password length policy).  Defaults
        to ``get_config()``.
    on_complete:
        Called after a successful sign-in or an acknowledged sign-up
        confirmation; the UI closes the form in response.
    """

    RESET_EMAIL_SENT: str = "Password reset email sent! Check your inbox."
    UNEXPECTED_ERROR: str = "An unexpected error occurred"
    PASSWORD_MISMATCH: str = "Passwords do not match"

    def __init__(
        self,
        provider: SessionProvider,
        logger: StructuredLogger,
        config: Optional[AppConfig] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> None:
        super().__init__(logger)
        self._provider: SessionProvider = provider
        self._min_password_length: int = (config or get_config()).MIN_PASSWORD_LENGTH
        self._on_complete: Optional[Callable[[], None]] = on_complete

        self._lock: threading.Lock = threading.Lock()
        self._listeners: list[OutcomeListener] = []
        self._generation: int = 0
        self._mode: AuthMode = AuthMode.SIGN_IN
        self._form: AuthFormState = AuthFormState()
        self._outcome: AuthOutcome = Idle(mode=AuthMode.SIGN_IN)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def mode(self) -> AuthMode:
        with self._lock:
            return self._mode

    @property
    def form(self) -> AuthFormState:
        with self._lock:
            return self._form

    @property
    def outcome(self) -> AuthOutcome:
        with self._lock:
            return self._outcome

    @property
    def is_submitting(self) -> bool:
        with self._lock:
            return isinstance(self._outcome, Submitting)

    def subscribe(self, listener: OutcomeListener) -> Callable[[], None]:
        """Call *listener* with the new outcome after every transition."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Form editing
    # ------------------------------------------------------------------

    def update_form(self, **changes: object) -> AuthFormState:
        """Replace the given form fields.  The outcome is left untouched.

        Raises:
            TypeError: If a name is not a field of ``AuthFormState``.
        """
        unknown = set(changes) - set(AuthFormState.model_fields)
        if unknown:
            raise TypeError(f"Unknown form field(s): {', '.join(sorted(unknown))}")
        with self._lock:
            self._form = AuthFormState(**{**self._form.model_dump(), **changes})
            return self._form

    def toggle_reveal_password(self) -> bool:
        with self._lock:
            self._form = self._form.model_copy(
                update={"reveal_password": not self._form.reveal_password},
            )
            return self._form.reveal_password

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def change_mode(self, new_mode: AuthMode | str) -> AuthOutcome:
        """Switch forms, clearing every field and the outcome."""
        mode = AuthMode(new_mode)
        with self._lock:
            self._reset_locked(mode)
            outcome = self._outcome
        self._logger.debug("Auth flow switched to %s.", mode)
        self._notify(outcome)
        return outcome

    def close(self) -> AuthOutcome:
        """Reset to ``Idle(signin)``.  An in-flight result is discarded."""
        with self._lock:
            was_submitting = isinstance(self._outcome, Submitting)
            self._reset_locked(AuthMode.SIGN_IN)
            outcome = self._outcome
        if was_submitting:
            self._logger.debug("Auth flow closed with a submission in flight.")
        self._notify(outcome)
        return outcome

    def acknowledge_email_confirmation(self) -> AuthOutcome:
        """Dismiss the "check your email" screen and complete the flow."""
        with self._lock:
            if not isinstance(self._outcome, AwaitingEmailConfirmation):
                self._logger.warning(
                    "Ignoring email-confirmation acknowledgement in state %s.",
                    self._outcome.kind,
                )
                return self._outcome
            self._reset_locked(AuthMode.SIGN_IN)
            outcome = self._outcome
        self._notify(outcome)
        self._signal_complete()
        return outcome

    def submit(self) -> AuthOutcome:
        """Validate the form and call the provider for the current mode.

        Blocks for the duration of the provider call; GUI front ends run
        it on a worker thread.  Returns the outcome after the call, or
        the unchanged outcome when the submission was ignored.
        """
        with self._lock:
            if isinstance(self._outcome, (Submitting, AwaitingEmailConfirmation)):
                self._logger.debug("Submit ignored while %s.", self._outcome.kind)
                return self._outcome
            mode = self._mode
            form = self._form
            generation = self._generation
            self._outcome = Submitting(mode=mode)
            submitting = self._outcome
        self._notify(submitting)

        try:
            outcome, completes_flow = self._run_submission(mode, form)
        except Exception:
            self._logger.error(
                "Unexpected error during %s submission.", mode,
                exc_info=True,
                extra={
                    "event": "AUTH_UNEXPECTED_ERROR",
                    "mode": str(mode),
                    "code": str(AuthErrorCode.UNEXPECTED_ERROR),
                },
            )
            outcome, completes_flow = Failed(mode=mode, message=self.UNEXPECTED_ERROR), False

        return self._finish(generation, outcome, completes_flow)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, mode: AuthMode, form: AuthFormState) -> ValidationResult:
        """Client-side checks; a failure never reaches the provider."""
        if mode == AuthMode.SIGN_UP:
            if form.password != form.confirm_password:
                return ValidationResult(is_valid=False, error_message=self.PASSWORD_MISMATCH)
            if len(form.password) < self._min_password_length:
                return ValidationResult(
                    is_valid=False,
                    error_message=(
                        f"Password must be at least {self._min_password_length} "
                        "characters long"
                    ),
                )
        if not form.email.strip():
            return ValidationResult(is_valid=False, error_message="Email address is required.")
        if mode != AuthMode.RESET and not form.password:
            return ValidationResult(is_valid=False, error_message="Password is required.")
        return ValidationResult(is_valid=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run_submission(
        self, mode: AuthMode, form: AuthFormState,
    ) -> tuple[AuthOutcome, bool]:
        check = self.validate(mode, form)
        if not check.is_valid:
            self._event(
                "AUTH_VALIDATION_FAILED", "Auth form rejected: %s", check.error_message,
                level=logging.DEBUG, mode=str(mode), code=str(AuthErrorCode.VALIDATION_ERROR),
            )
            return Failed(mode=mode, message=check.error_message or self.UNEXPECTED_ERROR), False

        # Both the provider call and the confirmation screen use the address
        # without surrounding whitespace, i.e. the one the account is under.
        email = form.email.strip()

        if mode == AuthMode.SIGN_UP:
            result = self._provider.sign_up(email, form.password)
            if not result.success:
                return Failed(mode=mode, message=result.error_message or self.UNEXPECTED_ERROR), False
            return AwaitingEmailConfirmation(email=email), False

        if mode == AuthMode.SIGN_IN:
            result = self._provider.sign_in(email, form.password)
            if not result.success:
                return Failed(mode=mode, message=result.error_message or self.UNEXPECTED_ERROR), False
            return Idle(mode=AuthMode.SIGN_IN), True

        result = self._provider.reset_password(email)
        if not result.success:
            return Failed(mode=mode, message=result.error_message or self.UNEXPECTED_ERROR), False
        return Succeeded(mode=mode, message=self.RESET_EMAIL_SENT), False

    def _finish(
        self, generation: int, outcome: AuthOutcome, completes_flow: bool,
    ) -> AuthOutcome:
        with self._lock:
            if generation != self._generation:
                self._logger.debug(
                    "Discarding stale auth result (%s); the flow moved on.",
                    outcome.kind,
                )
                return self._outcome
            if completes_flow:
                self._reset_locked(AuthMode.SIGN_IN)
            else:
                self._outcome = outcome
            current = self._outcome
        self._notify(current)
        if completes_flow:
            self._signal_complete()
        return current

    def _reset_locked(self, mode: AuthMode) -> None:
        """Clear form and outcome.  Caller holds ``self._lock``."""
        self._generation += 1
        self._mode = mode
        self._form = AuthFormState()
        self._outcome = Idle(mode=mode)

    def _notify(self, outcome: AuthOutcome) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(outcome)

    def _signal_complete(self) -> None:
        if self._on_complete is not None:
            self._on_complete()
