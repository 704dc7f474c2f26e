"""
Console Auth Prompt.

A thin terminal front end over ``AuthFlowController``: it collects the
fields the current mode needs, calls ``submit()``, and renders the
outcome.  All decisions live in the controller.

Commands typed at the email prompt switch modes: ``:signin``,
``:signup``, ``:reset``; ``:quit`` closes the flow.
"""

from __future__ import annotations

import getpass
import threading
from typing import Callable, Optional

from app.models.auth_models import (
    AuthOutcome,
    AwaitingEmailConfirmation,
    Failed,
    Succeeded,
)
from app.models.enums import AuthMode
from app.models.session import Session
from app.services.auth_flow import AuthFlowController

_TITLES: dict[AuthMode, str] = {
    AuthMode.SIGN_IN: "Sign In",
    AuthMode.SIGN_UP: "Create Account",
    AuthMode.RESET: "Reset Password",
}

_MODE_COMMANDS: dict[str, AuthMode] = {
    ":signin": AuthMode.SIGN_IN,
    ":signup": AuthMode.SIGN_UP,
    ":reset": AuthMode.RESET,
}


class ConsoleAuthPrompt:
    """Runs the auth flow on stdin/stdout until it completes or is closed.

    *completed* is the event the controller sets through its
    ``on_complete`` callback.
    """

    def __init__(
        self,
        controller: AuthFlowController,
        completed: threading.Event,
        read_line: Callable[[str], str] = input,
        read_secret: Callable[[str], str] = getpass.getpass,
        write: Callable[[str], None] = print,
    ) -> None:
        self._controller = controller
        self._read_line = read_line
        self._read_secret = read_secret
        self._write = write
        self._completed: threading.Event = completed

    def run(self) -> bool:
        """Return ``True`` when the flow completed, ``False`` if closed."""
        self._completed.clear()
        self._write(f"== {_TITLES[self._controller.mode]} ==")

        while not self._completed.is_set():
            outcome = self._controller.outcome
            if isinstance(outcome, AwaitingEmailConfirmation):
                self._read_line("Press Enter to continue to sign in. ")
                self._controller.acknowledge_email_confirmation()
                continue

            email = self._read_line("Email: ").strip()
            if email == ":quit":
                self._controller.close()
                return False
            if email in _MODE_COMMANDS:
                mode = _MODE_COMMANDS[email]
                self._controller.change_mode(mode)
                self._write(f"== {_TITLES[mode]} ==")
                continue

            fields: dict[str, object] = {"email": email}
            mode = self._controller.mode
            if mode != AuthMode.RESET:
                fields["password"] = self._read_secret("Password: ")
            if mode == AuthMode.SIGN_UP:
                fields["confirm_password"] = self._read_secret("Confirm password: ")
            self._controller.update_form(**fields)

            self._render(self._controller.submit())

        return True

    def _render(self, outcome: AuthOutcome) -> None:
        if isinstance(outcome, Failed):
            self._write(f"! {outcome.message}")
        elif isinstance(outcome, Succeeded):
            self._write(outcome.message)
        elif isinstance(outcome, AwaitingEmailConfirmation):
            self._write(
                f"Check {outcome.email} for a confirmation link, then sign in."
            )


def format_profile(session: Optional[Session]) -> str:
    """One-line account summary shown after sign-in."""
    if session is None:
        return "Not signed in."
    joined = session.joined_on.isoformat() if session.joined_on else "unknown"
    return f"{session.display_name} <{session.email}> (member since {joined})"
