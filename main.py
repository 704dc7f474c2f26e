"""
Questline Client Entry Point.

Bootstraps the dependency graph via constructor injection, restores
any existing Supabase session, runs the console auth flow when nobody
is signed in, and binds the telemetry sync job to the session
lifetime.  Every subsystem is wired here; no module-level globals.

The game simulation is an external producer: it calls
``telemetry_sync.observe(game_state)`` whenever its state changes.

Usage::

    python main.py
"""

from __future__ import annotations

import sys
import threading
import traceback

from app.auth import SessionManager
from app.config import get_config
from app.database import DatabaseManager
from app.logger import StructuredLogger, get_logger
from app.services import create_services
from app.ui.console_prompt import ConsoleAuthPrompt, format_profile


def main() -> int:
    """Application entry point: wire dependencies and run the auth flow."""
    logger: StructuredLogger = get_logger("main")
    logger.info("Starting Questline client...")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Supabase connection (offline when credentials are missing)
    # ------------------------------------------------------------------
    db = DatabaseManager.from_config(config, StructuredLogger(name="database"))
    if not db.is_online:
        print("Offline: sign-in and analytics sync are unavailable until Supabase is configured.")

    # ------------------------------------------------------------------
    # 3. Session + services
    # ------------------------------------------------------------------
    session = SessionManager()
    auth_completed = threading.Event()
    services = create_services(
        db=db,
        config=config,
        session=session,
        on_auth_complete=auth_completed.set,
    )
    provider = services["session_provider"]
    telemetry_sync = services["telemetry_sync"]

    detach_sync = telemetry_sync.attach(session)

    try:
        provider.restore()
        prompt = ConsoleAuthPrompt(services["auth_flow"], completed=auth_completed)
        # A completed sign-up still needs a sign-in before a session exists.
        while not session.is_authenticated:
            if not prompt.run():
                logger.info("Auth flow closed without a session.")
                return 0

        print(format_profile(session.current_session))
        input("Press Enter to sign out. ")
        provider.sign_out()
        return 0
    finally:
        detach_sync()
        telemetry_sync.stop()
        services["scheduler"].shutdown()
        logger.info("Questline client stopped.")


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception:
        traceback.print_exc()
        sys.exit(1)
