"""
Business Logic Services Package.

Contains the auth flow, the identity provider, the telemetry sync job,
and the scheduler they share.

The ``create_services()`` factory wires every repository and service
together, returning a typed dict that the front end can consume
without knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import Callable, Optional, TypedDict

from app.auth import SessionManager
from app.config import AppConfig
from app.database import DatabaseManager
from app.logger import StructuredLogger, get_logger
from app.repositories.analytics_repository import AnalyticsRepository
from app.services.auth_flow import AuthFlowController
from app.services.scheduler import ThreadScheduler
from app.services.session_provider import SupabaseSessionProvider
from app.services.telemetry_sync import TelemetrySyncJob


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    session_provider: SupabaseSessionProvider
    auth_flow: AuthFlowController
    analytics_repository: AnalyticsRepository
    scheduler: ThreadScheduler
    telemetry_sync: TelemetrySyncJob


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    session: SessionManager,
    on_auth_complete: Optional[Callable[[], None]] = None,
    logger: Optional[StructuredLogger] = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    telemetry job is created detached; call ``attach(session)`` on it
    to bind it to the session lifetime.

    Args:
        db: Connection manager with the Supabase client (or offline).
        config: Application configuration.
        session: Shared session holder.
        on_auth_complete: Flow-complete callback for the auth form.
        logger: Logger for every service; defaults to ``get_logger("services")``.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = logger or get_logger("services")

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    analytics_repo = AnalyticsRepository(
        db=db, logger=logger, table=config.ANALYTICS_TABLE,
    )

    # ------------------------------------------------------------------
    # 2. Leaf services
    # ------------------------------------------------------------------
    scheduler = ThreadScheduler(logger=logger, name="TelemetrySync")
    session_provider = SupabaseSessionProvider(
        db=db,
        session=session,
        config=config,
        logger=logger,
    )

    # ------------------------------------------------------------------
    # 3. Orchestration services
    # ------------------------------------------------------------------
    auth_flow = AuthFlowController(
        provider=session_provider,
        logger=logger,
        config=config,
        on_complete=on_auth_complete,
    )
    telemetry_sync = TelemetrySyncJob(
        store=analytics_repo,
        scheduler=scheduler,
        config=config,
        logger=logger,
    )

    return ServiceContainer(
        session_provider=session_provider,
        auth_flow=auth_flow,
        analytics_repository=analytics_repo,
        scheduler=scheduler,
        telemetry_sync=telemetry_sync,
    )
