"""
Data Models Package.

Re-exports all Pydantic models for short imports:
    from app.models import AuthMode, AuthFormState, Session, GameState
"""

from __future__ import annotations

from app.models.enums import AuthErrorCode, AuthMode, SyncTrigger
from app.models.auth_models import (
    AuthFormState,
    AuthOutcome,
    AuthResult,
    AwaitingEmailConfirmation,
    Failed,
    Idle,
    Submitting,
    Succeeded,
    ValidationResult,
)
from app.models.session import Session
from app.models.analytics import AnalyticsRow, AnalyticsSnapshot, GameState, PlayerStats

__all__ = [
    "AuthErrorCode",
    "AuthMode",
    "SyncTrigger",
    "AuthFormState",
    "AuthOutcome",
    "AuthResult",
    "AwaitingEmailConfirmation",
    "Failed",
    "Idle",
    "Submitting",
    "Succeeded",
    "ValidationResult",
    "Session",
    "AnalyticsRow",
    "AnalyticsSnapshot",
    "GameState",
    "PlayerStats",
]
