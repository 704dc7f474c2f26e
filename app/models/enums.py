"""
Shared Enumerations for Questline Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents,
so code like ``if mode == "signup"`` continues to work.
"""

from __future__ import annotations
from enum import StrEnum


class AuthMode(StrEnum):
    """Which form the auth flow is showing.

    The mode decides which fields are relevant and which provider
    operation ``submit()`` invokes.
    """

    SIGN_IN = "signin"
    SIGN_UP = "signup"
    RESET = "reset"


class AuthErrorCode(StrEnum):
    """Categories of failed auth results."""

    VALIDATION_ERROR = "validation_error"
    PROVIDER_ERROR = "provider_error"
    NETWORK_ERROR = "network_error"
    UNEXPECTED_ERROR = "unexpected_error"


class SyncTrigger(StrEnum):
    """What caused an analytics write sequence to run."""

    INITIAL = "initial"
    PERIODIC = "periodic"
    DEBOUNCE = "debounce"
    MANUAL = "manual"
