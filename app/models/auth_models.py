"""
Authentication Flow Models.

Pydantic models for the contract between ``AuthFlowController``, the
identity provider, and the UI layer.

The outcome of the flow is a single tagged union rather than a set of
loading/error/success flags, so an error and a success message can
never be displayed at the same time.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from app.models.enums import AuthErrorCode, AuthMode


# ---------------------------------------------------------------------------
# Form state
# ---------------------------------------------------------------------------

class AuthFormState(BaseModel):
    """Values currently typed into the auth form.

    ``password`` is ignored in ``reset`` mode and ``confirm_password``
    is only read in ``signup`` mode.
    """

    email: str = ""
    password: str = ""
    confirm_password: str = ""
    reveal_password: bool = False

    model_config = {"frozen": True}

    def __repr__(self) -> str:
        # Keep passwords out of tracebacks and debug logs.
        return (
            f"AuthFormState(email={self.email!r}, password='***', "
            f"confirm_password='***', reveal_password={self.reveal_password})"
        )


# ---------------------------------------------------------------------------
# Outcome (tagged union)
# ---------------------------------------------------------------------------

class Idle(BaseModel):
    """Form shown, nothing submitted yet."""

    kind: Literal["idle"] = "idle"
    mode: AuthMode

    model_config = {"frozen": True}


class Submitting(BaseModel):
    """A submission is in flight; further submits are ignored."""

    kind: Literal["submitting"] = "submitting"
    mode: AuthMode

    model_config = {"frozen": True}


class Failed(BaseModel):
    """The last submission failed with a user-facing *message*."""

    kind: Literal["failed"] = "failed"
    mode: AuthMode
    message: str

    model_config = {"frozen": True}


class Succeeded(BaseModel):
    """The last submission succeeded and the flow stays open."""

    kind: Literal["succeeded"] = "succeeded"
    mode: AuthMode
    message: str

    model_config = {"frozen": True}


class AwaitingEmailConfirmation(BaseModel):
    """Sign-up accepted; the account must be confirmed by email."""

    kind: Literal["awaiting_email_confirmation"] = "awaiting_email_confirmation"
    email: str

    model_config = {"frozen": True}


AuthOutcome = Annotated[
    Union[Idle, Submitting, Failed, Succeeded, AwaitingEmailConfirmation],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Provider result
# ---------------------------------------------------------------------------

class AuthResult(BaseModel):
    """Result of a single identity-provider call.

    A result with ``success=False`` is a provider-classified error;
    ``error_message`` is shown to the user verbatim.

    Attributes
    ----------
    success:
        ``True`` when the operation completed without error.
    error_code:
        Structured error category (``None`` on success).
    error_message:
        Human-readable error description (``None`` on success).
    """

    success: bool
    error_code: Optional[AuthErrorCode] = None
    error_message: Optional[str] = None

    model_config = {"from_attributes": True}

    @classmethod
    def ok(cls) -> "AuthResult":
        return cls(success=True)

    @classmethod
    def fail(cls, message: str, code: AuthErrorCode = AuthErrorCode.PROVIDER_ERROR) -> "AuthResult":
        return cls(success=False, error_code=code, error_message=message)


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    """Result of the client-side checks run before a provider call.

    Attributes
    ----------
    is_valid:
        ``True`` when the form may be sent to the provider.
    error_message:
        Human-readable description of the failure, or ``None`` on success.
    """

    is_valid: bool
    error_message: Optional[str] = None
