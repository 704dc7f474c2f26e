"""
Session Model.

The signed-in account as reported by the identity provider.  The core
never mutates a session; it only reads presence and fields for display.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class Session(BaseModel):
    """Represents the authenticated account."""

    id: str  # Supabase UUID
    email: str
    created_at: Optional[datetime] = None

    model_config = {"frozen": True, "from_attributes": True}

    @property
    def display_name(self) -> str:
        """Local part of the email, shown in the profile header."""
        return self.email.split("@", 1)[0]

    @property
    def joined_on(self) -> Optional[date]:
        """Calendar date the account was created, if known."""
        return self.created_at.date() if self.created_at is not None else None
