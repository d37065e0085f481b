"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
from pydantic import BaseModel, Field

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def epoch_millis(moment: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    return int(moment.timestamp() * 1000)


class Principal(BaseModel):
    """
    The authenticated caller of an operation.

    Populated from a validated session token (users) or a bin API key
    (hardware) and passed explicitly to every authorized operation.
    Role flags are read from the User record, never from the token.
    """

    id: str = Field(..., description="User ID, or bin identifier for hardware")
    email: Optional[str] = Field(None, description="Email address for user principals")
    email_verified: bool = Field(default=False, description="Whether the email is verified")
    is_admin: bool = Field(default=False, description="Admin role flag")
    is_vendor: bool = Field(default=False, description="Vendor role flag")
    is_bin: bool = Field(default=False, description="True for bin hardware callers")

    model_config = {
        "frozen": True,  # Make immutable for safety
        "extra": "ignore",
    }


class Session(BaseModel):
    """
    Immutable session snapshot.

    Every session-changing operation returns a new Session instead of
    mutating shared state.
    """

    principal: Optional[Principal] = Field(None, description="Signed-in principal, None when anonymous")
    access_token: Optional[str] = Field(None, description="Bearer token for the principal")
    expires_at: Optional[datetime] = Field(None, description="Token expiry")
    verification_state: Optional[str] = Field(
        None,
        description="Verification state of the principal's account at snapshot time",
    )

    model_config = {"frozen": True}

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None
