"""
Registration module data models.
"""

from datetime import datetime, timedelta
from typing import Optional
from pydantic import BaseModel, Field, EmailStr

from modules.identity.models import User
from modules.verification.models import VerificationStatus

PENDING_PREFIX = "pending-registrations/"


def pending_key(pending_id: str) -> str:
    """Store key of a pending registration."""
    return f"{PENDING_PREFIX}{pending_id}"


class RegisterRequest(BaseModel):
    """Direct registration: credential, User and token claim in one call."""

    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")
    token: str = Field(..., description="RFID token to bind")
    phone: Optional[str] = Field(None, description="Phone number")


class BeginRegistrationRequest(BaseModel):
    """Deferred registration: details held until the email is verified."""

    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Email address")
    token: str = Field(..., description="RFID token to bind")
    phone: Optional[str] = Field(None, description="Phone number")


class PendingRegistration(BaseModel):
    """Registration details waiting for a verified sign-in."""

    id: str = Field(..., description="Pending registration ID")
    name: str
    email: str
    phone: Optional[str] = None
    token: str = Field(..., description="Normalized RFID token")
    created_at: datetime

    model_config = {"frozen": True}

    def is_expired(self, now: datetime, ttl_hours: int) -> bool:
        return now >= self.created_at + timedelta(hours=ttl_hours)


class RegistrationResult(BaseModel):
    """Outcome of a successful registration."""

    user: User
    verification: VerificationStatus


class CompensationOutcome(BaseModel):
    """What the rollback of a failed registration managed to undo."""

    user_id: str
    token: str
    reason: Optional[str] = None
    records_removed: bool = Field(default=False, description="User, binding and verification record rolled back")
    credential_deleted: bool = Field(default=False)
    errors: list[str] = Field(default_factory=list, description="Compensation steps that failed")


class PurgeResult(BaseModel):
    """Expired pending registrations removed by a purge."""

    purged: list[str] = Field(default_factory=list)
