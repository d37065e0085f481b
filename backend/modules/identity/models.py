"""
Identity module data models.

The User record is owned by the identity module; every other module
refers to it by ID and only touches it inside store transactions.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, EmailStr

USER_PREFIX = "users/"


def user_key(user_id: str) -> str:
    """Store key of a User record."""
    return f"{USER_PREFIX}{user_id}"


class UserStatus(str, Enum):
    """Account status."""

    UNVERIFIED = "unverified"
    ACTIVE = "active"


class User(BaseModel):
    """
    A registered user.

    ``points`` caches the sum of the user's ledger entries and is only
    changed in the same transaction that appends an entry. ``is_admin``
    and ``is_vendor`` are monotone: once granted they are never cleared.
    """

    id: str = Field(..., description="User ID, allocated by the credential provider")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address (lowercase)")
    phone: Optional[str] = Field(None, description="Phone number, +digits")
    token: Optional[str] = Field(None, description="Bound RFID token")
    created_at: datetime = Field(..., description="Record creation time")
    joined_at: datetime = Field(..., description="Time the account joined")
    verified: bool = Field(default=False, description="Whether a channel was confirmed")
    points: int = Field(default=0, ge=0, description="Cached point balance")
    is_admin: bool = Field(default=False, description="Admin role")
    is_vendor: bool = Field(default=False, description="Vendor role")
    status: UserStatus = Field(default=UserStatus.UNVERIFIED, description="Account status")


class UpdateProfileRequest(BaseModel):
    """Profile fields a user may change without reauthenticating."""

    name: Optional[str] = Field(None, description="New display name")
    phone: Optional[str] = Field(None, description="New phone number")


class ChangeEmailRequest(BaseModel):
    """Change the sign-in email. Requires the current password."""

    current_password: str = Field(..., description="Current password")
    new_email: EmailStr = Field(..., description="New email address")


class ChangePasswordRequest(BaseModel):
    """Change the password. Requires the current password."""

    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., description="New password")
