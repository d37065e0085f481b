"""
Token registry data models.

A token is unbound, pending (an UnclaimedToken exists) or bound (a
RegistryEntry exists), never pending and bound at once.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

REGISTRY_PREFIX = "rfid-registry/"
UNCLAIMED_PREFIX = "unclaimed-rfids/"


def registry_key(token: str) -> str:
    """Store key of a token's binding."""
    return f"{REGISTRY_PREFIX}{token}"


def unclaimed_key(token: str) -> str:
    """Store key of a token in the unclaimed pool."""
    return f"{UNCLAIMED_PREFIX}{token}"


class TokenStatus(str, Enum):
    """Availability of a token for claiming."""

    REGISTERED = "registered"
    AVAILABLE = "available"
    UNKNOWN = "unknown"


STATUS_MESSAGES = {
    TokenStatus.REGISTERED: "RFID already registered",
    TokenStatus.AVAILABLE: "RFID available",
    TokenStatus.UNKNOWN: "RFID not scanned yet",
}


class RegistryEntry(BaseModel):
    """Binding of a token to a user."""

    token: str = Field(..., description="Normalized token")
    user_id: str = Field(..., description="Bound user")
    claimed_at: datetime = Field(..., description="Claim time")

    model_config = {"frozen": True}


class UnclaimedToken(BaseModel):
    """A token scanned by a bin but not yet claimed."""

    token: str = Field(..., description="Normalized token")
    scanned_at: datetime = Field(..., description="Latest scan time")

    model_config = {"frozen": True}


class AvailabilityResult(BaseModel):
    """Three-way availability answer for a token."""

    token: str
    status: TokenStatus
    message: str
    scanned_at: Optional[datetime] = Field(None, description="Latest scan, when available")

    @classmethod
    def of(cls, token: str, status: TokenStatus, scanned_at: Optional[datetime] = None) -> "AvailabilityResult":
        return cls(token=token, status=status, message=STATUS_MESSAGES[status], scanned_at=scanned_at)


class ScanRequest(BaseModel):
    """Scan event posted by bin hardware."""

    token: str = Field(..., description="RFID token as read by the bin")


class ClaimRequest(BaseModel):
    """Bind a token. user_id defaults to the caller."""

    user_id: Optional[str] = Field(None, description="User to bind the token to")
