"""
Verification module data models.

One VerificationRecord per account holds the state and the single live
email token or phone session. Issuing a new token overwrites the record,
which invalidates the previous one in the same write.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, EmailStr

VERIFICATION_PREFIX = "verifications/"


def verification_key(user_id: str) -> str:
    """Store key of an account's verification record."""
    return f"{VERIFICATION_PREFIX}{user_id}"


class VerificationState(str, Enum):
    """States of the account verification flow."""

    CREATED = "created"
    PENDING_EMAIL_VERIFICATION = "pending_email_verification"
    PENDING_PHONE_VERIFICATION = "pending_phone_verification"
    VERIFIED = "verified"
    ACTIVE = "active"


VERIFIED_STATES = frozenset({VerificationState.VERIFIED, VerificationState.ACTIVE})


class VerificationChannel(str, Enum):
    """Channel used to prove ownership."""

    EMAIL = "email"
    PHONE = "phone"


class VerificationRecord(BaseModel):
    """Stored verification state for one account."""

    user_id: str = Field(..., description="Account being verified")
    state: VerificationState = Field(default=VerificationState.CREATED)
    channel: Optional[VerificationChannel] = Field(None, description="Channel of the live token")
    token_hash: Optional[str] = Field(None, description="SHA-256 of the live email token")
    phone: Optional[str] = Field(None, description="Phone number being verified")
    phone_session_id: Optional[str] = Field(None, description="Live OTP session")
    issued_at: Optional[datetime] = Field(None, description="Last issuance time")
    expires_at: Optional[datetime] = Field(None, description="Expiry of the live token")
    consumed: bool = Field(default=False, description="Whether the live token was used")
    send_count: int = Field(default=0, ge=0, description="Tokens issued so far")
    verified_at: Optional[datetime] = Field(None)
    activated_at: Optional[datetime] = Field(None)


class VerificationStatus(BaseModel):
    """Pollable view of an account's verification progress."""

    user_id: str
    state: VerificationState
    channel: Optional[VerificationChannel] = None
    last_issued_at: Optional[datetime] = None
    seconds_since_last_issue: Optional[float] = Field(
        None, description="Elapsed time since the last token was issued"
    )
    can_resend: bool = Field(..., description="Whether the resend cooldown has elapsed")
    expires_at: Optional[datetime] = None
    delivery_failed: bool = Field(
        default=False, description="Set when the notification could not be handed off"
    )


class PhoneVerificationStarted(BaseModel):
    """Result of starting phone verification."""

    session_id: str = Field(..., description="OTP session to confirm against")
    status: VerificationStatus


class ConfirmEmailRequest(BaseModel):
    user_id: str = Field(..., description="Account the link was issued for")
    token: str = Field(..., description="Token from the verification link")


class StartPhoneRequest(BaseModel):
    phone: str = Field(..., description="Phone number to send the code to")


class ConfirmPhoneRequest(BaseModel):
    session_id: str = Field(..., description="Session from the start call")
    code: str = Field(..., description="One-time code")


class PasswordResetRequest(BaseModel):
    email: EmailStr = Field(..., description="Account email")


class ConfirmPasswordResetRequest(BaseModel):
    token: str = Field(..., description="Reset token from the email")
    new_password: str = Field(..., description="New password")
