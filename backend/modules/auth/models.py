"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, EmailStr

from shared.models import Principal, Session


class TokenPayload(BaseModel):
    """
    Decoded session JWT payload.

    Only identity claims are carried; role flags are re-read from the
    User record on every validation.
    """

    sub: str = Field(..., description="Subject (user ID)")
    email: Optional[str] = Field(None, description="User's email")
    exp: int = Field(..., description="Expiration timestamp")
    iat: int = Field(..., description="Issued at timestamp")
    aud: str = Field(default="authenticated", description="Audience")


class SignUpRequest(BaseModel):
    """Create an email+password credential."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class SignInRequest(BaseModel):
    """Sign in with email and password."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class PhoneSignInRequest(BaseModel):
    """Sign in with the phone number on a user's profile."""

    phone: str = Field(..., description="Phone number")
    password: str = Field(..., description="Password")


class SessionResponse(BaseModel):
    """Session snapshot returned to clients."""

    access_token: Optional[str] = Field(None, description="Bearer token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_at: Optional[datetime] = Field(None, description="Token expiry")
    principal: Optional[Principal] = Field(None, description="Signed-in principal")
    verification_state: Optional[str] = Field(None, description="Account verification state")

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls(
            access_token=session.access_token,
            expires_at=session.expires_at,
            principal=session.principal,
            verification_state=session.verification_state,
        )
