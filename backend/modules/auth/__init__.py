"""
Authentication module.

Handles sign-in, session tokens, bin hardware keys and role checks.

Public API:
- IAuthService: Interface for auth operations
- TokenPayload, SessionResponse: Token and session models
- Auth exceptions: InvalidTokenError, ExpiredTokenError, etc.
"""

from .interfaces import IAuthService
from .models import (
    PhoneSignInRequest,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    TokenPayload,
)
from .exceptions import (
    AccountNotFoundError,
    ExpiredTokenError,
    InsufficientPermissionsError,
    InvalidBinKeyError,
    InvalidTokenError,
    MissingTokenError,
)

__all__ = [
    # Interface
    "IAuthService",
    # Models
    "PhoneSignInRequest",
    "SessionResponse",
    "SignInRequest",
    "SignUpRequest",
    "TokenPayload",
    # Exceptions
    "AccountNotFoundError",
    "ExpiredTokenError",
    "InsufficientPermissionsError",
    "InvalidBinKeyError",
    "InvalidTokenError",
    "MissingTokenError",
]
