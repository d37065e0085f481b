"""
Registration module.

Turns a claimable RFID token plus user details into a registered account,
either directly (credential first, verification afterwards) or deferred
(details held until the caller's email is verified).

Public API:
- IRegistrationService: Interface for registration operations
- RegisterRequest, PendingRegistration, RegistrationResult, CompensationOutcome: Models
- Registration exceptions: TokenNotAvailableError, PendingRegistrationNotFoundError, etc.
"""

from .interfaces import IRegistrationService
from .models import (
    BeginRegistrationRequest,
    CompensationOutcome,
    PendingRegistration,
    PurgeResult,
    RegisterRequest,
    RegistrationResult,
    pending_key,
)
from .exceptions import (
    EmailMismatchError,
    EmailNotVerifiedError,
    PendingRegistrationNotFoundError,
    TokenNotAvailableError,
    UserAlreadyExistsError,
)

__all__ = [
    # Interface
    "IRegistrationService",
    # Models
    "BeginRegistrationRequest",
    "CompensationOutcome",
    "PendingRegistration",
    "PurgeResult",
    "RegisterRequest",
    "RegistrationResult",
    "pending_key",
    # Exceptions
    "EmailMismatchError",
    "EmailNotVerifiedError",
    "PendingRegistrationNotFoundError",
    "TokenNotAvailableError",
    "UserAlreadyExistsError",
]
