"""
Verification module.

Drives an account from creation through email-link or phone-code
confirmation to activation, and handles password reset requests.

Public API:
- IVerificationService: Interface for the verification state machine
- VerificationState, VerificationStatus, VerificationRecord: Models
- Verification exceptions: InvalidOrExpiredCodeError, NotVerifiedError, etc.
"""

from .interfaces import IVerificationService
from .models import (
    VERIFIED_STATES,
    ConfirmEmailRequest,
    ConfirmPasswordResetRequest,
    ConfirmPhoneRequest,
    PasswordResetRequest,
    PhoneVerificationStarted,
    StartPhoneRequest,
    VerificationChannel,
    VerificationRecord,
    VerificationState,
    VerificationStatus,
    verification_key,
)
from .exceptions import (
    AlreadyVerifiedError,
    InvalidCodeFormatError,
    InvalidOrExpiredCodeError,
    NotVerifiedError,
    ResendCooldownError,
    VerificationNotPendingError,
)

__all__ = [
    # Interface
    "IVerificationService",
    # Models
    "VERIFIED_STATES",
    "ConfirmEmailRequest",
    "ConfirmPasswordResetRequest",
    "ConfirmPhoneRequest",
    "PasswordResetRequest",
    "PhoneVerificationStarted",
    "StartPhoneRequest",
    "VerificationChannel",
    "VerificationRecord",
    "VerificationState",
    "VerificationStatus",
    "verification_key",
    # Exceptions
    "AlreadyVerifiedError",
    "InvalidCodeFormatError",
    "InvalidOrExpiredCodeError",
    "NotVerifiedError",
    "ResendCooldownError",
    "VerificationNotPendingError",
]
