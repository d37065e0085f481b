"""
Identity module.

Owns the User record: lookups, profile updates, reauthenticated email and
password changes, and role grants.

Public API:
- IIdentityService: Interface for user operations
- User, UserStatus: User record
- Identity exceptions: UserNotFoundError, WeakPasswordError, etc.
"""

from .interfaces import IIdentityService
from .models import (
    ChangeEmailRequest,
    ChangePasswordRequest,
    UpdateProfileRequest,
    User,
    UserStatus,
    user_key,
)
from .exceptions import (
    InvalidEmailError,
    InvalidNameError,
    InvalidPhoneError,
    PhoneAlreadyInUseError,
    UserNotFoundError,
    WeakPasswordError,
)

__all__ = [
    # Interface
    "IIdentityService",
    # Models
    "ChangeEmailRequest",
    "ChangePasswordRequest",
    "UpdateProfileRequest",
    "User",
    "UserStatus",
    "user_key",
    # Exceptions
    "InvalidEmailError",
    "InvalidNameError",
    "InvalidPhoneError",
    "PhoneAlreadyInUseError",
    "UserNotFoundError",
    "WeakPasswordError",
]
