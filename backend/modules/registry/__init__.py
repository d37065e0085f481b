"""
RFID token registry module.

Tracks tokens scanned by bin hardware and binds them to users.

Public API:
- IRegistryService: Interface for scan/availability/claim operations
- TokenStatus, AvailabilityResult, RegistryEntry, UnclaimedToken: Models
- normalize_token: Token format check
- Registry exceptions: InvalidTokenFormatError, TokenConflictError, UserAlreadyBoundError
"""

from .interfaces import IRegistryService
from .models import (
    AvailabilityResult,
    ClaimRequest,
    RegistryEntry,
    ScanRequest,
    TokenStatus,
    UnclaimedToken,
    registry_key,
    unclaimed_key,
)
from .exceptions import InvalidTokenFormatError, TokenConflictError, UserAlreadyBoundError
from .validation import normalize_token

__all__ = [
    # Interface
    "IRegistryService",
    # Models
    "AvailabilityResult",
    "ClaimRequest",
    "RegistryEntry",
    "ScanRequest",
    "TokenStatus",
    "UnclaimedToken",
    "registry_key",
    "unclaimed_key",
    "normalize_token",
    # Exceptions
    "InvalidTokenFormatError",
    "TokenConflictError",
    "UserAlreadyBoundError",
]
