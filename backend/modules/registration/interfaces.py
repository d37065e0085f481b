"""
Registration module interface.
"""

from datetime import datetime
from typing import Protocol, Optional, runtime_checkable

from shared.models import Principal, Session

from .models import CompensationOutcome, PendingRegistration, PurgeResult, RegistrationResult


@runtime_checkable
class IRegistrationService(Protocol):
    """
    Interface for turning a claimable token into a registered account.

    The direct path is a saga: credential creation, then one store
    transaction for the User and the token claim, then verification.
    Any failure after the credential exists runs
    compensate_failed_registration() before the error is re-raised.
    """

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        token: str,
        phone: Optional[str] = None,
    ) -> RegistrationResult:
        """
        Register a new account and bind token to it.

        Raises:
            ValidationError: If any field is malformed (nothing is written)
            TokenNotAvailableError: If the token is registered or unknown
            EmailAlreadyInUseError: If a credential already uses the email
            PhoneAlreadyInUseError: If another account already uses the phone
            TokenConflictError: If a concurrent registration claimed the token first
        """
        ...

    async def compensate_failed_registration(
        self,
        user_id: str,
        token: str,
        committed: bool,
        scanned_at: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> CompensationOutcome:
        """
        Undo a registration that failed after its credential was created.

        Best-effort: failures are logged and listed on the outcome, never
        raised.
        """
        ...

    async def begin_deferred_registration(
        self,
        name: str,
        email: str,
        token: str,
        phone: Optional[str] = None,
    ) -> PendingRegistration:
        """Hold registration details until the caller signs in with a verified email."""
        ...

    async def get_pending_registration(self, pending_id: str) -> PendingRegistration:
        """
        Raises:
            PendingRegistrationNotFoundError: If missing or expired
        """
        ...

    async def complete_registration(self, session: Session, pending_id: str) -> RegistrationResult:
        """
        Materialize the User, bind the token and drop the pending record atomically.

        Raises:
            EmailNotVerifiedError: If the caller's email is not verified
            EmailMismatchError: If the caller is not the pending registration's email
            PendingRegistrationNotFoundError: If missing or expired
            TokenConflictError: If the token was claimed meanwhile
            PhoneAlreadyInUseError: If another account took the phone meanwhile
        """
        ...

    async def purge_expired_pending_registrations(self, principal: Principal) -> PurgeResult:
        """Delete pending registrations older than the TTL. Admin only."""
        ...
