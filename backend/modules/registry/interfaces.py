"""
Token registry interface.
"""

from datetime import datetime
from typing import Protocol, Optional, runtime_checkable

from shared.models import Principal
from shared.store import TransactionContext

from .models import AvailabilityResult, RegistryEntry, UnclaimedToken


@runtime_checkable
class IRegistryService(Protocol):
    """Interface for RFID token scanning, availability and claims."""

    async def record_scan(self, token: str) -> AvailabilityResult:
        """
        Record a bin scan of a token.

        Bound tokens are accepted without effect; otherwise the unclaimed
        pool entry is upserted (latest scan wins).

        Raises:
            InvalidTokenFormatError: If token is malformed
        """
        ...

    async def check_availability(self, token: str) -> AvailabilityResult:
        """Report whether a token is registered, available or unknown."""
        ...

    async def claim(
        self,
        token: str,
        user_id: str,
        principal: Optional[Principal] = None,
    ) -> RegistryEntry:
        """
        Atomically bind an available token to user_id and record it on the User.

        When a principal is given it must be user_id itself or an admin.

        Raises:
            TokenConflictError: If the token is bound to another user or unknown
            UserNotFoundError: If user_id has no User record
            UserAlreadyBoundError: If the user already holds a different token
            InsufficientPermissionsError: If the principal may not claim for user_id
        """
        ...

    def apply_claim(
        self,
        ctx: TransactionContext,
        token: str,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> RegistryEntry:
        """
        Stage a claim inside an open transaction.

        ctx must declare registry_key(token) and unclaimed_key(token).
        """
        ...

    async def get_bound_user(self, token: str) -> Optional[str]:
        """User bound to a token, or None."""
        ...

    async def list_unclaimed(self, principal: Principal) -> list[UnclaimedToken]:
        """List the unclaimed pool, newest scan first. Admin only."""
        ...
