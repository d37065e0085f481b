"""
Ledger module interface.

Other modules should depend on ILedgerService, not the concrete implementation.
"""

from typing import Protocol, Optional, runtime_checkable

from shared.models import Principal

from .models import Balance, BalanceAudit, LedgerEntry


@runtime_checkable
class ILedgerService(Protocol):
    """
    Interface for point movements.

    Every entry is appended in the same store transaction that updates
    the user's cached balance, so User.points always equals the sum of
    the user's entries.
    """

    async def credit(self, user_id: str, points: int, source: Optional[str] = None) -> LedgerEntry:
        """
        Append an earn entry and increase the balance.

        Raises:
            InvalidPointsError: If points is not a positive integer
            UserNotFoundError: If the user doesn't exist
        """
        ...

    async def credit_by_token(self, token: str, points: int, source: Optional[str] = None) -> LedgerEntry:
        """
        Credit the user bound to an RFID token.

        Raises:
            TokenNotRegisteredError: If no user is bound to the token
        """
        ...

    async def redeem(
        self,
        user_id: str,
        vendor_id: str,
        points: int,
        principal: Optional[Principal] = None,
    ) -> LedgerEntry:
        """
        Append a redemption entry and decrease the balance.

        The balance check and the debit happen in one transaction.
        When a principal is given it must be the vendor itself or an admin.

        Raises:
            InsufficientBalanceError: If points exceeds the balance
            NotAVendorError: If vendor_id lacks the vendor role
            InsufficientPermissionsError: If the principal may not redeem as vendor_id
        """
        ...

    async def get_balance(self, user_id: str) -> Balance:
        """Get a user's current balance."""
        ...

    async def get_entries(self, user_id: str, limit: int = 50, offset: int = 0) -> list[LedgerEntry]:
        """Get a user's entries, most recent first."""
        ...

    async def get_vendor_entries(self, vendor_id: str, limit: int = 50, offset: int = 0) -> list[LedgerEntry]:
        """Get the redemptions made by a vendor, most recent first."""
        ...

    async def audit_balance(self, user_id: str) -> BalanceAudit:
        """
        Compare the cached balance with the ledger total.

        Reads are not transactional; run it while the user has no credit or
        redemption in flight.
        """
        ...
