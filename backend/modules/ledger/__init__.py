"""
Ledger module.

Append-only record of point movements: bin credits and vendor redemptions.

Public API:
- ILedgerService: Interface for ledger operations
- LedgerEntry, EntryType, Balance, BalanceAudit: Models
- Ledger exceptions: InsufficientBalanceError, InvalidPointsError, etc.
"""

from .interfaces import ILedgerService
from .models import (
    Balance,
    BalanceAudit,
    CreditRequest,
    EntryType,
    LedgerEntry,
    RedeemRequest,
)
from .exceptions import (
    InsufficientBalanceError,
    InvalidPointsError,
    NotAVendorError,
    TokenNotRegisteredError,
)

__all__ = [
    # Interface
    "ILedgerService",
    # Models
    "Balance",
    "BalanceAudit",
    "CreditRequest",
    "EntryType",
    "LedgerEntry",
    "RedeemRequest",
    # Exceptions
    "InsufficientBalanceError",
    "InvalidPointsError",
    "NotAVendorError",
    "TokenNotRegisteredError",
]
