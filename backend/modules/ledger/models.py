"""
Ledger module data models.

These models define the data structures used by the ledger module
and exposed to other modules through the interface.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

LEDGER_PREFIX = "ledger/"


def ledger_prefix(user_id: str) -> str:
    """Prefix under which a user's entries are stored, oldest first."""
    return f"{LEDGER_PREFIX}{user_id}/"


def entry_key(user_id: str, timestamp: int, entry_id: str) -> str:
    """Store key of a ledger entry. Zero-padded so keys sort by time."""
    return f"{ledger_prefix(user_id)}{timestamp:013d}-{entry_id}"


class EntryType(str, Enum):
    """Types of point movements."""

    EARN = "earn"              # Bin credit
    REDEMPTION = "redemption"  # Vendor debit


class LedgerEntry(BaseModel):
    """
    An immutable point movement.

    Earn entries are positive; redemptions store the negative magnitude.
    """

    id: str = Field(..., description="Entry ID (UUID)")
    user_id: str = Field(..., description="User whose balance moved")
    vendor_id: Optional[str] = Field(None, description="Redeeming vendor, for redemptions")
    points: int = Field(..., description="Signed point amount")
    timestamp: int = Field(..., description="Epoch milliseconds")
    type: EntryType = Field(..., description="Entry type")
    source: Optional[str] = Field(None, description="Origin of a credit, e.g. a bin ID")

    model_config = {"frozen": True}


class Balance(BaseModel):
    """A user's current point balance."""

    user_id: str = Field(..., description="User ID")
    points: int = Field(..., ge=0, description="Current balance")


class BalanceAudit(BaseModel):
    """Comparison of the cached balance against the ledger total."""

    user_id: str
    cached_points: int = Field(..., description="User.points")
    ledger_points: int = Field(..., description="Sum of the user's ledger entries")
    entry_count: int
    checked_at: datetime

    @computed_field
    @property
    def consistent(self) -> bool:
        return self.cached_points == self.ledger_points


class CreditRequest(BaseModel):
    """Credit posted by bin hardware for a scanned token."""

    token: str = Field(..., description="RFID token of the depositing user")
    points: int = Field(..., description="Points to credit")
    source: Optional[str] = Field(None, description="Bin identifier")


class RedeemRequest(BaseModel):
    """Vendor redemption of a user's points."""

    user_id: str = Field(..., description="User whose points are redeemed")
    points: int = Field(..., description="Points to redeem")
    vendor_id: Optional[str] = Field(None, description="Redeeming vendor; defaults to the caller")
