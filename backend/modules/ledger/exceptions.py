"""
Ledger module exceptions.

These exceptions are raised by the ledger module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from typing import Any, Optional

from shared.exceptions import AuthorizationError, NotFoundError, SmartBinError, ValidationError


class InsufficientBalanceError(SmartBinError):
    """
    Raised when a redemption exceeds the user's balance.

    Nothing is written; the caller may retry with a smaller amount.
    """

    def __init__(
        self,
        required: int,
        available: int,
        user_id: Optional[str] = None,
    ):
        super().__init__(
            f"Insufficient balance. Required: {required}, available: {available}",
            code="INSUFFICIENT_BALANCE",
            details={
                "required": required,
                "available": available,
                "shortfall": required - available,
            },
        )
        if user_id:
            self.details["user_id"] = user_id


class InvalidPointsError(ValidationError):
    """Raised when a point amount is not a positive integer."""

    def __init__(self, points: Any, reason: str = "Points must be a positive integer"):
        super().__init__(
            f"Invalid points: {points}. {reason}",
            code="INVALID_POINTS",
            details={"points": str(points), "reason": reason},
        )


class NotAVendorError(AuthorizationError):
    """Raised when a redemption names a user without the vendor role."""

    def __init__(self, vendor_id: str):
        super().__init__(
            f"User {vendor_id} is not a vendor",
            code="NOT_A_VENDOR",
            details={"vendor_id": vendor_id},
        )


class TokenNotRegisteredError(NotFoundError):
    """Raised when a bin credits a token that is not bound to any user."""

    def __init__(self, token: str):
        super().__init__(
            f"RFID {token} is not registered",
            code="TOKEN_NOT_REGISTERED",
            details={"token": token},
        )
