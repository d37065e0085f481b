"""
Token registry exceptions.
"""

from shared.exceptions import ConflictError, ValidationError


class InvalidTokenFormatError(ValidationError):
    """Raised when an RFID token is not exactly 8 hex characters."""

    def __init__(self, token: str):
        super().__init__(
            "RFID token must be exactly 8 hexadecimal characters",
            code="INVALID_TOKEN_FORMAT",
            details={"token": token},
        )


class TokenConflictError(ConflictError):
    """
    Raised when a claim cannot bind a token.

    Either another user holds the token (status "registered") or it was
    never scanned (status "unknown"). Callers should re-check availability.
    """

    def __init__(self, token: str, status: str):
        super().__init__(
            f"RFID {token} cannot be claimed: {status}",
            code="TOKEN_CONFLICT",
            details={"token": token, "status": status},
        )


class UserAlreadyBoundError(ConflictError):
    """Raised when a user who already holds an RFID claims a different one."""

    def __init__(self, user_id: str, token: str):
        super().__init__(
            f"User {user_id} already holds RFID {token}",
            code="USER_ALREADY_BOUND",
            details={"user_id": user_id, "token": token},
        )
