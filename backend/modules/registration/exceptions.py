"""
Registration module exceptions.
"""

from shared.exceptions import AuthorizationError, ConflictError, NotFoundError


class TokenNotAvailableError(ConflictError):
    """
    Raised when registering with a token that is not in the unclaimed pool.

    The status detail tells the client whether the token is already
    registered or was never scanned.
    """

    def __init__(self, token: str, status: str):
        super().__init__(
            f"RFID {token} is not available for registration ({status})",
            code="TOKEN_NOT_AVAILABLE",
            details={"token": token, "status": status},
        )


class PendingRegistrationNotFoundError(NotFoundError):
    """Raised when a pending registration is missing or has expired."""

    def __init__(self, pending_id: str):
        super().__init__(
            f"Pending registration not found or expired: {pending_id}",
            code="PENDING_REGISTRATION_NOT_FOUND",
            details={"pending_id": pending_id},
        )


class UserAlreadyExistsError(ConflictError):
    """Raised when completing a registration for an account that already has a User."""

    def __init__(self, user_id: str):
        super().__init__(
            "Account is already registered",
            code="USER_ALREADY_EXISTS",
            details={"user_id": user_id},
        )


class EmailNotVerifiedError(AuthorizationError):
    """Raised when completing a registration before the caller's email is verified."""

    def __init__(self, state: str):
        super().__init__(
            "Email must be verified before completing registration",
            code="EMAIL_NOT_VERIFIED",
            details={"state": state},
        )


class EmailMismatchError(AuthorizationError):
    """Raised when the signed-in email differs from the pending registration's."""

    def __init__(self):
        super().__init__(
            "Signed-in account does not match the pending registration",
            code="EMAIL_MISMATCH",
        )
