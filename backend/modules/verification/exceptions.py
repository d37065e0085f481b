"""
Verification module exceptions.
"""

from shared.exceptions import ConflictError, SmartBinError, ValidationError


class InvalidOrExpiredCodeError(ValidationError):
    """
    Raised when an email link token or phone code is wrong, superseded,
    already consumed or past its expiry.
    """

    def __init__(self, channel: str, message: str = "Invalid or expired verification code"):
        super().__init__(
            message,
            code="INVALID_OR_EXPIRED_CODE",
            details={"channel": channel},
        )


class InvalidCodeFormatError(ValidationError):
    """Raised when a phone code is not the expected number of digits."""

    def __init__(self, length: int):
        super().__init__(
            f"Verification code must be {length} digits",
            code="INVALID_CODE_FORMAT",
            details={"length": length},
        )


class AlreadyVerifiedError(ConflictError):
    """Raised when a token is requested for an account that is already verified."""

    def __init__(self, user_id: str, state: str):
        super().__init__(
            "Account is already verified",
            code="ALREADY_VERIFIED",
            details={"user_id": user_id, "state": state},
        )


class VerificationNotPendingError(ConflictError):
    """Raised when resending for an account with no pending email verification."""

    def __init__(self, user_id: str, state: str):
        super().__init__(
            "No email verification is pending for this account",
            code="VERIFICATION_NOT_PENDING",
            details={"user_id": user_id, "state": state},
        )


class NotVerifiedError(ConflictError):
    """Raised when activating an account that has not confirmed a channel."""

    def __init__(self, user_id: str, state: str):
        super().__init__(
            "Account must be verified before activation",
            code="NOT_VERIFIED",
            details={"user_id": user_id, "state": state},
        )


class ResendCooldownError(SmartBinError):
    """Raised by the API when a resend comes before the cooldown elapsed."""

    def __init__(self, retry_after: int):
        super().__init__(
            f"Please wait {retry_after} seconds before requesting another code",
            code="RESEND_COOLDOWN",
            details={"retry_after": retry_after},
        )
