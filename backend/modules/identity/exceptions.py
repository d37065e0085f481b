"""
Identity module exceptions.
"""

from shared.exceptions import ConflictError, NotFoundError, ValidationError


class UserNotFoundError(NotFoundError):
    """Raised when no User record exists for an ID."""

    def __init__(self, user_id: str):
        super().__init__(
            f"User not found: {user_id}",
            code="USER_NOT_FOUND",
            details={"user_id": user_id},
        )


class InvalidEmailError(ValidationError):
    """Raised when an email address is malformed."""

    def __init__(self, email: str, reason: str):
        super().__init__(
            f"Invalid email address: {reason}",
            code="INVALID_EMAIL",
            details={"email": email},
        )


class InvalidPhoneError(ValidationError):
    """Raised when a phone number cannot be normalized."""

    def __init__(self, phone: str):
        super().__init__(
            f"Invalid phone number: {phone}",
            code="INVALID_PHONE",
            details={"phone": phone},
        )


class WeakPasswordError(ValidationError):
    """Raised when a password is shorter than the configured minimum."""

    def __init__(self, min_length: int):
        super().__init__(
            f"Password must be at least {min_length} characters",
            code="WEAK_PASSWORD",
            details={"min_length": min_length},
        )


class InvalidNameError(ValidationError):
    """Raised when a display name is empty."""

    def __init__(self):
        super().__init__("Name is required", code="INVALID_NAME")


class PhoneAlreadyInUseError(ConflictError):
    """Raised when another user already has a phone number."""

    def __init__(self, phone: str):
        super().__init__(
            "Phone number already in use",
            code="PHONE_ALREADY_IN_USE",
            details={"phone": phone},
        )
