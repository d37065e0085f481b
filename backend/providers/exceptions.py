"""
External collaborator exceptions.

Raised by credential providers and notification dispatchers; the core
modules let them propagate or translate them into their own errors.
"""

from typing import Optional

from shared.exceptions import (
    AuthenticationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)


class EmailAlreadyInUseError(ConflictError):
    """Raised when a credential already exists for an email."""

    def __init__(self, email: str):
        super().__init__(
            "Email already in use",
            code="EMAIL_ALREADY_IN_USE",
            details={"email": email},
        )


class InvalidCredentialsError(AuthenticationError):
    """Raised when an email/password pair does not match."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class CredentialNotFoundError(NotFoundError):
    """Raised when no credential matches a user ID or email."""

    def __init__(self, identifier: str):
        super().__init__(
            f"Credential not found: {identifier}",
            code="CREDENTIAL_NOT_FOUND",
            details={"identifier": identifier},
        )


class InvalidCodeError(ValidationError):
    """Raised when a one-time code or reset token is wrong, used or expired."""

    def __init__(self, message: str = "Invalid or expired code"):
        super().__init__(message, code="INVALID_CODE")


class CredentialProviderError(ExternalServiceError):
    """Raised when the credential provider cannot be reached."""

    def __init__(self, message: str, provider: str = "supabase_auth"):
        super().__init__(message, service=provider, code="CREDENTIAL_PROVIDER_ERROR")


class NotificationDeliveryError(ExternalServiceError):
    """Raised when a notification could not be handed off for delivery."""

    def __init__(self, channel: str, destination: str, reason: Optional[str] = None):
        super().__init__(
            f"Failed to deliver {channel} notification",
            service="notifications",
            code="NOTIFICATION_DELIVERY_FAILED",
            details={"channel": channel, "destination": destination},
        )
        if reason:
            self.details["reason"] = reason
