"""
Base exception classes for the SmartBin backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application.
"""

from typing import Optional, Any


class SmartBinError(Exception):
    """
    Base exception for all SmartBin errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(SmartBinError):
    """Resource not found."""

    pass


class ValidationError(SmartBinError):
    """Input validation failed. Raised before any write."""

    pass


class ConflictError(SmartBinError):
    """
    The operation lost a race or collides with existing state.

    Callers must re-query and decide; the core never retries these.
    """

    pass


class AuthenticationError(SmartBinError):
    """Authentication failed (invalid or missing credentials)."""

    pass


class AuthorizationError(SmartBinError):
    """Authorization failed (insufficient permissions)."""

    pass


class TransientError(SmartBinError):
    """
    Store or network unavailability.

    The failed operation was not partially applied and is safe to retry.
    """

    pass


class ExternalServiceError(SmartBinError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service
