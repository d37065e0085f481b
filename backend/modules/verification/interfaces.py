"""
Verification module interface.

The state machine exposes only poll-style queries; it owns no timers.
Callers schedule polling and enforce the resend cooldown themselves
using poll_verification_status() / can_resend().
"""

from typing import Protocol, runtime_checkable

from shared.models import Session

from .models import PhoneVerificationStarted, VerificationStatus


@runtime_checkable
class IVerificationService(Protocol):
    """Interface for the account verification state machine."""

    async def start_email_verification(self, user_id: str) -> VerificationStatus:
        """
        Issue an email link token and send it.

        Any previously issued token or phone session stops working.

        Raises:
            AlreadyVerifiedError: If the account is verified or active
        """
        ...

    async def resend_email_verification(self, user_id: str) -> VerificationStatus:
        """
        Replace the pending email token with a new one.

        Raises:
            VerificationNotPendingError: If no email verification is pending
        """
        ...

    async def confirm_email_link(self, user_id: str, token: str) -> VerificationStatus:
        """
        Consume an email link token and mark the account verified.

        Raises:
            InvalidOrExpiredCodeError: If the token is wrong, superseded, used or expired
        """
        ...

    async def start_phone_verification(self, user_id: str, phone: str) -> PhoneVerificationStarted:
        """Send a one-time code to phone and return the session to confirm against."""
        ...

    async def confirm_phone_code(self, user_id: str, session_id: str, code: str) -> VerificationStatus:
        """
        Consume a phone code and mark the account verified.

        Raises:
            InvalidCodeFormatError: If code is not all digits of the right length
            InvalidOrExpiredCodeError: If the code or session is wrong, used or expired
        """
        ...

    async def activate(self, session: Session, user_id: str) -> Session:
        """
        Activate a verified account for its own signed-in principal.

        Returns:
            A new Session snapshot for the activated account

        Raises:
            InsufficientPermissionsError: If the session belongs to someone else
            NotVerifiedError: If no channel was confirmed yet
        """
        ...

    async def poll_verification_status(self, user_id: str) -> VerificationStatus:
        """Current state and time since the last issuance."""
        ...

    async def can_resend(self, user_id: str) -> bool:
        """Whether the resend cooldown has elapsed."""
        ...

    async def request_password_reset(self, email: str) -> None:
        """Send a password reset token. Verification state is untouched."""
        ...

    async def confirm_password_reset(self, token: str, new_password: str) -> str:
        """Consume a reset token and set the new password. Returns the user ID."""
        ...
