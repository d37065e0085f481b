"""Base classes and models for external collaborators.

The core never stores credentials or delivers messages itself. It talks to
a CredentialProvider (sign-up, sign-in, email links, phone OTPs, password
resets) and a NotificationDispatcher (email/SMS delivery) through these
abstract interfaces.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class NotificationChannel(str, Enum):
    """Delivery channels supported by the notification dispatcher."""

    EMAIL = "email"
    SMS = "sms"


class CredentialInfo(BaseModel):
    """Public view of a stored credential.

    Attributes:
        user_id: Canonical user ID allocated by the provider
        email: Email address the credential signs in with
        phone: Phone number linked to the credential, if any
    """

    model_config = {"frozen": True}

    user_id: str
    email: str
    phone: Optional[str] = None


class CredentialProvider(ABC):
    """Abstract base class for auth credential providers."""

    @abstractmethod
    async def create_credential(self, email: str, password: str) -> str:
        """Create an email+password credential.

        Returns:
            The newly allocated user ID

        Raises:
            EmailAlreadyInUseError: If a credential already uses the email
        """

    @abstractmethod
    async def delete_credential(self, user_id: str) -> None:
        """Delete a credential.

        Raises:
            CredentialNotFoundError: If no credential has the user ID
        """

    @abstractmethod
    async def verify_credential(self, email: str, password: str) -> str:
        """Check an email+password pair.

        Returns:
            The user ID owning the credential

        Raises:
            InvalidCredentialsError: If the pair does not match
        """

    @abstractmethod
    async def get_credential(self, user_id: str) -> CredentialInfo:
        """Look up a credential by user ID.

        Raises:
            CredentialNotFoundError: If no credential has the user ID
        """

    @abstractmethod
    async def issue_email_link_token(self, user_id: str) -> str:
        """Issue an opaque token to embed in an email verification link."""

    @abstractmethod
    async def issue_phone_otp(self, phone_number: str) -> str:
        """Send a one-time code to a phone number.

        Never creates a credential; the number is expected to be linked to
        one already with link_phone().

        Returns:
            Verification session ID the code is bound to
        """

    @abstractmethod
    async def consume_phone_otp(self, session_id: str, code: str) -> Optional[str]:
        """Consume a one-time code, exactly once.

        Returns:
            User ID linked to the phone number, or None if no credential has it

        Raises:
            InvalidCodeError: If the code is wrong, consumed or expired
        """

    @abstractmethod
    async def reset_password(self, email: str) -> None:
        """Send a password reset token to the credential's email.

        Raises:
            CredentialNotFoundError: If no credential uses the email
        """

    @abstractmethod
    async def confirm_password_reset(self, reset_token: str, new_password: str) -> str:
        """Consume a password reset token and set a new password.

        Returns:
            User ID whose password changed

        Raises:
            InvalidCodeError: If the token is unknown, consumed or expired
        """

    @abstractmethod
    async def update_email(self, user_id: str, new_email: str) -> None:
        """Change the email a credential signs in with.

        Raises:
            EmailAlreadyInUseError: If another credential uses the email
        """

    @abstractmethod
    async def update_password(self, user_id: str, new_password: str) -> None:
        """Replace a credential's password."""

    async def link_phone(self, user_id: str, phone_number: Optional[str]) -> None:
        """Record the phone number used for phone sign-in.

        Providers that resolve phone numbers themselves can ignore this.
        """
        return None


class NotificationDispatcher(ABC):
    """Abstract base class for notification delivery."""

    @abstractmethod
    async def send(
        self,
        channel: NotificationChannel,
        destination: str,
        payload: dict[str, Any],
    ) -> str:
        """Deliver a notification.

        Args:
            channel: Email or SMS
            destination: Email address or E.164 phone number
            payload: Template name and variables

        Returns:
            Delivery ID

        Raises:
            NotificationDeliveryError: If the message could not be handed off
        """
