"""External collaborators: credential provider and notification dispatcher."""

from .base import CredentialInfo, CredentialProvider, NotificationChannel, NotificationDispatcher
from .credentials import InMemoryCredentialProvider, SupabaseCredentialProvider
from .exceptions import (
    CredentialNotFoundError,
    CredentialProviderError,
    EmailAlreadyInUseError,
    InvalidCodeError,
    InvalidCredentialsError,
    NotificationDeliveryError,
)
from .factory import create_credential_provider, create_notification_dispatcher
from .notifications import Delivery, LoggingNotificationDispatcher, OutboxNotificationDispatcher

__all__ = [
    "CredentialInfo",
    "CredentialProvider",
    "NotificationChannel",
    "NotificationDispatcher",
    "InMemoryCredentialProvider",
    "SupabaseCredentialProvider",
    "Delivery",
    "LoggingNotificationDispatcher",
    "OutboxNotificationDispatcher",
    "create_credential_provider",
    "create_notification_dispatcher",
    "CredentialNotFoundError",
    "CredentialProviderError",
    "EmailAlreadyInUseError",
    "InvalidCodeError",
    "InvalidCredentialsError",
    "NotificationDeliveryError",
]
