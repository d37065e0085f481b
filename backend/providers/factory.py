"""Factory functions for creating external collaborators."""

from typing import Optional

from shared.config import get_settings

from .base import CredentialProvider, NotificationDispatcher
from .credentials import InMemoryCredentialProvider, SupabaseCredentialProvider
from .notifications import LoggingNotificationDispatcher, OutboxNotificationDispatcher


def create_notification_dispatcher(backend: Optional[str] = None) -> NotificationDispatcher:
    """Create the notification dispatcher for a backend name.

    Args:
        backend: "log" or "outbox"; defaults to NOTIFICATION_BACKEND

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = backend or get_settings().notification_backend
    if backend == "log":
        return LoggingNotificationDispatcher()
    if backend == "outbox":
        return OutboxNotificationDispatcher()
    raise ValueError(f"Unknown notification backend '{backend}'. Expected 'log' or 'outbox'")


def create_credential_provider(
    backend: Optional[str] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> CredentialProvider:
    """Create the credential provider for a backend name.

    Args:
        backend: "memory" or "supabase"; defaults to CREDENTIAL_BACKEND
        dispatcher: Where the in-memory provider sends codes and reset links

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = backend or get_settings().credential_backend
    if backend == "memory":
        return InMemoryCredentialProvider(dispatcher=dispatcher)
    if backend == "supabase":
        from shared.database import get_supabase_anon_client, get_supabase_client

        return SupabaseCredentialProvider(get_supabase_client(), get_supabase_anon_client())
    raise ValueError(f"Unknown credential backend '{backend}'. Expected 'memory' or 'supabase'")
