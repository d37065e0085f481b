"""
Shared infrastructure for the SmartBin backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- exceptions: Base exception classes
- models: Principal and Session snapshots
- store: Transactional key store

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import get_supabase_client, get_supabase_anon_client, reset_client_cache
from .exceptions import (
    SmartBinError,
    NotFoundError,
    ValidationError,
    ConflictError,
    AuthenticationError,
    AuthorizationError,
    TransientError,
    ExternalServiceError,
)
from .models import Principal, Session, utc_now, epoch_millis
from .store import (
    IStore,
    InMemoryStore,
    TransactionContext,
    TransactionConflictError,
    StoreUnavailableError,
    get_store,
    reset_store,
)

__all__ = [
    "Settings",
    "get_settings",
    "get_supabase_client",
    "get_supabase_anon_client",
    "reset_client_cache",
    "SmartBinError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "AuthenticationError",
    "AuthorizationError",
    "TransientError",
    "ExternalServiceError",
    "Principal",
    "Session",
    "utc_now",
    "epoch_millis",
    "IStore",
    "InMemoryStore",
    "TransactionContext",
    "TransactionConflictError",
    "StoreUnavailableError",
    "get_store",
    "reset_store",
]
