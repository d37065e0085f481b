"""
Base class for Supabase-backed persistence.

Holds the client and turns PostgREST failures into StoreUnavailableError,
so callers only ever see the store's own error types.
"""

from typing import Any, Generic, TypeVar

from postgrest.exceptions import APIError
from supabase import Client

from .store import StoreUnavailableError

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for repositories over Supabase tables and functions.

    Subclasses build PostgREST queries against self._db and run them
    through _execute, which does the error translation.
    """

    def __init__(self, db: Client) -> None:
        self._db = db

    def _execute(self, query: Any, action: str) -> Any:
        """
        Execute a table query or RPC builder.

        Raises:
            StoreUnavailableError: If PostgREST rejects the request
        """
        try:
            return query.execute()
        except APIError as e:
            raise StoreUnavailableError(f"Failed to {action}: {e.message}")
