"""
Key-addressed store with a multi-key atomic transaction primitive.

Every component that mutates shared state (registry, ledger, users,
verification records) goes through run_transaction(): the callback sees a
consistent snapshot of the declared keys, stages writes, and the store
commits all of them or none. On a version conflict the callback is re-run
from a fresh snapshot, up to a small bound.

Values are JSON-compatible dicts; a staged None deletes the key.
"""

import asyncio
import copy
import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol, TypeVar, Union, runtime_checkable

from .config import get_settings
from .exceptions import TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionConflictError(TransientError):
    """Raised when a transaction keeps losing optimistic-concurrency races."""

    def __init__(self, keys: list[str], attempts: int):
        super().__init__(
            f"Transaction aborted after {attempts} conflicting attempts",
            code="TRANSACTION_CONFLICT",
            details={"keys": keys, "attempts": attempts},
        )


class StoreUnavailableError(TransientError):
    """Raised when the backing store cannot be reached."""

    def __init__(self, message: str):
        super().__init__(message, code="STORE_UNAVAILABLE")


class TransactionContext:
    """
    Read/write view handed to a transaction callback.

    Only keys declared when the transaction was opened may be read or
    written; reads observe staged writes.
    """

    def __init__(self, snapshot: dict[str, Optional[dict]]):
        self._snapshot = snapshot
        self._writes: dict[str, Optional[dict]] = {}

    def _check(self, key: str) -> None:
        if key not in self._snapshot:
            raise ValueError(f"Key not declared in transaction: {key}")

    def get(self, key: str) -> Optional[dict]:
        self._check(key)
        value = self._writes[key] if key in self._writes else self._snapshot[key]
        return copy.deepcopy(value)

    def set(self, key: str, value: dict) -> None:
        self._check(key)
        self._writes[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._check(key)
        self._writes[key] = None

    @property
    def writes(self) -> dict[str, Optional[dict]]:
        return self._writes


TransactionFn = Callable[[TransactionContext], Union[T, Awaitable[T]]]


@runtime_checkable
class IStore(Protocol):
    """Interface for the persistent store."""

    async def get(self, key: str) -> Optional[dict]:
        """Read a single key outside of a transaction."""
        ...

    async def list_prefix(self, prefix: str) -> dict[str, dict]:
        """Read every key starting with prefix, ordered by key."""
        ...

    async def run_transaction(
        self,
        keys: Iterable[str],
        fn: TransactionFn,
        max_retries: Optional[int] = None,
    ) -> Any:
        """
        Run fn atomically over keys.

        Raises:
            TransactionConflictError: If every attempt lost a race
            Any exception raised by fn, with nothing written
        """
        ...


async def apply_callback(fn: TransactionFn, ctx: TransactionContext) -> Any:
    result = fn(ctx)
    if inspect.isawaitable(result):
        result = await result
    return result


class InMemoryStore:
    """
    Process-local store with per-key versions.

    Snapshots and commits happen under a lock; the callback runs outside
    it, so concurrent transactions genuinely race and the loser retries.
    """

    def __init__(self, max_retries: Optional[int] = None):
        self._data: dict[str, dict] = {}
        self._versions: dict[str, int] = {}
        self._lock = asyncio.Lock()
        self._max_retries = max_retries or get_settings().transaction_max_retries

    async def get(self, key: str) -> Optional[dict]:
        async with self._lock:
            return copy.deepcopy(self._data.get(key))

    async def list_prefix(self, prefix: str) -> dict[str, dict]:
        async with self._lock:
            return {
                key: copy.deepcopy(self._data[key])
                for key in sorted(self._data)
                if key.startswith(prefix)
            }

    async def run_transaction(
        self,
        keys: Iterable[str],
        fn: TransactionFn,
        max_retries: Optional[int] = None,
    ) -> Any:
        keys = list(dict.fromkeys(keys))
        attempts = max_retries or self._max_retries

        for attempt in range(1, attempts + 1):
            async with self._lock:
                versions = {key: self._versions.get(key, 0) for key in keys}
                snapshot = {key: copy.deepcopy(self._data.get(key)) for key in keys}

            ctx = TransactionContext(snapshot)
            result = await apply_callback(fn, ctx)
            if not ctx.writes:
                return result

            async with self._lock:
                if all(self._versions.get(key, 0) == version for key, version in versions.items()):
                    for key, value in ctx.writes.items():
                        if value is None:
                            self._data.pop(key, None)
                        else:
                            self._data[key] = value
                        # Versions survive deletes so a re-created key never matches a stale read
                        self._versions[key] = self._versions.get(key, 0) + 1
                    return result

            logger.debug("Transaction conflict on %s (attempt %d/%d)", keys, attempt, attempts)

        raise TransactionConflictError(keys, attempts)


# Module-level store cache
_store: Optional[IStore] = None


def get_store() -> IStore:
    """
    Get the configured store singleton.

    STORE_BACKEND=supabase selects the Supabase-backed store; anything
    else uses the in-memory store.
    """
    global _store
    if _store is None:
        settings = get_settings()
        if settings.store_backend == "supabase":
            from .database import get_supabase_client
            from .supabase_store import SupabaseStore

            _store = SupabaseStore(get_supabase_client())
        else:
            _store = InMemoryStore()
    return _store


def reset_store() -> None:
    """Reset the cached store (for testing)."""
    global _store
    _store = None
