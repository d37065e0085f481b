"""
Supabase-backed implementation of the transactional store.

Rows live in the kv_store table (see migrations/001_kv_store.sql). Reads
capture each key's version; commits go through the kv_commit Postgres
function, which locks the declared keys, compares versions and applies
all staged writes in one database transaction. Deleted keys are kept as
tombstones (value NULL) so their version keeps increasing.
"""

import logging
from typing import Any, Iterable, Optional

from .repository import BaseRepository
from .store import (
    TransactionConflictError,
    TransactionContext,
    TransactionFn,
    apply_callback,
)
from .config import get_settings

logger = logging.getLogger(__name__)

KV_TABLE = "kv_store"
COMMIT_FUNCTION = "kv_commit"


class SupabaseStore(BaseRepository[dict]):
    """Transactional key store on top of a Supabase Postgres table."""

    async def get(self, key: str) -> Optional[dict]:
        result = self._execute(self._db.table(KV_TABLE).select("value").eq("key", key), f"read {key}")

        if not result.data:
            return None
        return result.data[0]["value"]

    async def list_prefix(self, prefix: str) -> dict[str, dict]:
        query = self._db.table(KV_TABLE).select("key, value").like("key", f"{prefix}%").order("key")
        result = self._execute(query, f"list {prefix}")

        return {row["key"]: row["value"] for row in result.data if row["value"] is not None}

    async def run_transaction(
        self,
        keys: Iterable[str],
        fn: TransactionFn,
        max_retries: Optional[int] = None,
    ) -> Any:
        keys = list(dict.fromkeys(keys))
        attempts = max_retries or get_settings().transaction_max_retries

        for attempt in range(1, attempts + 1):
            snapshot, versions = self._read_versions(keys)

            ctx = TransactionContext(snapshot)
            result = await apply_callback(fn, ctx)
            if not ctx.writes:
                return result

            if self._commit(versions, ctx.writes):
                return result

            logger.debug("Transaction conflict on %s (attempt %d/%d)", keys, attempt, attempts)

        raise TransactionConflictError(keys, attempts)

    def _read_versions(self, keys: list[str]) -> tuple[dict[str, Optional[dict]], dict[str, int]]:
        query = self._db.table(KV_TABLE).select("key, value, version").in_("key", keys)
        result = self._execute(query, "read transaction keys")

        rows = {row["key"]: row for row in result.data}
        snapshot = {key: rows[key]["value"] if key in rows else None for key in keys}
        versions = {key: rows[key]["version"] if key in rows else 0 for key in keys}
        return snapshot, versions

    def _commit(self, versions: dict[str, int], writes: dict[str, Optional[dict]]) -> bool:
        result = self._execute(
            self._db.rpc(COMMIT_FUNCTION, {"expected_versions": versions, "writes": writes}),
            "commit transaction",
        )

        return bool(result.data)
