"""
Token registry service implementation.

Scans, availability checks and claims all read the binding and the
unclaimed pool entry for a token in one store transaction, so a claim
that loses a race is re-evaluated against the winner's write and fails
with TokenConflictError.
"""

import logging
from datetime import datetime
from typing import Optional

from modules.auth.permissions import authorize_user_access, require_admin
from modules.identity.models import user_key
from modules.identity.service import load_user, save_user
from shared.models import Clock, Principal, utc_now
from shared.store import IStore, TransactionContext

from .exceptions import TokenConflictError, UserAlreadyBoundError
from .interfaces import IRegistryService
from .models import (
    UNCLAIMED_PREFIX,
    AvailabilityResult,
    RegistryEntry,
    TokenStatus,
    UnclaimedToken,
    registry_key,
    unclaimed_key,
)
from .validation import normalize_token

logger = logging.getLogger(__name__)


def token_keys(token: str) -> list[str]:
    """Keys a transaction must declare to inspect or claim a token."""
    return [registry_key(token), unclaimed_key(token)]


def availability_in(ctx: TransactionContext, token: str) -> AvailabilityResult:
    """Evaluate a token's availability against a transaction snapshot."""
    if ctx.get(registry_key(token)) is not None:
        return AvailabilityResult.of(token, TokenStatus.REGISTERED)

    pending = ctx.get(unclaimed_key(token))
    if pending is not None:
        return AvailabilityResult.of(
            token,
            TokenStatus.AVAILABLE,
            UnclaimedToken.model_validate(pending).scanned_at,
        )
    return AvailabilityResult.of(token, TokenStatus.UNKNOWN)


class RegistryService(IRegistryService):
    """Implementation of the token registry on the transactional store."""

    def __init__(self, store: IStore, clock: Clock = utc_now):
        self._store = store
        self._clock = clock

    async def record_scan(self, token: str) -> AvailabilityResult:
        token = normalize_token(token)
        scanned_at = self._clock()

        def apply(ctx: TransactionContext) -> AvailabilityResult:
            if ctx.get(registry_key(token)) is not None:
                return AvailabilityResult.of(token, TokenStatus.REGISTERED)

            entry = UnclaimedToken(token=token, scanned_at=scanned_at)
            ctx.set(unclaimed_key(token), entry.model_dump(mode="json"))
            return AvailabilityResult.of(token, TokenStatus.AVAILABLE, scanned_at)

        result = await self._store.run_transaction(token_keys(token), apply)
        if result.status == TokenStatus.REGISTERED:
            logger.info("Scan of registered RFID %s ignored", token)
        else:
            logger.info("Recorded scan of RFID %s", token)
        return result

    async def check_availability(self, token: str) -> AvailabilityResult:
        token = normalize_token(token)
        return await self._store.run_transaction(
            token_keys(token), lambda ctx: availability_in(ctx, token)
        )

    def apply_claim(
        self,
        ctx: TransactionContext,
        token: str,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> RegistryEntry:
        bound = ctx.get(registry_key(token))
        if bound is not None:
            existing = RegistryEntry.model_validate(bound)
            if existing.user_id == user_id:
                return existing
            raise TokenConflictError(token, TokenStatus.REGISTERED.value)

        if ctx.get(unclaimed_key(token)) is None:
            raise TokenConflictError(token, TokenStatus.UNKNOWN.value)

        entry = RegistryEntry(token=token, user_id=user_id, claimed_at=now or self._clock())
        ctx.set(registry_key(token), entry.model_dump(mode="json"))
        ctx.delete(unclaimed_key(token))
        return entry

    async def claim(
        self,
        token: str,
        user_id: str,
        principal: Optional[Principal] = None,
    ) -> RegistryEntry:
        token = normalize_token(token)
        if principal is not None:
            authorize_user_access(principal, user_id)

        now = self._clock()

        def apply(ctx: TransactionContext) -> RegistryEntry:
            user = load_user(ctx, user_id)
            if user.token is not None and user.token != token:
                raise UserAlreadyBoundError(user_id, user.token)

            entry = self.apply_claim(ctx, token, user_id, now)
            if user.token != token:
                user.token = token
                save_user(ctx, user)
            return entry

        entry = await self._store.run_transaction([user_key(user_id), *token_keys(token)], apply)
        logger.info("RFID %s bound to user %s", token, user_id)
        return entry

    async def get_bound_user(self, token: str) -> Optional[str]:
        token = normalize_token(token)
        data = await self._store.get(registry_key(token))
        return RegistryEntry.model_validate(data).user_id if data is not None else None

    async def list_unclaimed(self, principal: Principal) -> list[UnclaimedToken]:
        require_admin(principal)
        records = await self._store.list_prefix(UNCLAIMED_PREFIX)
        pool = [UnclaimedToken.model_validate(data) for data in records.values()]
        return sorted(pool, key=lambda entry: entry.scanned_at, reverse=True)
