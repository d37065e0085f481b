"""
Ledger service implementation.

Entries live under ledger/{user_id}/ in the transactional store. Credits
and redemptions each run one transaction over the user record and the
new entry key, so two concurrent redemptions cannot both pass the
balance check against a stale read.
"""

import logging
import uuid
from typing import Optional

from modules.auth.exceptions import InsufficientPermissionsError
from modules.auth.permissions import require_vendor, role_of
from modules.identity.exceptions import UserNotFoundError
from modules.identity.models import User, user_key
from modules.identity.service import load_user, save_user
from modules.registry.interfaces import IRegistryService
from modules.registry.validation import normalize_token
from shared.models import Clock, Principal, epoch_millis, utc_now
from shared.store import IStore, TransactionContext

from .exceptions import InsufficientBalanceError, InvalidPointsError, NotAVendorError, TokenNotRegisteredError
from .interfaces import ILedgerService
from .models import LEDGER_PREFIX, Balance, BalanceAudit, EntryType, LedgerEntry, entry_key, ledger_prefix

logger = logging.getLogger(__name__)


def validate_points(points) -> int:
    # bool is an int subclass; True is not a point amount
    if isinstance(points, bool) or not isinstance(points, int):
        raise InvalidPointsError(points)
    if points <= 0:
        raise InvalidPointsError(points)
    return points


class LedgerService(ILedgerService):
    """Implementation of the points ledger on the transactional store."""

    def __init__(self, store: IStore, registry: IRegistryService, clock: Clock = utc_now):
        self._store = store
        self._registry = registry
        self._clock = clock

    def _new_entry(
        self,
        user_id: str,
        points: int,
        entry_type: EntryType,
        vendor_id: Optional[str] = None,
        source: Optional[str] = None,
    ) -> LedgerEntry:
        return LedgerEntry(
            id=str(uuid.uuid4()),
            user_id=user_id,
            vendor_id=vendor_id,
            points=points,
            timestamp=epoch_millis(self._clock()),
            type=entry_type,
            source=source,
        )

    async def credit(self, user_id: str, points: int, source: Optional[str] = None) -> LedgerEntry:
        validate_points(points)
        entry = self._new_entry(user_id, points, EntryType.EARN, source=source)
        key = entry_key(user_id, entry.timestamp, entry.id)

        def apply(ctx: TransactionContext) -> User:
            user = load_user(ctx, user_id)
            user.points += points
            save_user(ctx, user)
            ctx.set(key, entry.model_dump(mode="json"))
            return user

        user = await self._store.run_transaction([user_key(user_id), key], apply)
        logger.info("Credited %d points to user %s (balance %d)", points, user_id, user.points)
        return entry

    async def credit_by_token(self, token: str, points: int, source: Optional[str] = None) -> LedgerEntry:
        token = normalize_token(token)
        validate_points(points)

        user_id = await self._registry.get_bound_user(token)
        if user_id is None:
            raise TokenNotRegisteredError(token)
        return await self.credit(user_id, points, source=source)

    async def redeem(
        self,
        user_id: str,
        vendor_id: str,
        points: int,
        principal: Optional[Principal] = None,
    ) -> LedgerEntry:
        validate_points(points)
        if principal is not None:
            require_vendor(principal)
            if principal.id != vendor_id and not principal.is_admin:
                raise InsufficientPermissionsError("admin", role_of(principal))

        entry = self._new_entry(user_id, -points, EntryType.REDEMPTION, vendor_id=vendor_id)
        key = entry_key(user_id, entry.timestamp, entry.id)

        def apply(ctx: TransactionContext) -> User:
            vendor_data = ctx.get(user_key(vendor_id))
            if vendor_data is None:
                raise UserNotFoundError(vendor_id)
            if not User.model_validate(vendor_data).is_vendor:
                raise NotAVendorError(vendor_id)

            user = load_user(ctx, user_id)
            if points > user.points:
                raise InsufficientBalanceError(required=points, available=user.points, user_id=user_id)

            user.points -= points
            save_user(ctx, user)
            ctx.set(key, entry.model_dump(mode="json"))
            return user

        user = await self._store.run_transaction([user_key(user_id), user_key(vendor_id), key], apply)
        logger.info(
            "Vendor %s redeemed %d points from user %s (balance %d)",
            vendor_id,
            points,
            user_id,
            user.points,
        )
        return entry

    async def get_balance(self, user_id: str) -> Balance:
        data = await self._store.get(user_key(user_id))
        if data is None:
            raise UserNotFoundError(user_id)
        return Balance(user_id=user_id, points=User.model_validate(data).points)

    async def get_entries(self, user_id: str, limit: int = 50, offset: int = 0) -> list[LedgerEntry]:
        records = await self._store.list_prefix(ledger_prefix(user_id))
        entries = [LedgerEntry.model_validate(data) for data in reversed(records.values())]
        return entries[offset : offset + limit]

    async def get_vendor_entries(self, vendor_id: str, limit: int = 50, offset: int = 0) -> list[LedgerEntry]:
        records = await self._store.list_prefix(LEDGER_PREFIX)
        entries = [
            entry
            for entry in (LedgerEntry.model_validate(data) for data in records.values())
            if entry.vendor_id == vendor_id
        ]
        entries.sort(key=lambda entry: entry.timestamp, reverse=True)
        return entries[offset : offset + limit]

    async def audit_balance(self, user_id: str) -> BalanceAudit:
        balance = await self.get_balance(user_id)
        records = await self._store.list_prefix(ledger_prefix(user_id))
        total = sum(data["points"] for data in records.values())

        audit = BalanceAudit(
            user_id=user_id,
            cached_points=balance.points,
            ledger_points=total,
            entry_count=len(records),
            checked_at=self._clock(),
        )
        if not audit.consistent:
            logger.error(
                "Balance mismatch for user %s: cached %d, ledger %d",
                user_id,
                audit.cached_points,
                audit.ledger_points,
            )
        return audit
