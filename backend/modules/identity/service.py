"""
Identity service implementation.

Reads and mutates User records in the transactional store and keeps the
credential provider in step for email, password and phone changes.
"""

import logging
from typing import Optional

from modules.auth.permissions import authorize_user_access, require_admin, require_principal
from modules.verification.models import VerificationRecord, verification_key
from providers.base import CredentialProvider
from providers.exceptions import EmailAlreadyInUseError, InvalidCredentialsError
from shared.models import Principal
from shared.store import IStore, TransactionContext

from .exceptions import PhoneAlreadyInUseError, UserNotFoundError
from .interfaces import IIdentityService
from .models import USER_PREFIX, User, user_key
from .validation import normalize_email, normalize_name, normalize_optional_phone, normalize_phone, validate_password

logger = logging.getLogger(__name__)


def load_user(ctx: TransactionContext, user_id: str) -> User:
    """Read a User inside a transaction, raising if it does not exist."""
    data = ctx.get(user_key(user_id))
    if data is None:
        raise UserNotFoundError(user_id)
    return User.model_validate(data)


def save_user(ctx: TransactionContext, user: User) -> None:
    ctx.set(user_key(user.id), user.model_dump(mode="json"))


def reset_verification(ctx: TransactionContext, user_id: str) -> None:
    """Put the account's verification back to CREATED, dropping any live token."""
    ctx.set(verification_key(user_id), VerificationRecord(user_id=user_id).model_dump(mode="json"))


class IdentityService(IIdentityService):
    """Implementation of the identity service on the transactional store."""

    def __init__(self, store: IStore, credentials: CredentialProvider):
        self._store = store
        self._credentials = credentials

    async def find_user(self, user_id: str) -> Optional[User]:
        data = await self._store.get(user_key(user_id))
        return User.model_validate(data) if data is not None else None

    async def get_user(self, user_id: str) -> User:
        user = await self.find_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def _all_users(self) -> list[User]:
        records = await self._store.list_prefix(USER_PREFIX)
        return [User.model_validate(data) for data in records.values()]

    async def find_by_email(self, email: str) -> Optional[User]:
        email = email.strip().lower()
        for user in await self._all_users():
            if user.email == email:
                return user
        return None

    async def find_by_phone(self, phone: str) -> Optional[User]:
        phone = normalize_phone(phone)
        for user in await self._all_users():
            if user.phone == phone:
                return user
        return None

    async def list_users(self, principal: Principal) -> list[User]:
        require_admin(principal)
        return sorted(await self._all_users(), key=lambda u: u.created_at)

    async def update_profile(
        self,
        principal: Principal,
        user_id: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> User:
        authorize_user_access(principal, user_id)
        new_name = normalize_name(name) if name is not None else None
        new_phone = normalize_optional_phone(phone) if phone is not None else None

        if new_phone is not None:
            owner = await self.find_by_phone(new_phone)
            if owner is not None and owner.id != user_id:
                raise PhoneAlreadyInUseError(new_phone)

        def apply(ctx: TransactionContext) -> tuple[User, bool]:
            user = load_user(ctx, user_id)
            phone_changed = phone is not None and new_phone != user.phone

            if new_name is not None:
                user.name = new_name
            if phone_changed:
                user.phone = new_phone
                user.verified = False
                reset_verification(ctx, user_id)

            save_user(ctx, user)
            return user, phone_changed

        user, phone_changed = await self._store.run_transaction(
            [user_key(user_id), verification_key(user_id)], apply
        )

        if phone_changed:
            await self._credentials.link_phone(user_id, user.phone)
            logger.info("Phone changed for user %s, verification reset", user_id)
        return user

    async def _reauthenticate(self, principal: Principal, current_password: str) -> User:
        principal = require_principal(principal)
        user = await self.get_user(principal.id)
        if await self._credentials.verify_credential(user.email, current_password) != user.id:
            raise InvalidCredentialsError()
        return user

    async def change_email(
        self,
        principal: Principal,
        current_password: str,
        new_email: str,
    ) -> User:
        user = await self._reauthenticate(principal, current_password)
        new_email = normalize_email(new_email)
        if new_email == user.email:
            return user

        if await self.find_by_email(new_email) is not None:
            raise EmailAlreadyInUseError(new_email)
        await self._credentials.update_email(user.id, new_email)

        def apply(ctx: TransactionContext) -> User:
            current = load_user(ctx, user.id)
            current.email = new_email
            current.verified = False
            reset_verification(ctx, user.id)
            save_user(ctx, current)
            return current

        updated = await self._store.run_transaction(
            [user_key(user.id), verification_key(user.id)], apply
        )
        logger.info("Email changed for user %s, verification reset", user.id)
        return updated

    async def change_password(
        self,
        principal: Principal,
        current_password: str,
        new_password: str,
    ) -> None:
        user = await self._reauthenticate(principal, current_password)
        validate_password(new_password)
        await self._credentials.update_password(user.id, new_password)
        logger.info("Password changed for user %s", user.id)

    async def _grant(self, principal: Principal, user_id: str, role: str) -> User:
        require_admin(principal)

        def apply(ctx: TransactionContext) -> User:
            user = load_user(ctx, user_id)
            if getattr(user, role):
                return user
            setattr(user, role, True)
            save_user(ctx, user)
            return user

        user = await self._store.run_transaction([user_key(user_id)], apply)
        logger.info("Granted %s to user %s by %s", role, user_id, principal.id)
        return user

    async def grant_admin(self, principal: Principal, user_id: str) -> User:
        return await self._grant(principal, user_id, "is_admin")

    async def grant_vendor(self, principal: Principal, user_id: str) -> User:
        return await self._grant(principal, user_id, "is_vendor")
