"""
Registration service implementation.

Direct path:
  1. validate input, require the token to be available and the phone unused
  2. create the credential (allocates the user ID)
  3. write the User and claim the token in one store transaction
  4. issue the email verification token
Any exception after step 2 runs compensate_failed_registration() and is
then re-raised unchanged.

Deferred path: a PendingRegistration is stored first; once the caller has
signed up and verified the email, complete_registration() writes the User,
the binding, the verification state and removes the pending record in a
single transaction.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from modules.auth.permissions import require_admin, require_principal
from modules.identity.exceptions import PhoneAlreadyInUseError
from modules.identity.interfaces import IIdentityService
from modules.identity.models import User, UserStatus, user_key
from modules.identity.service import save_user
from modules.identity.validation import normalize_email, normalize_name, normalize_optional_phone, validate_password
from modules.registry.interfaces import IRegistryService
from modules.registry.models import RegistryEntry, TokenStatus, UnclaimedToken, registry_key, unclaimed_key
from modules.registry.service import token_keys
from modules.registry.validation import normalize_token
from modules.verification.interfaces import IVerificationService
from modules.verification.models import VERIFIED_STATES, VerificationRecord, VerificationState, verification_key
from providers.base import CredentialProvider
from shared.config import get_settings
from shared.models import Clock, Principal, Session, utc_now
from shared.store import IStore, TransactionContext

from .exceptions import (
    EmailMismatchError,
    EmailNotVerifiedError,
    PendingRegistrationNotFoundError,
    TokenNotAvailableError,
    UserAlreadyExistsError,
)
from .interfaces import IRegistrationService
from .models import (
    PENDING_PREFIX,
    CompensationOutcome,
    PendingRegistration,
    PurgeResult,
    RegistrationResult,
    pending_key,
)

logger = logging.getLogger(__name__)


class RegistrationService(IRegistrationService):
    """Implementation of the registration saga and the deferred flow."""

    def __init__(
        self,
        store: IStore,
        credentials: CredentialProvider,
        registry: IRegistryService,
        verification: IVerificationService,
        identity: IIdentityService,
        clock: Clock = utc_now,
    ):
        self._settings = get_settings()
        self._store = store
        self._credentials = credentials
        self._registry = registry
        self._verification = verification
        self._identity = identity
        self._clock = clock

    def _is_admin_email(self, email: str) -> bool:
        return email in {e.strip().lower() for e in self._settings.admin_emails}

    async def _require_available(self, token: str) -> Optional[datetime]:
        availability = await self._registry.check_availability(token)
        if availability.status != TokenStatus.AVAILABLE:
            raise TokenNotAvailableError(token, availability.status.value)
        return availability.scanned_at

    async def _require_unused_phone(self, phone: Optional[str], user_id: Optional[str] = None) -> None:
        if phone is None:
            return
        owner = await self._identity.find_by_phone(phone)
        if owner is not None and owner.id != user_id:
            raise PhoneAlreadyInUseError(phone)

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        token: str,
        phone: Optional[str] = None,
    ) -> RegistrationResult:
        name = normalize_name(name)
        email = normalize_email(email)
        validate_password(password)
        phone = normalize_optional_phone(phone)
        token = normalize_token(token)

        scanned_at = await self._require_available(token)
        await self._require_unused_phone(phone)

        user_id = await self._credentials.create_credential(email, password)
        committed = False
        try:
            now = self._clock()
            user = User(
                id=user_id,
                name=name,
                email=email,
                phone=phone,
                token=token,
                created_at=now,
                joined_at=now,
                verified=False,
                points=0,
                is_admin=self._is_admin_email(email),
                status=UserStatus.UNVERIFIED,
            )

            def apply(ctx: TransactionContext) -> RegistryEntry:
                if ctx.get(user_key(user_id)) is not None:
                    raise UserAlreadyExistsError(user_id)
                save_user(ctx, user)
                return self._registry.apply_claim(ctx, token, user_id, now)

            await self._store.run_transaction([user_key(user_id), *token_keys(token)], apply)
            committed = True

            if phone is not None:
                await self._credentials.link_phone(user_id, phone)
            verification = await self._verification.start_email_verification(user_id)
        except Exception as e:
            await self.compensate_failed_registration(
                user_id,
                token,
                committed=committed,
                scanned_at=scanned_at,
                reason=str(e),
            )
            raise

        logger.info("Registered user %s with RFID %s", user_id, token)
        return RegistrationResult(user=user, verification=verification)

    async def compensate_failed_registration(
        self,
        user_id: str,
        token: str,
        committed: bool,
        scanned_at: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> CompensationOutcome:
        outcome = CompensationOutcome(user_id=user_id, token=token, reason=reason)
        logger.warning("Compensating failed registration of user %s: %s", user_id, reason)

        if committed:
            restored = UnclaimedToken(token=token, scanned_at=scanned_at or self._clock())

            def rollback(ctx: TransactionContext) -> None:
                ctx.delete(user_key(user_id))
                ctx.delete(verification_key(user_id))
                bound = ctx.get(registry_key(token))
                if bound is not None and RegistryEntry.model_validate(bound).user_id == user_id:
                    ctx.delete(registry_key(token))
                    ctx.set(unclaimed_key(token), restored.model_dump(mode="json"))

            try:
                await self._store.run_transaction(
                    [user_key(user_id), verification_key(user_id), *token_keys(token)], rollback
                )
                outcome.records_removed = True
            except Exception as e:
                logger.error("Failed to roll back records of user %s: %s", user_id, e)
                outcome.errors.append(f"records: {e}")

        try:
            await self._credentials.delete_credential(user_id)
            outcome.credential_deleted = True
        except Exception as e:
            logger.error("Failed to delete credential of user %s: %s", user_id, e)
            outcome.errors.append(f"credential: {e}")

        return outcome

    async def begin_deferred_registration(
        self,
        name: str,
        email: str,
        token: str,
        phone: Optional[str] = None,
    ) -> PendingRegistration:
        pending = PendingRegistration(
            id=str(uuid.uuid4()),
            name=normalize_name(name),
            email=normalize_email(email),
            phone=normalize_optional_phone(phone),
            token=normalize_token(token),
            created_at=self._clock(),
        )
        await self._require_available(pending.token)
        await self._require_unused_phone(pending.phone)

        def apply(ctx: TransactionContext) -> None:
            ctx.set(pending_key(pending.id), pending.model_dump(mode="json"))

        await self._store.run_transaction([pending_key(pending.id)], apply)
        logger.info("Pending registration %s created for RFID %s", pending.id, pending.token)
        return pending

    def _live_pending(self, data: Optional[dict], pending_id: str) -> PendingRegistration:
        if data is None:
            raise PendingRegistrationNotFoundError(pending_id)
        pending = PendingRegistration.model_validate(data)
        if pending.is_expired(self._clock(), self._settings.pending_registration_ttl_hours):
            raise PendingRegistrationNotFoundError(pending_id)
        return pending

    async def get_pending_registration(self, pending_id: str) -> PendingRegistration:
        return self._live_pending(await self._store.get(pending_key(pending_id)), pending_id)

    async def complete_registration(self, session: Session, pending_id: str) -> RegistrationResult:
        principal = require_principal(session.principal)
        user_id = principal.id

        pending = await self.get_pending_registration(pending_id)
        if (principal.email or "").lower() != pending.email:
            raise EmailMismatchError()

        status = await self._verification.poll_verification_status(user_id)
        if status.state not in VERIFIED_STATES:
            raise EmailNotVerifiedError(status.state.value)

        await self._require_unused_phone(pending.phone, user_id)

        now = self._clock()

        def apply(ctx: TransactionContext) -> User:
            current = self._live_pending(ctx.get(pending_key(pending_id)), pending_id)
            if ctx.get(user_key(user_id)) is not None:
                raise UserAlreadyExistsError(user_id)

            record_data = ctx.get(verification_key(user_id))
            record = (
                VerificationRecord.model_validate(record_data)
                if record_data is not None
                else VerificationRecord(user_id=user_id)
            )
            if record.state not in VERIFIED_STATES:
                raise EmailNotVerifiedError(record.state.value)

            self._registry.apply_claim(ctx, current.token, user_id, now)

            user = User(
                id=user_id,
                name=current.name,
                email=current.email,
                phone=current.phone,
                token=current.token,
                created_at=current.created_at,
                joined_at=now,
                verified=True,
                points=0,
                is_admin=self._is_admin_email(current.email),
                status=UserStatus.ACTIVE,
            )
            save_user(ctx, user)

            record = record.model_copy(
                update={"state": VerificationState.ACTIVE, "activated_at": now}
            )
            ctx.set(verification_key(user_id), record.model_dump(mode="json"))
            ctx.delete(pending_key(pending_id))
            return user

        user = await self._store.run_transaction(
            [
                pending_key(pending_id),
                user_key(user_id),
                verification_key(user_id),
                *token_keys(pending.token),
            ],
            apply,
        )

        if user.phone is not None:
            await self._credentials.link_phone(user_id, user.phone)
        logger.info("Completed pending registration %s as user %s", pending_id, user_id)
        return RegistrationResult(
            user=user,
            verification=await self._verification.poll_verification_status(user_id),
        )

    async def purge_expired_pending_registrations(self, principal: Principal) -> PurgeResult:
        require_admin(principal)
        ttl = self._settings.pending_registration_ttl_hours
        records = await self._store.list_prefix(PENDING_PREFIX)
        result = PurgeResult()

        for key, data in records.items():
            pending = PendingRegistration.model_validate(data)
            if not pending.is_expired(self._clock(), ttl):
                continue

            def apply(ctx: TransactionContext, key: str = key) -> bool:
                current = ctx.get(key)
                if current is None:
                    return False
                if not PendingRegistration.model_validate(current).is_expired(self._clock(), ttl):
                    return False
                ctx.delete(key)
                return True

            if await self._store.run_transaction([key], apply):
                result.purged.append(pending.id)

        logger.info("Purged %d expired pending registrations", len(result.purged))
        return result
