"""
Verification state machine implementation.

States: created -> pending_email_verification | pending_phone_verification
-> verified -> active. Each account has one VerificationRecord holding the
only live token; every issuance overwrites it inside a store transaction.
Only a SHA-256 hash of email tokens is stored.

Notifications are sent after the record is committed. A failed hand-off is
logged and reported on the returned status, never retried here.
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Optional

from modules.auth.exceptions import InsufficientPermissionsError
from modules.auth.permissions import require_principal, role_of
from modules.auth.tokens import TokenIssuer
from modules.identity.exceptions import UserNotFoundError
from modules.identity.models import User, UserStatus, user_key
from modules.identity.validation import normalize_email, normalize_phone, validate_password
from providers.base import CredentialProvider, NotificationChannel, NotificationDispatcher
from providers.exceptions import InvalidCodeError, NotificationDeliveryError
from shared.config import get_settings
from shared.models import Clock, Principal, Session, utc_now
from shared.store import IStore, TransactionContext

from .exceptions import (
    AlreadyVerifiedError,
    InvalidCodeFormatError,
    InvalidOrExpiredCodeError,
    NotVerifiedError,
    VerificationNotPendingError,
)
from .interfaces import IVerificationService
from .models import (
    VERIFIED_STATES,
    PhoneVerificationStarted,
    VerificationChannel,
    VerificationRecord,
    VerificationState,
    VerificationStatus,
    verification_key,
)

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def load_record(ctx: TransactionContext, user_id: str) -> VerificationRecord:
    data = ctx.get(verification_key(user_id))
    return VerificationRecord.model_validate(data) if data is not None else VerificationRecord(user_id=user_id)


class VerificationService(IVerificationService):
    """Implementation of the verification state machine."""

    def __init__(
        self,
        store: IStore,
        credentials: CredentialProvider,
        dispatcher: NotificationDispatcher,
        tokens: Optional[TokenIssuer] = None,
        clock: Clock = utc_now,
    ):
        self._settings = get_settings()
        self._store = store
        self._credentials = credentials
        self._dispatcher = dispatcher
        self._tokens = tokens or TokenIssuer()
        self._clock = clock

    def _status(
        self,
        user_id: str,
        record: Optional[VerificationRecord],
        delivery_failed: bool = False,
    ) -> VerificationStatus:
        record = record or VerificationRecord(user_id=user_id)
        elapsed = None
        if record.issued_at is not None:
            elapsed = max((self._clock() - record.issued_at).total_seconds(), 0.0)

        return VerificationStatus(
            user_id=user_id,
            state=record.state,
            channel=record.channel,
            last_issued_at=record.issued_at,
            seconds_since_last_issue=elapsed,
            can_resend=elapsed is None or elapsed >= self._settings.resend_cooldown_seconds,
            expires_at=record.expires_at,
            delivery_failed=delivery_failed,
        )

    async def _email_destination(self, user_id: str) -> str:
        data = await self._store.get(user_key(user_id))
        if data is not None:
            return User.model_validate(data).email
        return (await self._credentials.get_credential(user_id)).email

    async def _issue_email(self, user_id: str, require_pending: bool) -> VerificationStatus:
        token = await self._credentials.issue_email_link_token(user_id)
        now = self._clock()

        def apply(ctx: TransactionContext) -> VerificationRecord:
            record = load_record(ctx, user_id)
            if record.state in VERIFIED_STATES:
                raise AlreadyVerifiedError(user_id, record.state.value)
            if require_pending and record.state != VerificationState.PENDING_EMAIL_VERIFICATION:
                raise VerificationNotPendingError(user_id, record.state.value)

            record = record.model_copy(
                update={
                    "state": VerificationState.PENDING_EMAIL_VERIFICATION,
                    "channel": VerificationChannel.EMAIL,
                    "token_hash": hash_token(token),
                    "phone_session_id": None,
                    "issued_at": now,
                    "expires_at": now + timedelta(seconds=self._settings.email_link_ttl_seconds),
                    "consumed": False,
                    "send_count": record.send_count + 1,
                }
            )
            ctx.set(verification_key(user_id), record.model_dump(mode="json"))
            return record

        record = await self._store.run_transaction([verification_key(user_id)], apply)
        logger.info("Issued email verification token #%d for user %s", record.send_count, user_id)

        delivery_failed = False
        try:
            destination = await self._email_destination(user_id)
            await self._dispatcher.send(
                NotificationChannel.EMAIL,
                destination,
                {
                    "template": "email_verification",
                    "link": f"{self._settings.frontend_url}/verify-email?uid={user_id}&token={token}",
                    "expires_at": record.expires_at.isoformat(),
                },
            )
        except NotificationDeliveryError as e:
            delivery_failed = True
            logger.warning("Verification email for user %s not delivered: %s", user_id, e.message)

        return self._status(user_id, record, delivery_failed=delivery_failed)

    async def start_email_verification(self, user_id: str) -> VerificationStatus:
        return await self._issue_email(user_id, require_pending=False)

    async def resend_email_verification(self, user_id: str) -> VerificationStatus:
        return await self._issue_email(user_id, require_pending=True)

    async def confirm_email_link(self, user_id: str, token: str) -> VerificationStatus:
        now = self._clock()
        presented = hash_token(token)

        def apply(ctx: TransactionContext) -> VerificationRecord:
            record = load_record(ctx, user_id)
            if (
                record.state != VerificationState.PENDING_EMAIL_VERIFICATION
                or record.consumed
                or record.token_hash is None
                or not secrets.compare_digest(record.token_hash, presented)
                or record.expires_at is None
                or now >= record.expires_at
            ):
                raise InvalidOrExpiredCodeError(VerificationChannel.EMAIL.value)

            record = record.model_copy(
                update={"state": VerificationState.VERIFIED, "consumed": True, "verified_at": now}
            )
            ctx.set(verification_key(user_id), record.model_dump(mode="json"))

            user_data = ctx.get(user_key(user_id))
            if user_data is not None:
                user_data["verified"] = True
                ctx.set(user_key(user_id), user_data)
            return record

        record = await self._store.run_transaction(
            [verification_key(user_id), user_key(user_id)], apply
        )
        logger.info("Email verified for user %s", user_id)
        return self._status(user_id, record)

    async def start_phone_verification(self, user_id: str, phone: str) -> PhoneVerificationStarted:
        phone = normalize_phone(phone)

        current = await self._store.get(verification_key(user_id))
        if current is not None:
            state = VerificationRecord.model_validate(current).state
            if state in VERIFIED_STATES:
                raise AlreadyVerifiedError(user_id, state.value)

        # The code is only sent to a phone already linked to this credential
        await self._credentials.link_phone(user_id, phone)
        session_id = await self._credentials.issue_phone_otp(phone)
        now = self._clock()

        def apply(ctx: TransactionContext) -> VerificationRecord:
            record = load_record(ctx, user_id)
            if record.state in VERIFIED_STATES:
                raise AlreadyVerifiedError(user_id, record.state.value)

            record = record.model_copy(
                update={
                    "state": VerificationState.PENDING_PHONE_VERIFICATION,
                    "channel": VerificationChannel.PHONE,
                    "token_hash": None,
                    "phone": phone,
                    "phone_session_id": session_id,
                    "issued_at": now,
                    "expires_at": now + timedelta(seconds=self._settings.phone_otp_ttl_seconds),
                    "consumed": False,
                    "send_count": record.send_count + 1,
                }
            )
            ctx.set(verification_key(user_id), record.model_dump(mode="json"))
            return record

        record = await self._store.run_transaction([verification_key(user_id)], apply)
        logger.info("Issued phone verification code #%d for user %s", record.send_count, user_id)
        return PhoneVerificationStarted(session_id=session_id, status=self._status(user_id, record))

    def _check_phone_session(self, record: VerificationRecord, session_id: str) -> None:
        if (
            record.state != VerificationState.PENDING_PHONE_VERIFICATION
            or record.consumed
            or record.phone_session_id != session_id
            or record.expires_at is None
            or self._clock() >= record.expires_at
        ):
            raise InvalidOrExpiredCodeError(VerificationChannel.PHONE.value)

    async def confirm_phone_code(self, user_id: str, session_id: str, code: str) -> VerificationStatus:
        length = self._settings.otp_length
        if len(code) != length or not code.isdigit():
            raise InvalidCodeFormatError(length)

        current = await self._store.get(verification_key(user_id))
        if current is None:
            raise InvalidOrExpiredCodeError(VerificationChannel.PHONE.value)
        self._check_phone_session(VerificationRecord.model_validate(current), session_id)

        try:
            owner = await self._credentials.consume_phone_otp(session_id, code)
        except InvalidCodeError:
            raise InvalidOrExpiredCodeError(VerificationChannel.PHONE.value)
        if owner != user_id:
            raise InvalidOrExpiredCodeError(VerificationChannel.PHONE.value)

        now = self._clock()

        def apply(ctx: TransactionContext) -> VerificationRecord:
            record = load_record(ctx, user_id)
            # A resend may have replaced the session while the code was being checked
            self._check_phone_session(record, session_id)

            record = record.model_copy(
                update={"state": VerificationState.VERIFIED, "consumed": True, "verified_at": now}
            )
            ctx.set(verification_key(user_id), record.model_dump(mode="json"))

            user_data = ctx.get(user_key(user_id))
            if user_data is not None:
                user_data["verified"] = True
                user_data["phone"] = record.phone
                ctx.set(user_key(user_id), user_data)
            return record

        record = await self._store.run_transaction(
            [verification_key(user_id), user_key(user_id)], apply
        )
        await self._credentials.link_phone(user_id, record.phone)
        logger.info("Phone verified for user %s", user_id)
        return self._status(user_id, record)

    async def activate(self, session: Session, user_id: str) -> Session:
        principal = require_principal(session.principal)
        if principal.id != user_id or principal.is_bin:
            raise InsufficientPermissionsError("owner", role_of(principal))

        now = self._clock()

        def apply(ctx: TransactionContext) -> User:
            record = load_record(ctx, user_id)
            if record.state not in VERIFIED_STATES:
                raise NotVerifiedError(user_id, record.state.value)

            user_data = ctx.get(user_key(user_id))
            if user_data is None:
                raise UserNotFoundError(user_id)
            user = User.model_validate(user_data)

            if record.state == VerificationState.ACTIVE and user.status == UserStatus.ACTIVE:
                return user

            record = record.model_copy(
                update={"state": VerificationState.ACTIVE, "activated_at": now}
            )
            user = user.model_copy(update={"status": UserStatus.ACTIVE, "verified": True})
            ctx.set(verification_key(user_id), record.model_dump(mode="json"))
            ctx.set(user_key(user_id), user.model_dump(mode="json"))
            return user

        user = await self._store.run_transaction(
            [verification_key(user_id), user_key(user_id)], apply
        )
        logger.info("Activated user %s", user_id)

        activated = Principal(
            id=user.id,
            email=user.email,
            email_verified=True,
            is_admin=user.is_admin,
            is_vendor=user.is_vendor,
        )
        access_token, expires_at = self._tokens.issue(activated)
        return Session(
            principal=activated,
            access_token=access_token,
            expires_at=expires_at,
            verification_state=VerificationState.ACTIVE.value,
        )

    async def poll_verification_status(self, user_id: str) -> VerificationStatus:
        data = await self._store.get(verification_key(user_id))
        record = VerificationRecord.model_validate(data) if data is not None else None
        return self._status(user_id, record)

    async def can_resend(self, user_id: str) -> bool:
        return (await self.poll_verification_status(user_id)).can_resend

    async def request_password_reset(self, email: str) -> None:
        await self._credentials.reset_password(normalize_email(email))
        logger.info("Password reset requested")

    async def confirm_password_reset(self, token: str, new_password: str) -> str:
        validate_password(new_password)
        user_id = await self._credentials.confirm_password_reset(token, new_password)
        logger.info("Password reset completed for user %s", user_id)
        return user_id
