"""Credential provider implementations.

InMemoryCredentialProvider keeps bcrypt-hashed credentials, one-time phone
codes and password reset tokens in process memory (development and tests).
SupabaseCredentialProvider delegates to Supabase Auth.
"""

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from supabase import AuthApiError, Client

from shared.config import get_settings
from shared.models import Clock, utc_now

from .base import CredentialInfo, CredentialProvider, NotificationChannel, NotificationDispatcher
from .exceptions import (
    CredentialNotFoundError,
    CredentialProviderError,
    EmailAlreadyInUseError,
    InvalidCodeError,
    InvalidCredentialsError,
    NotificationDeliveryError,
)

logger = logging.getLogger(__name__)


@dataclass
class _StoredCredential:
    user_id: str
    email: str
    password_hash: bytes
    phone: Optional[str] = None


@dataclass
class _OneTimeSecret:
    subject: str
    secret: str
    expires_at: datetime
    consumed: bool = False


class InMemoryCredentialProvider(CredentialProvider):
    """Process-local credential provider.

    Issued phone codes and reset tokens are handed to the optional
    notification dispatcher and also kept in ``sent_codes`` /
    ``sent_reset_tokens`` so local tooling can read them back.
    """

    def __init__(
        self,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Clock = utc_now,
        bcrypt_rounds: int = 12,
    ):
        self._settings = get_settings()
        self._dispatcher = dispatcher
        self._clock = clock
        self._rounds = bcrypt_rounds
        self._credentials: dict[str, _StoredCredential] = {}
        self._otp_sessions: dict[str, _OneTimeSecret] = {}
        self._reset_tokens: dict[str, _OneTimeSecret] = {}
        self.sent_codes: dict[str, str] = {}
        self.sent_reset_tokens: dict[str, str] = {}

    def _hash(self, password: str) -> bytes:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds))

    def _by_email(self, email: str) -> Optional[_StoredCredential]:
        email = email.strip().lower()
        for credential in self._credentials.values():
            if credential.email == email:
                return credential
        return None

    def _require(self, user_id: str) -> _StoredCredential:
        credential = self._credentials.get(user_id)
        if credential is None:
            raise CredentialNotFoundError(user_id)
        return credential

    async def _notify(self, channel: NotificationChannel, destination: str, payload: dict) -> None:
        if self._dispatcher is None:
            return
        try:
            await self._dispatcher.send(channel, destination, payload)
        except NotificationDeliveryError as e:
            logger.warning("Credential notification to %s failed: %s", destination, e.message)

    async def create_credential(self, email: str, password: str) -> str:
        if self._by_email(email) is not None:
            raise EmailAlreadyInUseError(email)

        user_id = str(uuid.uuid4())
        self._credentials[user_id] = _StoredCredential(
            user_id=user_id,
            email=email.strip().lower(),
            password_hash=self._hash(password),
        )
        return user_id

    async def delete_credential(self, user_id: str) -> None:
        self._require(user_id)
        del self._credentials[user_id]

    async def verify_credential(self, email: str, password: str) -> str:
        credential = self._by_email(email)
        if credential is None or not bcrypt.checkpw(password.encode("utf-8"), credential.password_hash):
            raise InvalidCredentialsError()
        return credential.user_id

    async def get_credential(self, user_id: str) -> CredentialInfo:
        credential = self._require(user_id)
        return CredentialInfo(user_id=credential.user_id, email=credential.email, phone=credential.phone)

    async def issue_email_link_token(self, user_id: str) -> str:
        self._require(user_id)
        return secrets.token_urlsafe(32)

    async def issue_phone_otp(self, phone_number: str) -> str:
        code = "".join(secrets.choice("0123456789") for _ in range(self._settings.otp_length))
        session_id = str(uuid.uuid4())
        self._otp_sessions[session_id] = _OneTimeSecret(
            subject=phone_number,
            secret=code,
            expires_at=self._clock() + timedelta(seconds=self._settings.phone_otp_ttl_seconds),
        )
        self.sent_codes[session_id] = code

        await self._notify(
            NotificationChannel.SMS,
            phone_number,
            {"template": "phone_otp", "code": code},
        )
        return session_id

    async def consume_phone_otp(self, session_id: str, code: str) -> Optional[str]:
        otp = self._otp_sessions.get(session_id)
        if otp is None or otp.consumed or self._clock() >= otp.expires_at:
            raise InvalidCodeError()
        if not secrets.compare_digest(otp.secret, code):
            raise InvalidCodeError()

        otp.consumed = True
        for credential in self._credentials.values():
            if credential.phone == otp.subject:
                return credential.user_id
        return None

    async def reset_password(self, email: str) -> None:
        credential = self._by_email(email)
        if credential is None:
            raise CredentialNotFoundError(email)

        token = secrets.token_urlsafe(32)
        self._reset_tokens[token] = _OneTimeSecret(
            subject=credential.user_id,
            secret=token,
            expires_at=self._clock() + timedelta(seconds=self._settings.password_reset_ttl_seconds),
        )
        self.sent_reset_tokens[credential.email] = token

        await self._notify(
            NotificationChannel.EMAIL,
            credential.email,
            {
                "template": "password_reset",
                "link": f"{self._settings.frontend_url}/reset-password?token={token}",
            },
        )

    async def confirm_password_reset(self, reset_token: str, new_password: str) -> str:
        reset = self._reset_tokens.get(reset_token)
        if reset is None or reset.consumed or self._clock() >= reset.expires_at:
            raise InvalidCodeError("Invalid or expired password reset token")

        credential = self._require(reset.subject)
        credential.password_hash = self._hash(new_password)
        reset.consumed = True
        return credential.user_id

    async def update_email(self, user_id: str, new_email: str) -> None:
        credential = self._require(user_id)
        existing = self._by_email(new_email)
        if existing is not None and existing.user_id != user_id:
            raise EmailAlreadyInUseError(new_email)
        credential.email = new_email.strip().lower()

    async def update_password(self, user_id: str, new_password: str) -> None:
        credential = self._require(user_id)
        credential.password_hash = self._hash(new_password)

    async def link_phone(self, user_id: str, phone_number: Optional[str]) -> None:
        self._require(user_id).phone = phone_number


class SupabaseCredentialProvider(CredentialProvider):
    """Credential provider backed by Supabase Auth.

    Admin operations use the service-role client; end-user flows
    (password sign-in, SMS OTP, recovery) use the anon client. Supabase
    identifies an SMS verification by the phone number itself, so that is
    the session ID handed back by issue_phone_otp().
    """

    def __init__(self, admin_client: Client, anon_client: Client):
        self._settings = get_settings()
        self._admin = admin_client
        self._anon = anon_client

    async def create_credential(self, email: str, password: str) -> str:
        try:
            response = self._admin.auth.admin.create_user(
                {"email": email, "password": password, "email_confirm": False}
            )
        except AuthApiError as e:
            if "already" in e.message.lower():
                raise EmailAlreadyInUseError(email)
            raise CredentialProviderError(f"Failed to create credential: {e.message}")
        return response.user.id

    async def delete_credential(self, user_id: str) -> None:
        try:
            self._admin.auth.admin.delete_user(user_id)
        except AuthApiError as e:
            if e.status == 404:
                raise CredentialNotFoundError(user_id)
            raise CredentialProviderError(f"Failed to delete credential: {e.message}")

    async def verify_credential(self, email: str, password: str) -> str:
        try:
            response = self._anon.auth.sign_in_with_password({"email": email, "password": password})
        except AuthApiError:
            raise InvalidCredentialsError()
        if response.user is None:
            raise InvalidCredentialsError()
        return response.user.id

    async def get_credential(self, user_id: str) -> CredentialInfo:
        try:
            response = self._admin.auth.admin.get_user_by_id(user_id)
        except AuthApiError as e:
            if e.status == 404:
                raise CredentialNotFoundError(user_id)
            raise CredentialProviderError(f"Failed to load credential: {e.message}")
        return CredentialInfo(
            user_id=response.user.id,
            email=response.user.email or "",
            phone=response.user.phone or None,
        )

    async def issue_email_link_token(self, user_id: str) -> str:
        credential = await self.get_credential(user_id)
        try:
            response = self._admin.auth.admin.generate_link(
                {"type": "magiclink", "email": credential.email}
            )
        except AuthApiError as e:
            raise CredentialProviderError(f"Failed to generate email link: {e.message}")
        return response.properties.hashed_token

    async def issue_phone_otp(self, phone_number: str) -> str:
        try:
            self._anon.auth.sign_in_with_otp(
                {"phone": phone_number, "options": {"should_create_user": False}}
            )
        except AuthApiError as e:
            raise CredentialProviderError(f"Failed to send SMS code: {e.message}")
        return phone_number

    async def consume_phone_otp(self, session_id: str, code: str) -> Optional[str]:
        try:
            response = self._anon.auth.verify_otp(
                {"phone": session_id, "token": code, "type": "sms"}
            )
        except AuthApiError:
            raise InvalidCodeError()
        return response.user.id if response.user else None

    async def reset_password(self, email: str) -> None:
        try:
            self._anon.auth.reset_password_for_email(
                email,
                {"redirect_to": f"{self._settings.frontend_url}/reset-password"},
            )
        except AuthApiError as e:
            raise CredentialProviderError(f"Failed to send password reset: {e.message}")

    async def confirm_password_reset(self, reset_token: str, new_password: str) -> str:
        try:
            response = self._anon.auth.verify_otp({"token_hash": reset_token, "type": "recovery"})
        except AuthApiError:
            raise InvalidCodeError("Invalid or expired password reset token")
        if response.user is None:
            raise InvalidCodeError("Invalid or expired password reset token")

        await self.update_password(response.user.id, new_password)
        return response.user.id

    async def update_email(self, user_id: str, new_email: str) -> None:
        try:
            self._admin.auth.admin.update_user_by_id(user_id, {"email": new_email})
        except AuthApiError as e:
            if "already" in e.message.lower():
                raise EmailAlreadyInUseError(new_email)
            raise CredentialProviderError(f"Failed to update email: {e.message}")

    async def update_password(self, user_id: str, new_password: str) -> None:
        try:
            self._admin.auth.admin.update_user_by_id(user_id, {"password": new_password})
        except AuthApiError as e:
            raise CredentialProviderError(f"Failed to update password: {e.message}")

    async def link_phone(self, user_id: str, phone_number: Optional[str]) -> None:
        try:
            self._admin.auth.admin.update_user_by_id(user_id, {"phone": phone_number or ""})
        except AuthApiError as e:
            raise CredentialProviderError(f"Failed to link phone: {e.message}")
