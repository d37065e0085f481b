"""
Authentication service implementation.

Signs principals in against the credential provider, mints and validates
session JWTs, and authenticates bin hardware by API key.
"""

import hashlib
import logging
import secrets
from typing import Optional

from modules.identity.interfaces import IIdentityService
from modules.identity.validation import normalize_email, normalize_phone, validate_password
from modules.verification.models import VERIFIED_STATES, VerificationRecord, verification_key
from providers.base import CredentialProvider
from providers.exceptions import CredentialNotFoundError, InvalidCredentialsError
from shared.config import get_settings
from shared.models import Principal, Session
from shared.store import IStore

from . import permissions
from .exceptions import AccountNotFoundError, InvalidBinKeyError
from .interfaces import IAuthService
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)


class AuthService(IAuthService):
    """
    Implementation of the authentication service.

    Principals are rebuilt from the User record on every call; accounts
    that only have a credential (deferred registration) resolve to a
    principal without roles.
    """

    def __init__(
        self,
        store: IStore,
        identity: IIdentityService,
        credentials: CredentialProvider,
        tokens: Optional[TokenIssuer] = None,
    ):
        self._settings = get_settings()
        self._store = store
        self._identity = identity
        self._credentials = credentials
        self._tokens = tokens or TokenIssuer()

    async def _verification_state(self, user_id: str) -> Optional[str]:
        data = await self._store.get(verification_key(user_id))
        if data is None:
            return None
        return VerificationRecord.model_validate(data).state.value

    async def _principal_for(self, user_id: str) -> Principal:
        state = await self._verification_state(user_id)
        email_verified = state in {s.value for s in VERIFIED_STATES}

        user = await self._identity.find_user(user_id)
        if user is not None:
            return Principal(
                id=user.id,
                email=user.email,
                email_verified=email_verified,
                is_admin=user.is_admin,
                is_vendor=user.is_vendor,
            )

        try:
            credential = await self._credentials.get_credential(user_id)
        except CredentialNotFoundError:
            raise AccountNotFoundError(user_id)
        return Principal(id=credential.user_id, email=credential.email, email_verified=email_verified)

    async def issue_access_token(self, principal: Principal) -> Session:
        access_token, expires_at = self._tokens.issue(principal)
        return Session(
            principal=principal,
            access_token=access_token,
            expires_at=expires_at,
            verification_state=await self._verification_state(principal.id),
        )

    async def sign_up(self, email: str, password: str) -> Session:
        email = normalize_email(email)
        validate_password(password)
        user_id = await self._credentials.create_credential(email, password)
        logger.info("Created credential for user %s", user_id)
        return await self.issue_access_token(await self._principal_for(user_id))

    async def sign_in(self, email: str, password: str) -> Session:
        user_id = await self._credentials.verify_credential(email.strip().lower(), password)
        logger.info("User %s signed in", user_id)
        return await self.issue_access_token(await self._principal_for(user_id))

    async def sign_in_with_phone(self, phone: str, password: str) -> Session:
        user = await self._identity.find_by_phone(normalize_phone(phone))
        if user is None:
            raise InvalidCredentialsError("Invalid phone number or password")
        return await self.sign_in(user.email, password)

    async def sign_out(self, session: Session) -> Session:
        if session.principal is not None:
            logger.info("User %s signed out", session.principal.id)
        return Session()

    async def validate_token(self, token: str) -> Principal:
        payload = self._tokens.decode(token)
        return await self._principal_for(payload.sub)

    async def authenticate_bin(self, api_key: str) -> Principal:
        if api_key:
            for configured in self._settings.bin_api_keys:
                if secrets.compare_digest(api_key.encode("utf-8"), configured.encode("utf-8")):
                    fingerprint = hashlib.sha256(api_key.encode("utf-8")).hexdigest()[:12]
                    return Principal(id=f"bin:{fingerprint}", is_bin=True)
        raise InvalidBinKeyError()

    def require_admin(self, principal: Principal) -> Principal:
        return permissions.require_admin(principal)

    def require_vendor(self, principal: Principal) -> Principal:
        return permissions.require_vendor(principal)

    def authorize_user_access(self, principal: Principal, user_id: str, role: str = "admin") -> Principal:
        return permissions.authorize_user_access(principal, user_id, role)
