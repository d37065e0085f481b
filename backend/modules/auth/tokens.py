"""
Session token minting and validation (HS256 JWT via PyJWT).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from shared.config import get_settings
from shared.models import Principal, utc_now

from .exceptions import ExpiredTokenError, InvalidTokenError, MissingTokenError
from .models import TokenPayload

AUDIENCE = "authenticated"


class TokenIssuer:
    """Signs and verifies session tokens with the configured secret."""

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_minutes: Optional[int] = None,
    ):
        settings = get_settings()
        self._secret = secret or settings.jwt_secret
        self._algorithm = algorithm or settings.jwt_algorithm
        self._expire_minutes = expire_minutes or settings.jwt_expire_minutes

    def issue(self, principal: Principal) -> tuple[str, datetime]:
        """
        Mint a token for a principal.

        Returns:
            (token, expires_at)
        """
        now = utc_now()
        expires_at = now + timedelta(minutes=self._expire_minutes)
        payload = {
            "sub": principal.id,
            "email": principal.email,
            "aud": AUDIENCE,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return token, datetime.fromtimestamp(payload["exp"], tz=timezone.utc)

    def decode(self, token: str) -> TokenPayload:
        """
        Verify a token's signature, audience and expiry.

        Raises:
            MissingTokenError: If token is empty
            ExpiredTokenError: If the token has expired
            InvalidTokenError: For any other verification failure
        """
        if not token:
            raise MissingTokenError()

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=AUDIENCE,
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(str(e))

        return TokenPayload(**payload)
