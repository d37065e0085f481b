"""
Authentication dependencies.

Resolves bearer session tokens to Principals through the auth service,
and bin hardware requests through the X-Bin-Key header.
"""

from typing import Optional
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from modules.auth.interfaces import IAuthService
from shared.exceptions import AuthenticationError
from shared.models import Principal, Session

from ..dependencies import get_auth_service

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


class AuthError(HTTPException):
    """Authentication error with consistent format."""
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: IAuthService = Depends(get_auth_service),
) -> Session:
    """
    Dependency that resolves the request's session snapshot.

    Anonymous requests get an empty Session; an invalid token is a 401.
    """
    if credentials is None:
        return Session()

    try:
        principal = await auth.validate_token(credentials.credentials)
    except AuthenticationError as e:
        raise AuthError(e.message)
    return Session(principal=principal, access_token=credentials.credentials)


async def get_current_principal(session: Session = Depends(get_session)) -> Principal:
    """
    Dependency that requires authentication.

    Usage:
        @router.get("/protected")
        async def protected_route(principal: Principal = Depends(get_current_principal)):
            return {"user_id": principal.id}
    """
    if session.principal is None:
        raise AuthError("Missing authorization header")
    return session.principal


async def get_optional_principal(session: Session = Depends(get_session)) -> Optional[Principal]:
    """Dependency that extracts the principal if authenticated."""
    return session.principal


async def require_bin(
    x_bin_key: Optional[str] = Header(default=None, alias="X-Bin-Key"),
    auth: IAuthService = Depends(get_auth_service),
) -> Principal:
    """Dependency for endpoints called by bin hardware."""
    if not x_bin_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Bin-Key header")

    try:
        return await auth.authenticate_bin(x_bin_key)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)

