"""
Authentication API endpoints.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_auth_service
from api.middleware.auth import get_session
from shared.models import Session

from .interfaces import IAuthService
from .models import PhoneSignInRequest, SessionResponse, SignInRequest, SignUpRequest

router = APIRouter()


@router.post("/signup", response_model=SessionResponse, status_code=201)
async def sign_up(
    request: SignUpRequest,
    service: IAuthService = Depends(get_auth_service),
) -> SessionResponse:
    """Create a credential without a User record (deferred registration)."""
    return SessionResponse.from_session(await service.sign_up(request.email, request.password))


@router.post("/signin", response_model=SessionResponse)
async def sign_in(
    request: SignInRequest,
    service: IAuthService = Depends(get_auth_service),
) -> SessionResponse:
    """Sign in with email and password."""
    return SessionResponse.from_session(await service.sign_in(request.email, request.password))


@router.post("/signin/phone", response_model=SessionResponse)
async def sign_in_with_phone(
    request: PhoneSignInRequest,
    service: IAuthService = Depends(get_auth_service),
) -> SessionResponse:
    """Sign in with the phone number on the profile and the password."""
    return SessionResponse.from_session(
        await service.sign_in_with_phone(request.phone, request.password)
    )


@router.post("/signout", response_model=SessionResponse)
async def sign_out(
    session: Session = Depends(get_session),
    service: IAuthService = Depends(get_auth_service),
) -> SessionResponse:
    """End the session. Tokens are stateless, so clients must discard theirs."""
    return SessionResponse.from_session(await service.sign_out(session))


@router.get("/session", response_model=SessionResponse)
async def current_session(session: Session = Depends(get_session)) -> SessionResponse:
    """The caller's session as resolved from the bearer token."""
    return SessionResponse.from_session(session)
