"""
Registration API endpoints.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_registration_service
from api.middleware.auth import get_current_principal, get_session
from shared.models import Principal, Session

from .interfaces import IRegistrationService
from .models import (
    BeginRegistrationRequest,
    PendingRegistration,
    PurgeResult,
    RegisterRequest,
    RegistrationResult,
)

router = APIRouter()


@router.post("", response_model=RegistrationResult, status_code=201)
async def register(
    request: RegisterRequest,
    service: IRegistrationService = Depends(get_registration_service),
) -> RegistrationResult:
    """
    Register an account and bind a scanned RFID to it.

    The account starts unverified; a verification link is emailed.
    """
    return await service.register(
        name=request.name,
        email=request.email,
        password=request.password,
        token=request.token,
        phone=request.phone,
    )


@router.post("/pending", response_model=PendingRegistration, status_code=201)
async def begin_deferred_registration(
    request: BeginRegistrationRequest,
    service: IRegistrationService = Depends(get_registration_service),
) -> PendingRegistration:
    """Hold registration details until the email is verified."""
    return await service.begin_deferred_registration(
        name=request.name,
        email=request.email,
        token=request.token,
        phone=request.phone,
    )


@router.post("/pending/purge", response_model=PurgeResult)
async def purge_expired(
    principal: Principal = Depends(get_current_principal),
    service: IRegistrationService = Depends(get_registration_service),
) -> PurgeResult:
    """Delete expired pending registrations. Admin only."""
    return await service.purge_expired_pending_registrations(principal)


@router.get("/pending/{pending_id}", response_model=PendingRegistration)
async def get_pending_registration(
    pending_id: str,
    service: IRegistrationService = Depends(get_registration_service),
) -> PendingRegistration:
    """Get a pending registration that has not expired."""
    return await service.get_pending_registration(pending_id)


@router.post("/pending/{pending_id}/complete", response_model=RegistrationResult)
async def complete_registration(
    pending_id: str,
    session: Session = Depends(get_session),
    principal: Principal = Depends(get_current_principal),
    service: IRegistrationService = Depends(get_registration_service),
) -> RegistrationResult:
    """Turn a pending registration into an active account for the verified caller."""
    return await service.complete_registration(session, pending_id)
