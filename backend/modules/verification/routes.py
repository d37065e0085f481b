"""
Verification API endpoints.

Clients poll /status on their own schedule. Every route that issues a
token (email start, resend, phone start) is gated by the resend cooldown,
enforced here on top of the service's can_resend signal.
"""

import math

from fastapi import APIRouter, Depends

from api.dependencies import get_verification_service
from api.middleware.auth import get_current_principal, get_session
from modules.auth.models import SessionResponse
from shared.config import get_settings
from shared.models import Principal, Session

from .exceptions import ResendCooldownError
from .interfaces import IVerificationService
from .models import (
    ConfirmEmailRequest,
    ConfirmPasswordResetRequest,
    ConfirmPhoneRequest,
    PasswordResetRequest,
    PhoneVerificationStarted,
    StartPhoneRequest,
    VerificationStatus,
)

router = APIRouter()


async def enforce_resend_cooldown(
    principal: Principal = Depends(get_current_principal),
    service: IVerificationService = Depends(get_verification_service),
) -> Principal:
    """
    Dependency for every route that issues a new token.

    Raises ResendCooldownError (429) while the last token of either
    channel is younger than the cooldown.
    """
    status = await service.poll_verification_status(principal.id)
    if not status.can_resend:
        cooldown = get_settings().resend_cooldown_seconds
        elapsed = status.seconds_since_last_issue or 0.0
        raise ResendCooldownError(max(1, math.ceil(cooldown - elapsed)))
    return principal


@router.get("/status", response_model=VerificationStatus)
async def poll_status(
    principal: Principal = Depends(get_current_principal),
    service: IVerificationService = Depends(get_verification_service),
) -> VerificationStatus:
    """Current verification state of the caller's account."""
    return await service.poll_verification_status(principal.id)


@router.post("/email/start", response_model=VerificationStatus)
async def start_email_verification(
    principal: Principal = Depends(enforce_resend_cooldown),
    service: IVerificationService = Depends(get_verification_service),
) -> VerificationStatus:
    """Send an email verification link to the caller. Subject to the resend cooldown."""
    return await service.start_email_verification(principal.id)


@router.post("/email/resend", response_model=VerificationStatus)
async def resend_email_verification(
    principal: Principal = Depends(enforce_resend_cooldown),
    service: IVerificationService = Depends(get_verification_service),
) -> VerificationStatus:
    """
    Send a new verification link, invalidating the previous one.

    Returns 429 until the resend cooldown has elapsed.
    """
    return await service.resend_email_verification(principal.id)


@router.post("/email/confirm", response_model=VerificationStatus)
async def confirm_email_link(
    request: ConfirmEmailRequest,
    service: IVerificationService = Depends(get_verification_service),
) -> VerificationStatus:
    """
    Confirm an email link.

    Needs no session: the token is the proof of email ownership.
    Activation is a separate, authenticated step.
    """
    return await service.confirm_email_link(request.user_id, request.token)


@router.post("/phone/start", response_model=PhoneVerificationStarted)
async def start_phone_verification(
    request: StartPhoneRequest,
    principal: Principal = Depends(enforce_resend_cooldown),
    service: IVerificationService = Depends(get_verification_service),
) -> PhoneVerificationStarted:
    """Send a one-time code to a phone number. Subject to the resend cooldown."""
    return await service.start_phone_verification(principal.id, request.phone)


@router.post("/phone/confirm", response_model=VerificationStatus)
async def confirm_phone_code(
    request: ConfirmPhoneRequest,
    principal: Principal = Depends(get_current_principal),
    service: IVerificationService = Depends(get_verification_service),
) -> VerificationStatus:
    """Confirm a one-time phone code."""
    return await service.confirm_phone_code(principal.id, request.session_id, request.code)


@router.post("/activate", response_model=SessionResponse)
async def activate(
    session: Session = Depends(get_session),
    principal: Principal = Depends(get_current_principal),
    service: IVerificationService = Depends(get_verification_service),
) -> SessionResponse:
    """Activate the caller's verified account and return a fresh session."""
    activated = await service.activate(session, principal.id)
    return SessionResponse.from_session(activated)


@router.post("/password-reset", status_code=202)
async def request_password_reset(
    request: PasswordResetRequest,
    service: IVerificationService = Depends(get_verification_service),
) -> dict:
    """Email a password reset token."""
    await service.request_password_reset(request.email)
    return {"status": "sent"}


@router.post("/password-reset/confirm")
async def confirm_password_reset(
    request: ConfirmPasswordResetRequest,
    service: IVerificationService = Depends(get_verification_service),
) -> dict:
    """Set a new password with a reset token."""
    await service.confirm_password_reset(request.token, request.new_password)
    return {"status": "updated"}
