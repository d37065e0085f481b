"""
User-related endpoints.

Provides endpoints for user profile, account and role management.
"""

from fastapi import APIRouter, Depends, status

from modules.auth.permissions import authorize_user_access
from modules.identity.interfaces import IIdentityService
from modules.identity.models import (
    ChangeEmailRequest,
    ChangePasswordRequest,
    UpdateProfileRequest,
    User,
)
from shared.models import Principal

from ..dependencies import get_identity_service
from ..middleware.auth import get_current_principal

router = APIRouter()


@router.get("/me", response_model=User)
async def get_current_user_profile(
    principal: Principal = Depends(get_current_principal),
    service: IIdentityService = Depends(get_identity_service),
) -> User:
    """
    Get the current user's profile.

    Requires authentication.
    """
    return await service.get_user(principal.id)


@router.post("/me/email", response_model=User)
async def change_email(
    request: ChangeEmailRequest,
    principal: Principal = Depends(get_current_principal),
    service: IIdentityService = Depends(get_identity_service),
) -> User:
    """Change the sign-in email. Verification starts over."""
    return await service.change_email(principal, request.current_password, request.new_email)


@router.post("/me/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    request: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    service: IIdentityService = Depends(get_identity_service),
) -> None:
    """Change the password."""
    await service.change_password(principal, request.current_password, request.new_password)


@router.get("", response_model=list[User])
async def list_users(
    principal: Principal = Depends(get_current_principal),
    service: IIdentityService = Depends(get_identity_service),
) -> list[User]:
    """List all users. Admin only."""
    return await service.list_users(principal)


@router.get("/{user_id}", response_model=User)
async def get_user(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    service: IIdentityService = Depends(get_identity_service),
) -> User:
    """Get a user's profile. Self or admin."""
    authorize_user_access(principal, user_id)
    return await service.get_user(user_id)


@router.patch("/{user_id}", response_model=User)
async def update_profile(
    user_id: str,
    request: UpdateProfileRequest,
    principal: Principal = Depends(get_current_principal),
    service: IIdentityService = Depends(get_identity_service),
) -> User:
    """Update name and phone. Self or admin."""
    return await service.update_profile(principal, user_id, name=request.name, phone=request.phone)


@router.post("/{user_id}/roles/admin", response_model=User)
async def grant_admin(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    service: IIdentityService = Depends(get_identity_service),
) -> User:
    """Grant the admin role. Admin only."""
    return await service.grant_admin(principal, user_id)


@router.post("/{user_id}/roles/vendor", response_model=User)
async def grant_vendor(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    service: IIdentityService = Depends(get_identity_service),
) -> User:
    """Grant the vendor role. Admin only."""
    return await service.grant_vendor(principal, user_id)
