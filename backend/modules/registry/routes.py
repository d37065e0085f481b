"""
RFID registry API endpoints.

Bins post scans with their X-Bin-Key; clients check availability before
registering and may claim a scanned token for an existing account.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_registry_service
from api.middleware.auth import get_current_principal, require_bin
from shared.models import Principal

from .interfaces import IRegistryService
from .models import AvailabilityResult, ClaimRequest, RegistryEntry, ScanRequest, UnclaimedToken

router = APIRouter()


@router.post("/scans", response_model=AvailabilityResult, status_code=202)
async def record_scan(
    request: ScanRequest,
    bin_principal: Principal = Depends(require_bin),
    service: IRegistryService = Depends(get_registry_service),
) -> AvailabilityResult:
    """
    Record a scan of an unregistered RFID by bin hardware.

    Scans of registered tokens are accepted and ignored.
    """
    return await service.record_scan(request.token)


@router.get("/unclaimed", response_model=list[UnclaimedToken])
async def list_unclaimed(
    principal: Principal = Depends(get_current_principal),
    service: IRegistryService = Depends(get_registry_service),
) -> list[UnclaimedToken]:
    """List scanned tokens nobody has claimed yet. Admin only."""
    return await service.list_unclaimed(principal)


@router.get("/{token}/availability", response_model=AvailabilityResult)
async def check_availability(
    token: str,
    service: IRegistryService = Depends(get_registry_service),
) -> AvailabilityResult:
    """Report whether a token is registered, available or not scanned yet."""
    return await service.check_availability(token)


@router.post("/{token}/claim", response_model=RegistryEntry)
async def claim_token(
    token: str,
    request: ClaimRequest,
    principal: Principal = Depends(get_current_principal),
    service: IRegistryService = Depends(get_registry_service),
) -> RegistryEntry:
    """
    Bind a scanned token to the caller, or to another user (admin only).
    """
    return await service.claim(token, request.user_id or principal.id, principal=principal)
