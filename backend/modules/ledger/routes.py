"""
Ledger API endpoints.

Bins credit points by RFID; vendors redeem; users read their own history.
"""

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_ledger_service
from api.middleware.auth import get_current_principal, require_bin
from modules.auth.permissions import authorize_user_access, require_admin
from shared.models import Principal

from .interfaces import ILedgerService
from .models import Balance, BalanceAudit, CreditRequest, LedgerEntry, RedeemRequest

router = APIRouter()


@router.post("/credits", response_model=LedgerEntry, status_code=201)
async def credit_points(
    request: CreditRequest,
    bin_principal: Principal = Depends(require_bin),
    service: ILedgerService = Depends(get_ledger_service),
) -> LedgerEntry:
    """Credit points to the user bound to a scanned RFID."""
    return await service.credit_by_token(
        request.token,
        request.points,
        source=request.source or bin_principal.id,
    )


@router.post("/redemptions", response_model=LedgerEntry, status_code=201)
async def redeem_points(
    request: RedeemRequest,
    principal: Principal = Depends(get_current_principal),
    service: ILedgerService = Depends(get_ledger_service),
) -> LedgerEntry:
    """
    Redeem a user's points.

    Vendors redeem as themselves; admins may name any vendor.
    """
    return await service.redeem(
        request.user_id,
        request.vendor_id or principal.id,
        request.points,
        principal=principal,
    )


@router.get("/users/{user_id}/balance", response_model=Balance)
async def get_balance(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    service: ILedgerService = Depends(get_ledger_service),
) -> Balance:
    """Get a user's balance. Self or admin."""
    authorize_user_access(principal, user_id)
    return await service.get_balance(user_id)


@router.get("/users/{user_id}/entries", response_model=list[LedgerEntry])
async def get_entries(
    user_id: str,
    limit: int = Query(default=50, ge=1, le=200, description="Maximum entries"),
    offset: int = Query(default=0, ge=0, description="Entries to skip"),
    principal: Principal = Depends(get_current_principal),
    service: ILedgerService = Depends(get_ledger_service),
) -> list[LedgerEntry]:
    """Get a user's ledger, most recent first. Self or admin."""
    authorize_user_access(principal, user_id)
    return await service.get_entries(user_id, limit, offset)


@router.get("/users/{user_id}/audit", response_model=BalanceAudit)
async def audit_balance(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    service: ILedgerService = Depends(get_ledger_service),
) -> BalanceAudit:
    """Compare a user's cached balance with the ledger total. Admin only."""
    require_admin(principal)
    return await service.audit_balance(user_id)


@router.get("/vendors/{vendor_id}/entries", response_model=list[LedgerEntry])
async def get_vendor_entries(
    vendor_id: str,
    limit: int = Query(default=50, ge=1, le=200, description="Maximum entries"),
    offset: int = Query(default=0, ge=0, description="Entries to skip"),
    principal: Principal = Depends(get_current_principal),
    service: ILedgerService = Depends(get_ledger_service),
) -> list[LedgerEntry]:
    """Get a vendor's redemptions. The vendor itself or an admin."""
    authorize_user_access(principal, vendor_id)
    return await service.get_vendor_entries(vendor_id, limit, offset)
