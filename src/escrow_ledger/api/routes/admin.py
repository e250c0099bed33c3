"""Owner-only administration REST API routes.

Routes:
    GET    /api/v1/admin/fee-rate  — Current fee rate and owner identity
    PUT    /api/v1/admin/fee-rate  — Change the fee rate (owner only)
    POST   /api/v1/admin/withdraw  — Withdraw the service fee balance (owner only)
    GET    /api/v1/admin/audit     — Conservation-of-funds report
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from escrow_ledger.api.deps import get_escrow_service, get_owner_admin
from escrow_ledger.schemas.escrow import (
    ConservationReportResponse,
    FeeRateResponse,
    OwnerRequest,
    SetFeeRateRequest,
    WithdrawalResponse,
)
from escrow_ledger.services.escrow_service import EscrowService  # noqa: TC001
from escrow_ledger.services.owner_admin import OwnerAdminService  # noqa: TC001

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


@router.get("/fee-rate", response_model=FeeRateResponse, summary="Get the fee rate")
async def get_fee_rate(
    admin: OwnerAdminService = Depends(get_owner_admin),
) -> FeeRateResponse:
    return FeeRateResponse(
        fee_rate_percent=await admin.current_fee_rate_percent(),
        owner=admin.owner_identity(),
    )


@router.put("/fee-rate", response_model=FeeRateResponse, summary="Change the fee rate")
async def set_fee_rate(
    request: SetFeeRateRequest,
    admin: OwnerAdminService = Depends(get_owner_admin),
) -> FeeRateResponse:
    """Applies to agreements created after the change."""
    new_rate = await admin.set_fee_rate_percent(request.caller, request.fee_rate_percent)
    return FeeRateResponse(fee_rate_percent=new_rate, owner=admin.owner_identity())


@router.post(
    "/withdraw",
    response_model=WithdrawalResponse,
    summary="Withdraw the service fee balance",
)
async def withdraw_service_balance(
    request: OwnerRequest,
    admin: OwnerAdminService = Depends(get_owner_admin),
) -> WithdrawalResponse:
    withdrawal = await admin.withdraw_service_balance(request.caller)
    return WithdrawalResponse(**withdrawal.to_dict())


@router.get(
    "/audit",
    response_model=ConservationReportResponse,
    summary="Check conservation of funds",
)
async def audit(
    svc: EscrowService = Depends(get_escrow_service),
) -> ConservationReportResponse:
    report = await svc.audit()
    return ConservationReportResponse(**report.to_dict())
