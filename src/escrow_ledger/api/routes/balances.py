"""Credited balance REST API routes.

Routes:
    GET    /api/v1/balances/{party}           — Credited, unwithdrawn balance
    POST   /api/v1/balances/{party}/withdraw  — Pull the full balance out
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from escrow_ledger.api.deps import get_escrow_service
from escrow_ledger.domain.exceptions import UnauthorizedError
from escrow_ledger.schemas.escrow import BalanceResponse, WithdrawalResponse, WithdrawRequest
from escrow_ledger.services.escrow_service import EscrowService  # noqa: TC001

router = APIRouter(prefix="/api/v1/balances", tags=["Balances"])


@router.get("/{party}", response_model=BalanceResponse, summary="Get a credited balance")
async def get_balance(
    party: str,
    svc: EscrowService = Depends(get_escrow_service),
) -> BalanceResponse:
    return BalanceResponse(party=party, balance=await svc.balance_of(party))


@router.post(
    "/{party}/withdraw",
    response_model=WithdrawalResponse,
    summary="Withdraw the full credited balance",
)
async def withdraw(
    party: str,
    request: WithdrawRequest,
    svc: EscrowService = Depends(get_escrow_service),
) -> WithdrawalResponse:
    """Zero the balance and hand it to the payout gateway. Only the party itself may call."""
    if request.caller != party:
        raise UnauthorizedError(request.caller, f"withdraw the balance of {party}")
    withdrawal = await svc.withdraw(party)
    return WithdrawalResponse(**withdrawal.to_dict())
