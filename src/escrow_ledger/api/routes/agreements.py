"""Escrow agreement REST API routes.

Routes:
    POST   /api/v1/agreements                    — Open a new agreement (deposit)
    GET    /api/v1/agreements                    — List agreements
    GET    /api/v1/agreements/{id}               — Get agreement details
    GET    /api/v1/agreements/{id}/status        — Lightweight status check
    GET    /api/v1/agreements/{id}/events        — Audit trail
    GET    /api/v1/agreements/{id}/roles/{party} — Role a party holds
    POST   /api/v1/agreements/{id}/pay           — Release to the receiver
    POST   /api/v1/agreements/{id}/cancel        — Refund the sender
    GET    /api/v1/parties/{party}/agreements    — Agreement ids by role
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from escrow_ledger.api.deps import get_escrow_service
from escrow_ledger.domain.enums import AgreementStatus, Role
from escrow_ledger.domain.exceptions import DuplicateOperationError
from escrow_ledger.infrastructure import redis_client
from escrow_ledger.logging_config import get_logger
from escrow_ledger.schemas.escrow import (
    AgreementEventResponse,
    AgreementResponse,
    AgreementStatusResponse,
    CreateAgreementRequest,
    PartyAgreementsResponse,
    ResolveAgreementRequest,
    RoleResponse,
)
from escrow_ledger.services.escrow_service import EscrowService  # noqa: TC001

router = APIRouter(prefix="/api/v1", tags=["Agreements"])
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@router.post(
    "/agreements",
    response_model=AgreementResponse,
    status_code=201,
    summary="Open a new escrow agreement",
)
async def create_agreement(
    request: CreateAgreementRequest,
    svc: EscrowService = Depends(get_escrow_service),
) -> AgreementResponse:
    """Take custody of amount + commission and open the agreement in CREATED state."""
    key = request.idempotency_key
    use_idempotency = key is not None and redis_client.is_redis_ready()
    if use_idempotency and not await redis_client.claim_idempotency_key(key):
        raise DuplicateOperationError(key)

    try:
        agreement = await svc.create_agreement(
            sender=request.sender,
            receiver=request.receiver,
            middleman=request.middleman,
            amount=request.amount,
            commission=request.commission,
            deposited_funds=request.deposited_funds,
        )
    except Exception:
        if use_idempotency:
            await redis_client.release_idempotency_key(key)
        raise

    # create_agreement has committed; the key can now point at the agreement
    if use_idempotency:
        await redis_client.remember_idempotent_agreement(key, agreement.id)
    return AgreementResponse.model_validate(agreement)


# ---------------------------------------------------------------------------
# Resolve
# ---------------------------------------------------------------------------


@router.post(
    "/agreements/{agreement_id}/pay",
    response_model=AgreementResponse,
    summary="Mark an agreement paid",
)
async def pay_agreement(
    agreement_id: int,
    request: ResolveAgreementRequest,
    svc: EscrowService = Depends(get_escrow_service),
) -> AgreementResponse:
    """Credit the receiver and the middleman. Allowed for the sender or the middleman."""
    agreement = await svc.pay_agreement(agreement_id, request.caller)
    return AgreementResponse.model_validate(agreement)


@router.post(
    "/agreements/{agreement_id}/cancel",
    response_model=AgreementResponse,
    summary="Cancel an agreement",
)
async def cancel_agreement(
    agreement_id: int,
    request: ResolveAgreementRequest,
    svc: EscrowService = Depends(get_escrow_service),
) -> AgreementResponse:
    """Credit the sender and the middleman. Allowed for the receiver or the middleman."""
    agreement = await svc.cancel_agreement(agreement_id, request.caller)
    return AgreementResponse.model_validate(agreement)


# ---------------------------------------------------------------------------
# Read endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/agreements",
    response_model=list[AgreementResponse],
    summary="List agreements",
)
async def list_agreements(
    status: AgreementStatus | None = None,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    svc: EscrowService = Depends(get_escrow_service),
) -> list[AgreementResponse]:
    agreements = await svc.list_agreements(status=status, offset=offset, limit=limit)
    return [AgreementResponse.model_validate(a) for a in agreements]


@router.get(
    "/agreements/{agreement_id}",
    response_model=AgreementResponse,
    summary="Get agreement details",
)
async def get_agreement(
    agreement_id: int,
    svc: EscrowService = Depends(get_escrow_service),
) -> AgreementResponse:
    agreement = await svc.get_agreement(agreement_id)
    return AgreementResponse.model_validate(agreement)


@router.get(
    "/agreements/{agreement_id}/status",
    response_model=AgreementStatusResponse,
    summary="Get lightweight status check",
)
async def get_status(
    agreement_id: int,
    svc: EscrowService = Depends(get_escrow_service),
) -> AgreementStatusResponse:
    """Return the current status and allowed next actions."""
    status_data = await svc.get_status(agreement_id)
    return AgreementStatusResponse(**status_data)


@router.get(
    "/agreements/{agreement_id}/events",
    response_model=list[AgreementEventResponse],
    summary="Get audit trail",
)
async def get_events(
    agreement_id: int,
    svc: EscrowService = Depends(get_escrow_service),
) -> list[AgreementEventResponse]:
    events = await svc.get_events(agreement_id)
    return [AgreementEventResponse.model_validate(e) for e in events]


@router.get(
    "/agreements/{agreement_id}/roles/{party}",
    response_model=RoleResponse,
    summary="Get the role a party holds in an agreement",
)
async def get_role(
    agreement_id: int,
    party: str,
    svc: EscrowService = Depends(get_escrow_service),
) -> RoleResponse:
    role = await svc.role_of(agreement_id, party)
    return RoleResponse(agreement_id=agreement_id, party=party, role=role)


@router.get(
    "/parties/{party}/agreements",
    response_model=PartyAgreementsResponse,
    summary="List agreement ids where a party holds a role",
)
async def get_party_agreements(
    party: str,
    role: Role = Query(...),
    svc: EscrowService = Depends(get_escrow_service),
) -> PartyAgreementsResponse:
    ids = await svc.agreements_by_role(role, party)
    return PartyAgreementsResponse(party=party, role=role, agreement_ids=ids)
