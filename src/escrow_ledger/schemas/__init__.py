"""Pydantic API schemas."""

from escrow_ledger.schemas.escrow import (
    AgreementEventResponse,
    AgreementResponse,
    AgreementStatusResponse,
    BalanceResponse,
    ConservationReportResponse,
    CreateAgreementRequest,
    FeeRateResponse,
    HealthResponse,
    OwnerRequest,
    PartyAgreementsResponse,
    ResolveAgreementRequest,
    RoleResponse,
    SetFeeRateRequest,
    WithdrawalResponse,
    WithdrawRequest,
)

__all__ = [
    "AgreementEventResponse",
    "AgreementResponse",
    "AgreementStatusResponse",
    "BalanceResponse",
    "ConservationReportResponse",
    "CreateAgreementRequest",
    "FeeRateResponse",
    "HealthResponse",
    "OwnerRequest",
    "PartyAgreementsResponse",
    "ResolveAgreementRequest",
    "RoleResponse",
    "SetFeeRateRequest",
    "WithdrawalResponse",
    "WithdrawRequest",
]
