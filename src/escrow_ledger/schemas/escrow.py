"""Pydantic schemas for the Escrow Ledger API.

These schemas define the request/response shapes for the REST API. They
are separate from the ORM models to maintain clean boundaries between the
API and database layers.

Amounts are integers in the smallest currency unit; party identifiers are
opaque strings of at most 64 characters.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - needed at runtime by pydantic

from pydantic import BaseModel, ConfigDict, Field

from escrow_ledger.domain.enums import Role  # noqa: TC001 - needed at runtime by pydantic
from escrow_ledger.domain.fees import MAX_AMOUNT

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateAgreementRequest(BaseModel):
    """Request body for opening a new escrow agreement."""

    sender: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Party depositing the funds",
        examples=["alice"],
    )
    receiver: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Party entitled to the amount once the agreement is paid",
        examples=["bob"],
    )
    middleman: str | None = Field(
        default=None,
        max_length=64,
        description="Arbiter paid the commission on either outcome; defaults to the owner",
    )
    amount: int = Field(
        ..., ge=0, le=MAX_AMOUNT, description="Gross value for the receiver", examples=[100]
    )
    commission: int = Field(
        ..., ge=0, le=MAX_AMOUNT, description="Middleman commission", examples=[5]
    )
    deposited_funds: int = Field(
        ...,
        ge=0,
        le=MAX_AMOUNT,
        description="Funds committed with this request; must equal amount + commission",
        examples=[105],
    )
    idempotency_key: str | None = Field(
        default=None,
        max_length=128,
        description="Optional idempotency key to prevent a duplicate deposit",
    )


class ResolveAgreementRequest(BaseModel):
    """Request body for paying or canceling an agreement."""

    caller: str = Field(..., min_length=1, max_length=64, description="Party requesting it")


class WithdrawRequest(BaseModel):
    """Request body for withdrawing a credited balance."""

    caller: str = Field(..., min_length=1, max_length=64, description="Must match the party")


class SetFeeRateRequest(BaseModel):
    """Request body for changing the service fee rate."""

    caller: str = Field(..., min_length=1, max_length=64)
    fee_rate_percent: int = Field(..., ge=0, le=100)


class OwnerRequest(BaseModel):
    """Request body for owner-only actions without parameters."""

    caller: str = Field(..., min_length=1, max_length=64)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class AgreementResponse(BaseModel):
    """Response schema for an escrow agreement."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    sender: str
    receiver: str
    middleman: str
    amount: int
    commission: int
    fee: int
    fee_rate_percent: int
    status: str
    created_at: datetime
    updated_at: datetime


class AgreementEventResponse(BaseModel):
    """Response schema for an audit event."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    agreement_id: int
    event_type: str
    old_status: str | None
    new_status: str
    actor: str
    metadata: dict | None = Field(default=None, validation_alias="metadata_json")
    created_at: datetime


class AgreementStatusResponse(BaseModel):
    """Lightweight status check response."""

    agreement_id: int
    status: str
    is_paid: bool
    is_canceled: bool
    is_unchanged: bool
    allowed_events: list[str] = Field(
        description="State machine events that can fire from the current status"
    )


class RoleResponse(BaseModel):
    agreement_id: int
    party: str
    role: Role


class PartyAgreementsResponse(BaseModel):
    party: str
    role: Role
    agreement_ids: list[int]


class BalanceResponse(BaseModel):
    party: str
    balance: int


class WithdrawalResponse(BaseModel):
    party: str
    amount: int
    reference: str


class FeeRateResponse(BaseModel):
    fee_rate_percent: int
    owner: str


class ConservationReportResponse(BaseModel):
    total_deposited: int
    total_withdrawn: int
    total_balances: int
    held_in_custody: int
    open_agreements: int
    balanced: bool


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    database: str = "unknown"
    redis: str = "unknown"
