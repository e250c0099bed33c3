"""SQLAlchemy 2.0 ORM models for the Escrow Ledger.

Four tables:
    1. ledger_state      — Single row: fee rate, id allocator, deposit/withdraw totals.
    2. agreements        — Escrow agreements between sender, receiver and middleman.
    3. balances          — Credited-but-unwithdrawn funds per party.
    4. agreement_events  — Append-only audit log of every agreement mutation.

Design decisions:
    - Sequential integer agreement ids handed out by ledger_state, never reused.
    - Integer amounts in the smallest currency unit (no rounding anywhere).
    - Indexes on the three role columns act as the role lookup; no table scans.
    - CHECK constraints mirror the domain invariants at the DB level.
    - agreements and agreement_events are never deleted.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    event,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

LEDGER_STATE_ROW_ID = 1

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _set_updated_at(mapper, connection, target):  # noqa: ANN001
    """SQLAlchemy event listener that updates `updated_at` before flush."""
    if hasattr(target, "updated_at"):
        target.updated_at = _utcnow()


# ---------------------------------------------------------------------------
# 1. ledger_state
# ---------------------------------------------------------------------------
class LedgerState(Base):
    """Process-wide ledger scalars, stored as a single row."""

    __tablename__ = "ledger_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=LEDGER_STATE_ROW_ID)
    fee_rate_percent: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Service fee percentage applied to new agreements",
    )
    next_agreement_id: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        comment="Id the next created agreement receives",
    )
    total_deposited: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_withdrawn: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        CheckConstraint("id = 1", name="ck_ledger_state_single_row"),
        CheckConstraint(
            "fee_rate_percent >= 0 AND fee_rate_percent <= 100",
            name="ck_ledger_state_fee_rate",
        ),
        CheckConstraint("next_agreement_id >= 0", name="ck_ledger_state_next_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<LedgerState fee_rate={self.fee_rate_percent}% "
            f"next_id={self.next_agreement_id}>"
        )


# ---------------------------------------------------------------------------
# 2. agreements
# ---------------------------------------------------------------------------
class Agreement(Base):
    """An escrow agreement between a sender, a receiver and a middleman."""

    __tablename__ = "agreements"

    # --- Primary Key (assigned from ledger_state.next_agreement_id) ---
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    # --- Participants ---
    sender: Mapped[str] = mapped_column(String(64), nullable=False)
    receiver: Mapped[str] = mapped_column(String(64), nullable=False)
    middleman: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Arbiter; the owner identity when none was given at creation",
    )

    # --- Financials ---
    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Gross value owed to the receiver before the service fee",
    )
    commission: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Paid to the middleman on either outcome",
    )
    fee: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Service cut credited at creation",
    )
    fee_rate_percent: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Fee rate in effect at creation",
    )

    # --- Status (guarded by AgreementStateMachine) ---
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="CREATED")

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    # --- Relationships ---
    events: Mapped[list[AgreementEvent]] = relationship(
        "AgreementEvent",
        back_populates="agreement",
        order_by="AgreementEvent.id.asc()",
        lazy="selectin",
    )

    # --- Table Constraints & Indexes ---
    __table_args__ = (
        CheckConstraint(
            "status IN ('CREATED', 'PAID', 'CANCELED')",
            name="ck_agreement_valid_status",
        ),
        CheckConstraint("amount >= 0", name="ck_agreement_amount"),
        CheckConstraint("commission >= 0", name="ck_agreement_commission"),
        CheckConstraint("fee >= 0 AND fee <= amount", name="ck_agreement_fee"),
        CheckConstraint(
            "sender <> receiver AND sender <> middleman AND receiver <> middleman",
            name="ck_agreement_distinct_parties",
        ),
        Index("idx_agreement_sender", "sender", "id"),
        Index("idx_agreement_receiver", "receiver", "id"),
        Index("idx_agreement_middleman", "middleman", "id"),
        Index("idx_agreement_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Agreement id={self.id} status={self.status} "
            f"amount={self.amount} commission={self.commission}>"
        )


# ---------------------------------------------------------------------------
# 3. balances
# ---------------------------------------------------------------------------
class Balance(Base):
    """Funds credited to a party and not yet withdrawn."""

    __tablename__ = "balances"

    party: Mapped[str] = mapped_column(String(64), primary_key=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (CheckConstraint("amount >= 0", name="ck_balance_non_negative"),)

    def __repr__(self) -> str:
        return f"<Balance party={self.party} amount={self.amount}>"


# ---------------------------------------------------------------------------
# 4. agreement_events (Append-Only Audit Log)
# ---------------------------------------------------------------------------
class AgreementEvent(Base):
    """Immutable audit record of an agreement's creation or resolution.

    This table is APPEND-ONLY. No UPDATE or DELETE operations are permitted
    at the application level.
    """

    __tablename__ = "agreement_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    agreement_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("agreements.id"),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    old_status: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="Agreement status before this event (null for creation)",
    )
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor: Mapped[str] = mapped_column(String(64), nullable=False)
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata",
        JSONType,
        nullable=True,
        default=None,
        comment="Amounts credited by this event",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    agreement: Mapped[Agreement] = relationship("Agreement", back_populates="events")

    __table_args__ = (
        Index("idx_event_agreement", "agreement_id"),
        Index("idx_event_type", "event_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<AgreementEvent id={self.id} type={self.event_type} "
            f"{self.old_status}->{self.new_status}>"
        )


event.listen(Agreement, "before_update", _set_updated_at)
