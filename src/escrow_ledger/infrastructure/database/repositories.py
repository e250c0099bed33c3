"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).

Every mutation that races with a concurrent caller is expressed as a single
conditional statement (compare-and-set UPDATE, upsert, UPDATE ... RETURNING)
so the database, not the Python process, decides who wins.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite

from escrow_ledger.domain.enums import AgreementStatus, Role
from escrow_ledger.infrastructure.database.orm_models import (
    LEDGER_STATE_ROW_ID,
    Agreement,
    AgreementEvent,
    Balance,
    LedgerState,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from escrow_ledger.domain.enums import EventType


_ROLE_COLUMNS = {
    Role.SENDER: Agreement.sender,
    Role.RECEIVER: Agreement.receiver,
    Role.MIDDLEMAN: Agreement.middleman,
}


def _dialect_insert(session: AsyncSession, model):  # noqa: ANN001, ANN202
    """Return an INSERT supporting ON CONFLICT for the session's dialect."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upserts are not supported on dialect '{dialect}'")


class LedgerStateRepository:
    """Data access for the single ledger_state row."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def ensure(self, default_fee_rate_percent: int) -> None:
        """Create the ledger_state row if it does not exist yet."""
        stmt = (
            _dialect_insert(self._session, LedgerState)
            .values(
                id=LEDGER_STATE_ROW_ID,
                fee_rate_percent=default_fee_rate_percent,
                next_agreement_id=0,
                total_deposited=0,
                total_withdrawn=0,
            )
            .on_conflict_do_nothing(index_elements=[LedgerState.id])
        )
        await self._session.execute(stmt)

    async def get(self) -> LedgerState | None:
        result = await self._session.execute(
            select(LedgerState)
            .where(LedgerState.id == LEDGER_STATE_ROW_ID)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def allocate_agreement_id(self) -> int:
        """Atomically reserve the next sequential agreement id."""
        result = await self._session.execute(
            update(LedgerState)
            .where(LedgerState.id == LEDGER_STATE_ROW_ID)
            .values(next_agreement_id=LedgerState.next_agreement_id + 1)
            .returning(LedgerState.next_agreement_id)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one() - 1

    async def set_fee_rate(self, fee_rate_percent: int) -> None:
        await self._session.execute(
            update(LedgerState)
            .where(LedgerState.id == LEDGER_STATE_ROW_ID)
            .values(fee_rate_percent=fee_rate_percent, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )

    async def add_deposit(self, amount: int) -> None:
        await self._session.execute(
            update(LedgerState)
            .where(LedgerState.id == LEDGER_STATE_ROW_ID)
            .values(total_deposited=LedgerState.total_deposited + amount)
            .execution_options(synchronize_session=False)
        )

    async def add_withdrawal(self, amount: int) -> None:
        await self._session.execute(
            update(LedgerState)
            .where(LedgerState.id == LEDGER_STATE_ROW_ID)
            .values(total_withdrawn=LedgerState.total_withdrawn + amount)
            .execution_options(synchronize_session=False)
        )


class AgreementRepository:
    """Data access for escrow agreements."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, agreement: Agreement) -> Agreement:
        """Insert a new agreement (its id must already be allocated)."""
        self._session.add(agreement)
        await self._session.flush()
        return agreement

    async def get_by_id(self, agreement_id: int) -> Agreement | None:
        """Fetch an agreement by id, always reflecting the latest committed row."""
        result = await self._session.execute(
            select(Agreement)
            .where(Agreement.id == agreement_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def transition_status(
        self,
        agreement_id: int,
        from_status: AgreementStatus,
        to_status: AgreementStatus,
    ) -> bool:
        """Compare-and-set the status. Returns False if another caller got there first."""
        result = await self._session.execute(
            update(Agreement)
            .where(Agreement.id == agreement_id, Agreement.status == from_status.value)
            .values(status=to_status.value, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def ids_by_role(self, role: Role, party: str) -> list[int]:
        """Ids of agreements where `party` holds `role`, in creation order."""
        column = _ROLE_COLUMNS.get(role)
        if column is None:
            raise ValueError(f"Cannot query agreements by role {role}")
        result = await self._session.execute(
            select(Agreement.id).where(column == party).order_by(Agreement.id.asc())
        )
        return list(result.scalars().all())

    async def list_agreements(
        self,
        status: AgreementStatus | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> list[Agreement]:
        stmt = select(Agreement).order_by(Agreement.id.asc()).offset(offset).limit(limit)
        if status is not None:
            stmt = stmt.where(Agreement.status == status.value)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def custody_totals(self) -> tuple[int, int]:
        """Funds still held by open agreements, and how many are open.

        The fee was credited to the service at creation, so an open agreement
        holds its deposit net of that fee.
        """
        result = await self._session.execute(
            select(
                func.coalesce(
                    func.sum(Agreement.amount + Agreement.commission - Agreement.fee), 0
                ),
                func.count(Agreement.id),
            ).where(Agreement.status == AgreementStatus.CREATED.value)
        )
        held, count = result.one()
        return int(held), int(count)


class BalanceRepository:
    """Data access for credited balances."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_amount(self, party: str) -> int:
        result = await self._session.execute(
            select(Balance.amount).where(Balance.party == party)
        )
        amount = result.scalar_one_or_none()
        return amount or 0

    async def add(self, party: str, amount: int) -> None:
        """Atomically add `amount` to the party's balance, creating the row if needed."""
        stmt = _dialect_insert(self._session, Balance).values(party=party, amount=amount)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Balance.party],
            set_={"amount": Balance.amount + amount, "updated_at": datetime.now(UTC)},
        )
        await self._session.execute(stmt)

    async def zero_if_unchanged(self, party: str, observed: int) -> bool:
        """Zero the balance only if it still equals `observed`."""
        result = await self._session.execute(
            update(Balance)
            .where(Balance.party == party, Balance.amount == observed)
            .values(amount=0, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def total(self) -> int:
        result = await self._session.execute(select(func.coalesce(func.sum(Balance.amount), 0)))
        return int(result.scalar_one())


class EventRepository:
    """Data access for the append-only audit event log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        agreement_id: int,
        event_type: EventType,
        old_status: AgreementStatus | None,
        new_status: AgreementStatus,
        actor: str,
        metadata: dict | None = None,
    ) -> AgreementEvent:
        """Append a new audit event. This is the ONLY write operation allowed."""
        evt = AgreementEvent(
            agreement_id=agreement_id,
            event_type=event_type.value,
            old_status=old_status.value if old_status else None,
            new_status=new_status.value,
            actor=actor,
            metadata_json=metadata,
        )
        self._session.add(evt)
        await self._session.flush()
        return evt

    async def get_by_agreement(self, agreement_id: int) -> list[AgreementEvent]:
        """Fetch all events for an agreement in the order they were recorded."""
        result = await self._session.execute(
            select(AgreementEvent)
            .where(AgreementEvent.agreement_id == agreement_id)
            .order_by(AgreementEvent.id.asc())
        )
        return list(result.scalars().all())
