"""Database infrastructure — engine, ORM models, and repositories."""

from escrow_ledger.infrastructure.database.engine import (
    close_db,
    create_schema,
    get_async_session,
    get_session_factory,
    init_db,
)
from escrow_ledger.infrastructure.database.orm_models import (
    Agreement,
    AgreementEvent,
    Balance,
    Base,
    LedgerState,
)
from escrow_ledger.infrastructure.database.repositories import (
    AgreementRepository,
    BalanceRepository,
    EventRepository,
    LedgerStateRepository,
)

__all__ = [
    "Base",
    "Agreement",
    "AgreementEvent",
    "Balance",
    "LedgerState",
    "AgreementRepository",
    "BalanceRepository",
    "EventRepository",
    "LedgerStateRepository",
    "get_async_session",
    "get_session_factory",
    "create_schema",
    "init_db",
    "close_db",
]
