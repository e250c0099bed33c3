"""Shared test fixtures for the Escrow Ledger test suite.

Provides:
    - A throwaway SQLite database per test (schema + ledger state seeded)
    - Sessions, settings and a recording payout gateway
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from escrow_ledger.config import Settings
from escrow_ledger.infrastructure.database.engine import create_schema, make_session_factory
from escrow_ledger.services.escrow_service import EscrowService
from escrow_ledger.services.payout_service import SimulatedPayoutGateway

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

OWNER = "owner"
SENDER = "alice"
RECEIVER = "bob"
MIDDLEMAN = "carol"
OUTSIDER = "mallory"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        app_env="development",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        escrow_owner=OWNER,
        default_fee_rate_percent=1,
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(settings.database_url)
    await create_schema(engine, settings.default_fee_rate_percent)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


class RecordingPayoutGateway(SimulatedPayoutGateway):
    """Simulated gateway that also keeps every transfer for assertions."""

    def __init__(self, reference_prefix: str = "test") -> None:
        super().__init__(reference_prefix=reference_prefix)
        self.transfers: list[tuple[str, int, str]] = []

    async def transfer(self, party: str, amount: int) -> str:
        reference = await super().transfer(party, amount)
        self.transfers.append((party, amount, reference))
        return reference


@pytest.fixture
def payout_gateway() -> RecordingPayoutGateway:
    return RecordingPayoutGateway()


@pytest.fixture
def escrow(
    session: AsyncSession,
    settings: Settings,
    payout_gateway: RecordingPayoutGateway,
) -> EscrowService:
    return EscrowService(session, settings=settings, payout_gateway=payout_gateway)


@pytest.fixture
def agreement_data() -> dict:
    """Valid create_agreement kwargs: amount 100, commission 5, explicit middleman."""
    return {
        "sender": SENDER,
        "receiver": RECEIVER,
        "middleman": MIDDLEMAN,
        "amount": 100,
        "commission": 5,
        "deposited_funds": 105,
    }
