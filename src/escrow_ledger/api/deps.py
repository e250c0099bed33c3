"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions,
services, collaborators, and configuration. Tests override them through
app.dependency_overrides.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002 - resolved by FastAPI at runtime

from escrow_ledger.config import Settings, get_settings
from escrow_ledger.domain.protocols import AgreementNotifier, PayoutGateway
from escrow_ledger.infrastructure.database.engine import get_async_session
from escrow_ledger.services.escrow_service import EscrowService
from escrow_ledger.services.notification_service import LoggingNotifier
from escrow_ledger.services.owner_admin import OwnerAdminService
from escrow_ledger.services.payout_service import SimulatedPayoutGateway

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (one transaction) for a request."""
    async for session in get_async_session():
        yield session


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()


@lru_cache(maxsize=1)
def get_payout_gateway() -> PayoutGateway:
    """Provide the process-wide payout gateway."""
    return SimulatedPayoutGateway()


@lru_cache(maxsize=1)
def get_notifier() -> AgreementNotifier:
    """Provide the process-wide agreement notifier."""
    return LoggingNotifier()


async def get_escrow_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
    notifier: AgreementNotifier = Depends(get_notifier),
    payout_gateway: PayoutGateway = Depends(get_payout_gateway),
) -> EscrowService:
    """Provide an EscrowService bound to the current session."""
    return EscrowService(
        session,
        settings=settings,
        notifier=notifier,
        payout_gateway=payout_gateway,
    )


async def get_owner_admin(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
    payout_gateway: PayoutGateway = Depends(get_payout_gateway),
) -> OwnerAdminService:
    """Provide an OwnerAdminService bound to the current session."""
    return OwnerAdminService(session, settings=settings, payout_gateway=payout_gateway)
