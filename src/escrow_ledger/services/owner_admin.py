"""Owner Admin Service — fee configuration and fee revenue withdrawal.

A single owner identity (Settings.escrow_owner) holds the admin capability.
It is also the middleman substituted into agreements created without one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from escrow_ledger.config import get_settings
from escrow_ledger.domain.enums import SERVICE_ACCOUNT
from escrow_ledger.domain.exceptions import InvalidArgumentError, UnauthorizedError
from escrow_ledger.domain.fees import validate_fee_rate
from escrow_ledger.domain.protocols import Withdrawal
from escrow_ledger.infrastructure.database.repositories import LedgerStateRepository
from escrow_ledger.logging_config import get_logger
from escrow_ledger.services.ledger_service import LedgerService
from escrow_ledger.services.payout_service import SimulatedPayoutGateway

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from escrow_ledger.config import Settings
    from escrow_ledger.domain.protocols import PayoutGateway
    from escrow_ledger.infrastructure.database.orm_models import LedgerState

logger = get_logger(__name__)


class OwnerAdminService:
    """Owner-only administration of the ledger."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        payout_gateway: PayoutGateway | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._session = session
        self._state_repo = LedgerStateRepository(session)
        self._ledger = LedgerService(session)
        self._payout_gateway = payout_gateway or SimulatedPayoutGateway()

    def owner_identity(self) -> str:
        return self._settings.escrow_owner

    async def current_fee_rate_percent(self) -> int:
        state = await self.ledger_state()
        return state.fee_rate_percent

    async def set_fee_rate_percent(self, caller: str, new_rate: int) -> int:
        """Change the fee rate applied to agreements created from now on."""
        self._require_owner(caller, "set the fee rate")
        try:
            validate_fee_rate(new_rate)
        except ValueError as err:
            raise InvalidArgumentError(str(err)) from err

        old_rate = await self.current_fee_rate_percent()
        await self._state_repo.set_fee_rate(new_rate)
        await self._session.commit()
        logger.info("admin.fee_rate_changed", old_rate=old_rate, new_rate=new_rate)
        return new_rate

    async def service_balance(self) -> int:
        return await self._ledger.balance_of(SERVICE_ACCOUNT)

    async def withdraw_service_balance(self, caller: str) -> Withdrawal:
        """Pay the accumulated fee revenue out to the owner."""
        self._require_owner(caller, "withdraw the service balance")
        amount, reference = await self._ledger.pay_out(
            SERVICE_ACCOUNT, self._payout_gateway, payee=self.owner_identity()
        )
        logger.info("admin.service_balance_withdrawn", amount=amount, reference=reference)
        return Withdrawal(party=SERVICE_ACCOUNT, amount=amount, reference=reference)

    async def ledger_state(self) -> LedgerState:
        """Return the ledger_state row, creating it on first use."""
        state = await self._state_repo.get()
        if state is None:
            await self._state_repo.ensure(self._settings.default_fee_rate_percent)
            state = await self._state_repo.get()
        return state

    def _require_owner(self, caller: str, action: str) -> None:
        if caller != self.owner_identity():
            logger.warning("admin.unauthorized", caller=caller, action=action)
            raise UnauthorizedError(caller, action)
