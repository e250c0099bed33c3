"""Ledger Service — credited balances and pull-payment withdrawals.

Resolutions never move money out of the service directly. They credit
balances here, and each party later withdraws its full balance in one
step. The reserved SERVICE_ACCOUNT balance collects fee revenue and is
only withdrawn through the owner-admin service.

A payout is settled in two steps: the zeroed balance is committed first,
then the payout gateway is called. A rollback can therefore never hand
back funds the gateway has already sent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from escrow_ledger.domain.exceptions import InvalidArgumentError, NothingToWithdrawError
from escrow_ledger.domain.fees import MAX_AMOUNT
from escrow_ledger.infrastructure.database.repositories import (
    BalanceRepository,
    LedgerStateRepository,
)
from escrow_ledger.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from escrow_ledger.domain.protocols import PayoutGateway

logger = get_logger(__name__)


class LedgerService:
    """Per-party balance accounting."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._balances = BalanceRepository(session)
        self._state_repo = LedgerStateRepository(session)

    async def credit(self, party: str, amount: int) -> None:
        """Add `amount` to the party's balance."""
        if (
            isinstance(amount, bool)
            or not isinstance(amount, int)
            or not 0 <= amount <= MAX_AMOUNT
        ):
            raise InvalidArgumentError(
                f"Credit amount must be an integer between 0 and {MAX_AMOUNT}, got {amount!r}"
            )
        await self._balances.add(party, amount)
        logger.debug("ledger.credited", party=party, amount=amount)

    async def balance_of(self, party: str) -> int:
        return await self._balances.get_amount(party)

    async def total_balances(self) -> int:
        return await self._balances.total()

    async def withdraw(self, party: str) -> int:
        """Zero the party's balance and return what it held.

        The zeroing is a compare-and-set against the balance just read; if a
        concurrent credit or withdraw changed it in between, the balance is
        read again. Two withdraws can therefore never pay out the same funds.

        Raises:
            NothingToWithdrawError: If the balance is zero.
        """
        while True:
            observed = await self._balances.get_amount(party)
            if observed == 0:
                raise NothingToWithdrawError(party)
            if await self._balances.zero_if_unchanged(party, observed):
                break
            logger.info("ledger.withdraw_conflict", party=party, observed=observed)

        await self._state_repo.add_withdrawal(observed)
        logger.info("ledger.withdrawn", party=party, amount=observed)
        return observed

    async def pay_out(
        self,
        party: str,
        gateway: PayoutGateway,
        payee: str | None = None,
    ) -> tuple[int, str]:
        """Withdraw the party's balance, commit, then transfer it to `payee`.

        If the gateway fails, the balance is restored in a new transaction
        and the gateway's error is re-raised.

        Returns:
            The amount paid out and the gateway's settlement reference.
        """
        payee = payee or party
        amount = await self.withdraw(party)
        await self._session.commit()

        try:
            reference = await gateway.transfer(payee, amount)
        except Exception:
            logger.exception("ledger.payout_failed", party=party, payee=payee, amount=amount)
            await self._restore(party, amount)
            await self._session.commit()
            raise

        logger.info("ledger.paid_out", party=party, payee=payee, amount=amount, reference=reference)
        return amount, reference

    async def _restore(self, party: str, amount: int) -> None:
        """Undo a committed withdrawal whose transfer never happened."""
        await self._balances.add(party, amount)
        await self._state_repo.add_withdrawal(-amount)
        logger.warning("ledger.withdrawal_restored", party=party, amount=amount)
