"""Payout gateways — hand withdrawn balances to a funds-transfer mechanism.

The ledger only decides *how much* a party may take out. Moving the money is
the gateway's job: it receives the withdrawn amount and returns a settlement
reference that is handed back to the caller.

SimulatedPayoutGateway generates fake settlement references and is the
default; production deployments inject their own PayoutGateway.
"""

from __future__ import annotations

import uuid

from escrow_ledger.logging_config import get_logger

logger = get_logger(__name__)


class SimulatedPayoutGateway:
    """Pretends to transfer funds; the structured log line is the only record."""

    def __init__(self, reference_prefix: str = "sim") -> None:
        self._reference_prefix = reference_prefix

    async def transfer(self, party: str, amount: int) -> str:
        """Return a fake settlement reference for paying `amount` to `party`."""
        reference = f"{self._reference_prefix}-{uuid.uuid4().hex}"
        logger.info(
            "payout.transfer_simulated",
            reference=reference,
            amount=amount,
            to_party=party,
        )
        return reference
