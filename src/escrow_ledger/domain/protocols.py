"""Collaborator protocols and value objects.

Defines the interfaces the escrow core calls out to without knowing who
implements them: the notification hooks and the funds-transfer mechanism
that settles withdrawals. These are Protocols (structural subtyping) so
implementations only need to match the shape.

The domain layer has ZERO imports from SQLAlchemy, Redis, or FastAPI.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class Withdrawal:
    """Outcome of a pull-payment withdrawal.

    Attributes:
        party: Identifier whose balance was zeroed.
        amount: The full balance that was paid out.
        reference: Settlement reference returned by the payout gateway.
    """

    party: str
    amount: int
    reference: str

    def to_dict(self) -> dict:
        return {"party": self.party, "amount": self.amount, "reference": self.reference}


@dataclass(frozen=True)
class ConservationReport:
    """Snapshot of the conservation-of-funds equation.

    balances + held_in_custody must equal total_deposited - total_withdrawn.
    """

    total_deposited: int
    total_withdrawn: int
    total_balances: int
    held_in_custody: int
    open_agreements: int

    @property
    def expected(self) -> int:
        return self.total_deposited - self.total_withdrawn

    @property
    def actual(self) -> int:
        return self.total_balances + self.held_in_custody

    @property
    def balanced(self) -> bool:
        return self.expected == self.actual

    def to_dict(self) -> dict:
        return {
            "total_deposited": self.total_deposited,
            "total_withdrawn": self.total_withdrawn,
            "total_balances": self.total_balances,
            "held_in_custody": self.held_in_custody,
            "open_agreements": self.open_agreements,
            "balanced": self.balanced,
        }


@runtime_checkable
class AgreementNotifier(Protocol):
    """Fire-and-forget hooks invoked after agreement mutations.

    For a single agreement the creation hook always fires before the
    status-change hook. Ordering across agreements is not guaranteed.
    """

    async def on_agreement_created(self, agreement_id: int) -> None: ...

    async def on_agreement_status_changed(self, agreement_id: int, new_status: str) -> None: ...


@runtime_checkable
class PayoutGateway(Protocol):
    """Moves withdrawn funds out of the service.

    Concrete implementations:
        - services/payout_service.py (SimulatedPayoutGateway)
    """

    async def transfer(self, party: str, amount: int) -> str:
        """Pay `amount` to `party` and return a settlement reference."""
        ...
