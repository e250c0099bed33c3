"""Conservation of funds across mixed workloads.

Every unit deposited is at all times either credited to a balance, held by
an open agreement, or already withdrawn.
"""

from __future__ import annotations

import random

import pytest

from escrow_ledger.config import Settings
from escrow_ledger.domain.exceptions import EscrowError
from escrow_ledger.services.escrow_service import EscrowService
from escrow_ledger.services.owner_admin import OwnerAdminService

OWNER = "owner"
PARTIES = ["alice", "bob", "carol", "dave", "erin"]


class TestConservation:
    @pytest.mark.asyncio
    async def test_empty_ledger_balances(self, escrow: EscrowService) -> None:
        report = await escrow.audit()
        assert report.balanced
        assert report.expected == 0

    @pytest.mark.asyncio
    async def test_open_agreement_is_held(self, escrow: EscrowService, agreement_data: dict) -> None:
        await escrow.create_agreement(**agreement_data)

        report = await escrow.audit()

        assert report.total_deposited == 105
        assert report.held_in_custody == 104
        assert report.total_balances == 1
        assert report.open_agreements == 1
        assert report.balanced

    @pytest.mark.asyncio
    async def test_reference_scenario(
        self, escrow: EscrowService, session, settings: Settings
    ) -> None:
        await escrow.create_agreement(
            sender="alice",
            receiver="bob",
            middleman=None,
            amount=100,
            commission=5,
            deposited_funds=105,
        )
        await escrow.pay_agreement(0, "alice")
        await escrow.withdraw("bob")
        await OwnerAdminService(session, settings=settings).withdraw_service_balance(OWNER)

        report = await escrow.audit()

        assert report.total_withdrawn == 100
        assert report.total_balances == 5
        assert report.held_in_custody == 0
        assert report.balanced

    @pytest.mark.asyncio
    async def test_randomized_workload(
        self, escrow: EscrowService, session, settings: Settings
    ) -> None:
        rng = random.Random(1234)
        admin = OwnerAdminService(session, settings=settings)
        created = 0

        for _ in range(60):
            action = rng.choice(["create", "create", "pay", "cancel", "withdraw", "rate"])
            try:
                if action == "create":
                    sender, receiver, middleman = rng.sample(PARTIES, 3)
                    amount = rng.randint(0, 5000)
                    commission = rng.randint(0, 200)
                    await escrow.create_agreement(
                        sender=sender,
                        receiver=receiver,
                        middleman=rng.choice([middleman, None]),
                        amount=amount,
                        commission=commission,
                        deposited_funds=amount + commission,
                    )
                    created += 1
                elif action in ("pay", "cancel") and created:
                    agreement_id = rng.randrange(created)
                    caller = rng.choice(PARTIES)
                    if action == "pay":
                        await escrow.pay_agreement(agreement_id, caller)
                    else:
                        await escrow.cancel_agreement(agreement_id, caller)
                elif action == "withdraw":
                    await escrow.withdraw(rng.choice(PARTIES + [OWNER]))
                elif action == "rate":
                    await admin.set_fee_rate_percent(OWNER, rng.randint(0, 100))
            except EscrowError:
                pass

            assert (await escrow.audit()).balanced
