"""Escrow Service — core business logic for the agreement lifecycle.

This is the application layer that coordinates between:
    - Domain policy (state machine guard, role gates, fee arithmetic)
    - Repositories (agreements, balances, ledger state)
    - Event log (audit trail) and notifier hooks

Both REST routes and tests call into this service, ensuring a single
source of truth for all business rules.

Each mutating operation commits its own unit of work; notifications are
sent only after that commit, so a rolled-back change is never announced.

Accounting, for an agreement with amount A, commission C and fee F:
    create  -> deposit A + C; SERVICE += F
    pay     -> receiver += A - F; middleman += C
    cancel  -> sender   += A - F; middleman += C
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from escrow_ledger.config import get_settings
from escrow_ledger.domain import authorization
from escrow_ledger.domain.enums import (
    SERVICE_ACCOUNT,
    AgreementStatus,
    EventType,
    PayoutFeeBasis,
    Role,
)
from escrow_ledger.domain.exceptions import (
    AgreementNotFoundError,
    AmountMismatchError,
    InvalidArgumentError,
    InvalidPartiesError,
    InvalidStateError,
    UnauthorizedError,
)
from escrow_ledger.domain.fees import MAX_AMOUNT, compute_fee, compute_payout
from escrow_ledger.domain.protocols import ConservationReport, Withdrawal
from escrow_ledger.domain.state_machine import AgreementStateMachine
from escrow_ledger.infrastructure.database.orm_models import Agreement
from escrow_ledger.infrastructure.database.repositories import (
    AgreementRepository,
    EventRepository,
    LedgerStateRepository,
)
from escrow_ledger.logging_config import get_logger
from escrow_ledger.services.ledger_service import LedgerService
from escrow_ledger.services.notification_service import (
    LoggingNotifier,
    notify_created,
    notify_status_changed,
)
from escrow_ledger.services.owner_admin import OwnerAdminService
from escrow_ledger.services.payout_service import SimulatedPayoutGateway

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from escrow_ledger.config import Settings
    from escrow_ledger.domain.protocols import AgreementNotifier, PayoutGateway
    from escrow_ledger.infrastructure.database.orm_models import AgreementEvent

logger = get_logger(__name__)

MAX_PARTY_LENGTH = 64

_RESOLUTIONS = {
    "pay": EventType.AGREEMENT_PAID,
    "cancel": EventType.AGREEMENT_CANCELED,
}


class EscrowService:
    """Manages agreement creation, resolution and withdrawals."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        notifier: AgreementNotifier | None = None,
        payout_gateway: PayoutGateway | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._notifier = notifier or LoggingNotifier()
        self._payout_gateway = payout_gateway or SimulatedPayoutGateway()
        self._agreement_repo = AgreementRepository(session)
        self._event_repo = EventRepository(session)
        self._state_repo = LedgerStateRepository(session)
        self._ledger = LedgerService(session)
        self._admin = OwnerAdminService(session, self._settings, self._payout_gateway)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_agreement(
        self,
        sender: str,
        receiver: str,
        middleman: str | None,
        amount: int,
        commission: int,
        deposited_funds: int,
    ) -> Agreement:
        """Take custody of a deposit and open a new agreement in CREATED state.

        Raises:
            InvalidArgumentError: Negative or non-integer amounts, bad identifiers.
            AmountMismatchError: deposited_funds != amount + commission.
            InvalidPartiesError: The three parties are not pairwise distinct.
        """
        for name, value in (
            ("amount", amount),
            ("commission", commission),
            ("deposited_funds", deposited_funds),
        ):
            _require_non_negative_int(name, value)

        if amount + commission > MAX_AMOUNT:
            raise InvalidArgumentError(f"amount + commission must not exceed {MAX_AMOUNT}")

        if deposited_funds != amount + commission:
            raise AmountMismatchError(expected=amount + commission, deposited=deposited_funds)

        if not middleman:
            middleman = self._admin.owner_identity()

        for name, party in (("sender", sender), ("receiver", receiver), ("middleman", middleman)):
            _require_party(name, party)

        if sender == receiver or sender == middleman or receiver == middleman:
            raise InvalidPartiesError(sender, receiver, middleman)

        state = await self._admin.ledger_state()
        if state.total_deposited + deposited_funds > MAX_AMOUNT:
            raise InvalidArgumentError("Deposit would overflow the ledger total")
        fee_rate = state.fee_rate_percent
        fee = compute_fee(amount, fee_rate)

        agreement = Agreement(
            id=await self._state_repo.allocate_agreement_id(),
            sender=sender,
            receiver=receiver,
            middleman=middleman,
            amount=amount,
            commission=commission,
            fee=fee,
            fee_rate_percent=fee_rate,
            status=AgreementStatus.CREATED.value,
        )
        agreement = await self._agreement_repo.create(agreement)

        await self._state_repo.add_deposit(deposited_funds)
        await self._ledger.credit(SERVICE_ACCOUNT, fee)

        await self._event_repo.record(
            agreement_id=agreement.id,
            event_type=EventType.AGREEMENT_CREATED,
            old_status=None,
            new_status=AgreementStatus.CREATED,
            actor=sender,
            metadata={"deposited": deposited_funds, "fee": fee, "fee_rate_percent": fee_rate},
        )

        logger.info(
            "agreement.created",
            agreement_id=agreement.id,
            amount=amount,
            commission=commission,
            fee=fee,
        )
        await self._session.commit()
        await notify_created(self._notifier, agreement.id)
        return agreement

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def pay_agreement(self, agreement_id: int, caller: str) -> Agreement:
        """Release the agreement to the receiver. Allowed for sender or middleman."""
        return await self._resolve(agreement_id, caller, "pay")

    async def cancel_agreement(self, agreement_id: int, caller: str) -> Agreement:
        """Refund the agreement to the sender. Allowed for receiver or middleman."""
        return await self._resolve(agreement_id, caller, "cancel")

    async def _resolve(self, agreement_id: int, caller: str, event_name: str) -> Agreement:
        agreement = await self._get_agreement_or_raise(agreement_id)
        old_status = AgreementStatus(agreement.status)
        new_status = AgreementStatus(
            authorization.authorize_transition(agreement, caller, event_name)
        )

        fee = await self._payout_fee(agreement)
        payout = compute_payout(agreement.amount, fee)
        beneficiary = agreement.receiver if event_name == "pay" else agreement.sender

        # A concurrent resolution may have won since the read above
        if not await self._agreement_repo.transition_status(agreement_id, old_status, new_status):
            current = await self._get_agreement_or_raise(agreement_id)
            raise InvalidStateError(current.status, event_name)

        await self._ledger.credit(beneficiary, payout)
        await self._ledger.credit(agreement.middleman, agreement.commission)

        await self._event_repo.record(
            agreement_id=agreement_id,
            event_type=_RESOLUTIONS[event_name],
            old_status=old_status,
            new_status=new_status,
            actor=caller,
            metadata={
                "beneficiary": beneficiary,
                "payout": payout,
                "middleman": agreement.middleman,
                "commission": agreement.commission,
                "fee": fee,
            },
        )

        logger.info(
            f"agreement.{new_status.value.lower()}",
            agreement_id=agreement_id,
            by=caller,
            beneficiary=beneficiary,
            payout=payout,
            commission=agreement.commission,
        )
        await self._session.commit()
        await notify_status_changed(self._notifier, agreement_id, new_status.value)
        return await self._get_agreement_or_raise(agreement_id)

    async def _payout_fee(self, agreement: Agreement) -> int:
        if self._settings.payout_fee_basis == PayoutFeeBasis.PAYOUT:
            return compute_fee(agreement.amount, await self._admin.current_fee_rate_percent())
        return agreement.fee

    # ------------------------------------------------------------------
    # Withdrawals
    # ------------------------------------------------------------------

    async def balance_of(self, party: str) -> int:
        return await self._ledger.balance_of(party)

    async def withdraw(self, party: str) -> Withdrawal:
        """Pay out the party's full credited balance.

        The service fee balance is only reachable through OwnerAdminService.
        """
        if party == SERVICE_ACCOUNT:
            raise UnauthorizedError(party, "withdraw the service balance")
        amount, reference = await self._ledger.pay_out(party, self._payout_gateway)
        return Withdrawal(party=party, amount=amount, reference=reference)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_agreement(self, agreement_id: int) -> Agreement:
        """Get an agreement or raise."""
        return await self._get_agreement_or_raise(agreement_id)

    async def is_paid(self, agreement_id: int) -> bool:
        return authorization.is_paid(await self._get_agreement_or_raise(agreement_id))

    async def is_canceled(self, agreement_id: int) -> bool:
        return authorization.is_canceled(await self._get_agreement_or_raise(agreement_id))

    async def is_unchanged(self, agreement_id: int) -> bool:
        return authorization.is_unchanged(await self._get_agreement_or_raise(agreement_id))

    async def role_of(self, agreement_id: int, party: str) -> Role:
        agreement = await self._get_agreement_or_raise(agreement_id)
        return authorization.role_of(agreement, party)

    async def get_status(self, agreement_id: int) -> dict:
        """Get agreement status with the events that can still fire."""
        agreement = await self._get_agreement_or_raise(agreement_id)
        sm = AgreementStateMachine(current_status=agreement.status)
        return {
            "agreement_id": agreement.id,
            "status": agreement.status,
            "is_paid": authorization.is_paid(agreement),
            "is_canceled": authorization.is_canceled(agreement),
            "is_unchanged": authorization.is_unchanged(agreement),
            "allowed_events": sm.get_allowed_events(),
        }

    async def agreements_by_role(self, role: Role, party: str) -> list[int]:
        """Ids where `party` holds `role`, in creation order."""
        if role == Role.NONE:
            raise InvalidArgumentError("Cannot list agreements for role NONE")
        return await self._agreement_repo.ids_by_role(role, party)

    async def list_agreements(
        self,
        status: AgreementStatus | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> list[Agreement]:
        return await self._agreement_repo.list_agreements(status=status, offset=offset, limit=limit)

    async def get_events(self, agreement_id: int) -> list[AgreementEvent]:
        """Get audit trail."""
        await self._get_agreement_or_raise(agreement_id)
        return await self._event_repo.get_by_agreement(agreement_id)

    async def audit(self) -> ConservationReport:
        """Check that every deposited unit is either credited, held, or withdrawn."""
        state = await self._admin.ledger_state()
        held, open_count = await self._agreement_repo.custody_totals()
        report = ConservationReport(
            total_deposited=state.total_deposited,
            total_withdrawn=state.total_withdrawn,
            total_balances=await self._ledger.total_balances(),
            held_in_custody=held,
            open_agreements=open_count,
        )
        if report.balanced:
            logger.info("ledger.audit_balanced", **report.to_dict())
        else:
            logger.error(
                "ledger.audit_imbalanced",
                expected=report.expected,
                actual=report.actual,
                **report.to_dict(),
            )
        return report

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_agreement_or_raise(self, agreement_id: int) -> Agreement:
        agreement = await self._agreement_repo.get_by_id(agreement_id)
        if agreement is None:
            raise AgreementNotFoundError(agreement_id)
        return agreement


def _require_non_negative_int(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_AMOUNT:
        raise InvalidArgumentError(
            f"{name} must be an integer between 0 and {MAX_AMOUNT}, got {value!r}"
        )


def _require_party(name: str, party: str) -> None:
    if not isinstance(party, str) or not party:
        raise InvalidArgumentError(f"{name} must be a non-empty identifier")
    if len(party) > MAX_PARTY_LENGTH:
        raise InvalidArgumentError(f"{name} must be at most {MAX_PARTY_LENGTH} characters")
    if party == SERVICE_ACCOUNT:
        raise InvalidArgumentError(f"{name} may not be the reserved identifier '{SERVICE_ACCOUNT}'")
