"""Authorization policy for agreement transitions.

Each side of an agreement, together with the neutral middleman, holds the
right to resolve it in favor of the *other* side:

    pay    -> sender or middleman   (releases funds to the receiver)
    cancel -> receiver or middleman (refunds the sender)

Neither the sender nor the receiver can settle an agreement in their own favor.
Both gates require the agreement to still be CREATED; the state check always
runs before the role check, so a resolved agreement reports InvalidStateError
to every caller.
"""

from __future__ import annotations

from typing import Protocol

from statemachine.exceptions import TransitionNotAllowed

from escrow_ledger.domain.enums import AgreementStatus, Role
from escrow_ledger.domain.exceptions import InvalidStateError, UnauthorizedError
from escrow_ledger.domain.state_machine import validate_transition


class AgreementView(Protocol):
    """The fields of an agreement the policy needs to make a decision."""

    id: int
    sender: str
    receiver: str
    middleman: str
    status: str


def can_pay(agreement: AgreementView, caller: str) -> bool:
    """True iff the caller may mark the agreement paid."""
    return caller in (agreement.sender, agreement.middleman)


def can_cancel(agreement: AgreementView, caller: str) -> bool:
    """True iff the caller may cancel the agreement."""
    return caller in (agreement.receiver, agreement.middleman)


_GATES = {
    "pay": can_pay,
    "cancel": can_cancel,
}


def authorize_transition(agreement: AgreementView, caller: str, event_name: str) -> str:
    """Check state then role for a transition and return the resulting status.

    Raises:
        InvalidStateError: If the agreement is not in a state that allows the event.
        UnauthorizedError: If the caller does not hold a role that may fire it.
    """
    gate = _GATES.get(event_name)
    if gate is None:
        raise ValueError(f"Unknown transition '{event_name}'")

    try:
        new_status = validate_transition(agreement.status, event_name)
    except TransitionNotAllowed as err:
        raise InvalidStateError(agreement.status, event_name) from err

    if not gate(agreement, caller):
        raise UnauthorizedError(caller, f"{event_name} agreement {agreement.id}")
    return new_status


def role_of(agreement: AgreementView, party: str) -> Role:
    """Classify a party, first match wins: SENDER > RECEIVER > MIDDLEMAN."""
    if party == agreement.sender:
        return Role.SENDER
    if party == agreement.receiver:
        return Role.RECEIVER
    if party == agreement.middleman:
        return Role.MIDDLEMAN
    return Role.NONE


def is_unchanged(agreement: AgreementView) -> bool:
    return agreement.status == AgreementStatus.CREATED


def is_paid(agreement: AgreementView) -> bool:
    return agreement.status == AgreementStatus.PAID


def is_canceled(agreement: AgreementView) -> bool:
    return agreement.status == AgreementStatus.CANCELED
