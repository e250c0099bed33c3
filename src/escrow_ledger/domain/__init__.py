"""Domain layer — pure business logic with zero framework dependencies."""

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
    EscrowError,
    InvalidArgumentError,
    InvalidPartiesError,
    InvalidStateError,
    NothingToWithdrawError,
    UnauthorizedError,
)
from escrow_ledger.domain.protocols import (
    AgreementNotifier,
    ConservationReport,
    PayoutGateway,
    Withdrawal,
)
from escrow_ledger.domain.state_machine import (
    AgreementStateMachine,
    validate_transition,
)

__all__ = [
    "SERVICE_ACCOUNT",
    "AgreementStatus",
    "EventType",
    "PayoutFeeBasis",
    "Role",
    "AgreementNotFoundError",
    "AmountMismatchError",
    "EscrowError",
    "InvalidArgumentError",
    "InvalidPartiesError",
    "InvalidStateError",
    "NothingToWithdrawError",
    "UnauthorizedError",
    "AgreementNotifier",
    "ConservationReport",
    "PayoutGateway",
    "Withdrawal",
    "AgreementStateMachine",
    "validate_transition",
]
