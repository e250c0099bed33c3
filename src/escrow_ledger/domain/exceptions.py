"""Domain exceptions for the Escrow Ledger.

These exceptions are framework-agnostic and represent business rule violations.
They are caught and translated to HTTP responses by the API layer's middleware.
Every one of them is raised before any state is mutated, so callers can
always retry or correct their request.
"""


class EscrowError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "ESCROW_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Input Errors ---


class InvalidArgumentError(EscrowError):
    """Raised for malformed input such as negative amounts or reserved identifiers."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="INVALID_ARGUMENT")


class InvalidPartiesError(EscrowError):
    """Raised when sender, receiver and middleman are not pairwise distinct."""

    def __init__(self, sender: str, receiver: str, middleman: str) -> None:
        super().__init__(
            message=(
                "Agreement parties must be pairwise distinct: "
                f"sender={sender} receiver={receiver} middleman={middleman}"
            ),
            code="INVALID_PARTIES",
        )
        self.sender = sender
        self.receiver = receiver
        self.middleman = middleman


class AmountMismatchError(EscrowError):
    """Raised when the deposited funds differ from amount + commission."""

    def __init__(self, expected: int, deposited: int) -> None:
        super().__init__(
            message=f"Deposited funds {deposited} do not equal amount + commission {expected}",
            code="AMOUNT_MISMATCH",
        )
        self.expected = expected
        self.deposited = deposited


# --- Agreement Errors ---


class AgreementNotFoundError(EscrowError):
    """Raised when an agreement ID has not been allocated."""

    def __init__(self, agreement_id: int) -> None:
        super().__init__(
            message=f"Agreement not found: {agreement_id}",
            code="AGREEMENT_NOT_FOUND",
        )
        self.agreement_id = agreement_id


class UnauthorizedError(EscrowError):
    """Raised when the caller lacks the role required for an operation."""

    def __init__(self, caller: str, action: str) -> None:
        super().__init__(
            message=f"Caller {caller} is not allowed to {action}",
            code="UNAUTHORIZED",
        )
        self.caller = caller
        self.action = action


class InvalidStateError(EscrowError):
    """Raised when a transition is attempted on an agreement that is not CREATED.

    Example: PAID -> CANCELED (PAID is terminal)
    """

    def __init__(self, current_state: str, attempted_event: str) -> None:
        super().__init__(
            message=f"Invalid state transition: cannot {attempted_event} from {current_state}",
            code="INVALID_STATE",
        )
        self.current_state = current_state
        self.attempted_event = attempted_event


# --- Ledger Errors ---


class NothingToWithdrawError(EscrowError):
    """Raised when a party withdraws with a zero balance."""

    def __init__(self, party: str) -> None:
        super().__init__(
            message=f"Nothing to withdraw for {party}",
            code="NOTHING_TO_WITHDRAW",
        )
        self.party = party


# --- Idempotency Errors ---


class DuplicateOperationError(EscrowError):
    """Raised when a duplicate idempotency key is detected."""

    def __init__(self, idempotency_key: str) -> None:
        super().__init__(
            message=f"Duplicate operation detected for key: {idempotency_key}",
            code="DUPLICATE_OPERATION",
        )
