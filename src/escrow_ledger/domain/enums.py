"""Domain enumerations for the Escrow Ledger.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum

# Reserved party identifier that accumulates the service's fee revenue.
SERVICE_ACCOUNT = "SERVICE"


class AgreementStatus(enum.StrEnum):
    """Lifecycle states of an escrow agreement.

    CREATED is the only non-terminal state. See domain/state_machine.py.
    """

    CREATED = "CREATED"
    PAID = "PAID"
    CANCELED = "CANCELED"


class Role(enum.StrEnum):
    """The part a party plays in an agreement.

    Declaration order is the classification precedence used by role_of().
    """

    NONE = "NONE"
    SENDER = "SENDER"
    RECEIVER = "RECEIVER"
    MIDDLEMAN = "MIDDLEMAN"


class EventType(enum.StrEnum):
    """Types of audit events recorded in the agreement_events table.

    Every state transition MUST produce exactly one event.
    """

    AGREEMENT_CREATED = "AGREEMENT_CREATED"
    AGREEMENT_PAID = "AGREEMENT_PAID"
    AGREEMENT_CANCELED = "AGREEMENT_CANCELED"


class PayoutFeeBasis(enum.StrEnum):
    """Which fee a resolution deducts from the agreement amount.

    CREATION reuses the fee captured when the agreement was created.
    PAYOUT recomputes it from the fee rate in effect at resolution time.
    """

    CREATION = "creation"
    PAYOUT = "payout"
