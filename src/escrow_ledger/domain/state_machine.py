"""Agreement State Machine Guard.

Uses python-statemachine to enforce legal state transitions at the domain level.
Whatever the API or a concurrent caller attempts, a second resolution of an
agreement (e.g., PAID -> CANCELED) will raise TransitionNotAllowed.

The state machine is instantiated per-agreement and validates transitions before
the stored status field is updated.

Transition table:
    CREATED -> PAID      (pay)
    CREATED -> CANCELED  (cancel)
"""

from __future__ import annotations

from statemachine import State, StateMachine


class AgreementStateMachine(StateMachine):
    """State machine that guards escrow agreement lifecycle transitions.

    Usage:
        sm = AgreementStateMachine(current_status="CREATED")
        sm.pay()          # transitions to PAID
        sm.current_state  # State('PAID', ...)
    """

    # --- States ---
    CREATED = State("CREATED", initial=True)
    PAID = State("PAID", final=True)
    CANCELED = State("CANCELED", final=True)

    # --- Events / Transitions ---
    pay = CREATED.to(PAID)
    cancel = CREATED.to(CANCELED)

    def __init__(self, current_status: str = "CREATED") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current AgreementStatus value (e.g., "PAID").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches AgreementStatus enum)."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [event.name for event in self.allowed_events]


def validate_transition(current_status: str, event_name: str) -> str:
    """Validate a state transition and return the new status.

    Args:
        current_status: Current AgreementStatus value.
        event_name: The event to fire ("pay" or "cancel").

    Returns:
        The new status string after the transition.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is invalid.
    """
    sm = AgreementStateMachine(current_status=current_status)

    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.status
