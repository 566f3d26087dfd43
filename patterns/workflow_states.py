"""Enum-based workflow state machine pattern.

Defines workflow states as Python enums with explicit transition
validation. The state definitions are independent of storage: the
repository asks the machine whether a move is legal, then persists it.

Example domain: back-in-stock subscription lifecycle.
"""

from enum import Enum

from core.errors import InvalidTransitionError


# ---------------------------------------------------------------------------
# State definitions
# ---------------------------------------------------------------------------

class SubscriptionStatus(str, Enum):
    """Back-in-stock subscription states."""

    PENDING = "PENDING"
    NOTIFIED = "NOTIFIED"
    ERROR = "ERROR"


# ---------------------------------------------------------------------------
# Transition rules
# ---------------------------------------------------------------------------

# Allowed transitions: {current_state: [allowed_next_states]}
_SUBSCRIPTION_TRANSITIONS: dict[SubscriptionStatus, list[SubscriptionStatus]] = {
    SubscriptionStatus.PENDING: [SubscriptionStatus.NOTIFIED, SubscriptionStatus.ERROR],
    SubscriptionStatus.NOTIFIED: [],  # terminal
    SubscriptionStatus.ERROR: [],     # terminal
}


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

def can_transition(current: SubscriptionStatus, to_state: SubscriptionStatus) -> bool:
    """Check if a transition is allowed from the current state."""
    return to_state in _SUBSCRIPTION_TRANSITIONS.get(current, [])


def sources_for(to_state: SubscriptionStatus) -> list[SubscriptionStatus]:
    """States from which ``to_state`` can be reached."""
    return [s for s, allowed in _SUBSCRIPTION_TRANSITIONS.items() if to_state in allowed]


def ensure_transition(current: SubscriptionStatus, to_state: SubscriptionStatus) -> None:
    """Raise InvalidTransitionError if the transition is not allowed."""
    if not can_transition(current, to_state):
        allowed = [s.value for s in _SUBSCRIPTION_TRANSITIONS.get(current, [])]
        raise InvalidTransitionError(
            f"Cannot transition from {current.value} to {to_state.value}. "
            f"Allowed: {allowed}"
        )


def is_terminal(state: SubscriptionStatus) -> bool:
    """Check if a state has no outgoing transitions."""
    return len(_SUBSCRIPTION_TRANSITIONS.get(state, [])) == 0
