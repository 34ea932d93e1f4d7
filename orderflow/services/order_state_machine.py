"""
Order State Machine

This module is the single place where order status transitions are defined.
Services check transitions here before attempting the conditional write.

    pending ──claim──▶ on_the_way ──verify OTP──▶ delivered
       │
       └──cancel──▶ cancelled

delivered and cancelled are terminal. An on_the_way order cannot be
cancelled: once an agent holds the goods the hand-off must complete.
"""

from typing import Dict, List

from orderflow.core.exceptions import InvalidStateError
from orderflow.models.order import OrderStatus


# =============================================================================
# TRANSITION RULES
# =============================================================================

# current_status -> [allowed next statuses]
ORDER_TRANSITIONS: Dict[OrderStatus, List[OrderStatus]] = {
    OrderStatus.PENDING: [
        OrderStatus.ON_THE_WAY,     # Agent claims the order
        OrderStatus.CANCELLED,      # Operator aborts
    ],
    OrderStatus.ON_THE_WAY: [
        OrderStatus.DELIVERED,      # OTP verified at hand-off
    ],
    OrderStatus.DELIVERED: [],      # Terminal state - no transitions
    OrderStatus.CANCELLED: [],      # Terminal state - no transitions
}

TRANSITION_ACTIONS: Dict[tuple, str] = {
    (OrderStatus.PENDING, OrderStatus.ON_THE_WAY): "Claim",
    (OrderStatus.PENDING, OrderStatus.CANCELLED): "Cancel",
    (OrderStatus.ON_THE_WAY, OrderStatus.DELIVERED): "Confirm Delivery",
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def can_transition(current_status: OrderStatus, new_status: OrderStatus) -> bool:
    """Check if a transition is allowed."""
    return new_status in ORDER_TRANSITIONS.get(current_status, [])


def get_allowed_transitions(current_status: OrderStatus) -> List[OrderStatus]:
    return ORDER_TRANSITIONS.get(current_status, [])


def get_transition_action(current_status: OrderStatus, new_status: OrderStatus) -> str:
    """Get human-readable action name for a transition."""
    return TRANSITION_ACTIONS.get(
        (current_status, new_status),
        f"{current_status.value} -> {new_status.value}",
    )


def is_terminal(status: OrderStatus) -> bool:
    """Is this a terminal (final) state?"""
    return not ORDER_TRANSITIONS.get(status)


def validate_transition(current_status: OrderStatus, new_status: OrderStatus) -> None:
    """
    Validate a status transition. Raises InvalidStateError if invalid.

    Unlike a plain field update, re-applying the current status is not a
    no-op here: claiming an order that is already on_the_way is an error.
    """
    if can_transition(current_status, new_status):
        return

    if is_terminal(current_status):
        raise InvalidStateError(
            f"Order is '{current_status.value}', a terminal state, and cannot be changed"
        )
    allowed = get_allowed_transitions(current_status)
    raise InvalidStateError(
        f"Cannot change order from '{current_status.value}' to '{new_status.value}'. "
        f"Allowed transitions: {', '.join(s.value for s in allowed)}"
    )
