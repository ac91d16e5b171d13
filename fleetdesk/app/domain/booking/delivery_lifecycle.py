"""
Delivery status lifecycle.

pending -> in-progress -> completed is the short path. When the client has
to confirm receipt, accepted / delivered / awaiting-confirmation sit in
between. Any non-terminal delivery can be cancelled; nothing moves backward
and completed / cancelled are terminal.
"""

from fleetdesk.app.core.exceptions import InvalidStatusTransitionError
from fleetdesk.app.models.delivery_enums import DeliveryStatus

TERMINAL_STATUSES = frozenset({DeliveryStatus.COMPLETED, DeliveryStatus.CANCELLED})

ALLOWED_TRANSITIONS = {
    DeliveryStatus.PENDING: {
        DeliveryStatus.ACCEPTED,
        DeliveryStatus.IN_PROGRESS,
        DeliveryStatus.CANCELLED,
    },
    DeliveryStatus.ACCEPTED: {
        DeliveryStatus.IN_PROGRESS,
        DeliveryStatus.CANCELLED,
    },
    DeliveryStatus.IN_PROGRESS: {
        DeliveryStatus.DELIVERED,
        DeliveryStatus.COMPLETED,
        DeliveryStatus.CANCELLED,
    },
    DeliveryStatus.DELIVERED: {
        DeliveryStatus.AWAITING_CONFIRMATION,
        DeliveryStatus.COMPLETED,
        DeliveryStatus.CANCELLED,
    },
    DeliveryStatus.AWAITING_CONFIRMATION: {
        DeliveryStatus.COMPLETED,
        DeliveryStatus.CANCELLED,
    },
    **{status: set() for status in TERMINAL_STATUSES},
}


def can_transition(current, requested) -> bool:
    return DeliveryStatus(requested) in ALLOWED_TRANSITIONS[DeliveryStatus(current)]


def ensure_transition(current, requested) -> DeliveryStatus:
    """
    Validate a status move and return the requested status.

    Raises:
        InvalidStatusTransitionError: If the lifecycle forbids the move
    """
    current = DeliveryStatus(current)
    requested = DeliveryStatus(requested)
    if not can_transition(current, requested):
        raise InvalidStatusTransitionError(current.value, requested.value)
    return requested
