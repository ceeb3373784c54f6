# Overview: Order status state machine; which transitions exist and who may drive them.

"""
Order Lifecycle

STATE MACHINE:
    PENDING -> ACCEPTED -> PACKED -> PICKED_UP -> IN_TRANSIT -> DELIVERED
    PENDING -> CANCELLED
    ACCEPTED -> REJECTED

    PENDING:   Prime order open for claim; no assignee
    ACCEPTED:  Assigned (claimed Prime order, or regular order at creation)
    DELIVERED, CANCELLED, REJECTED: terminal

RULES:
1. Only PENDING orders without an assignee are claimable.
2. No skipping and no moving backwards.
3. Fulfillment steps after ACCEPTED are driven by the assigned vendor only.
4. Every transition is applied as a conditional update on the expected
   prior status, so two writers cannot both move the same order.
"""

from __future__ import annotations
from typing import Literal

from ..validation import ValidationError


PENDING = "PENDING"
ACCEPTED = "ACCEPTED"
PACKED = "PACKED"
PICKED_UP = "PICKED_UP"
IN_TRANSIT = "IN_TRANSIT"
DELIVERED = "DELIVERED"
CANCELLED = "CANCELLED"
REJECTED = "REJECTED"

VALID_STATUSES = {PENDING, ACCEPTED, PACKED, PICKED_UP, IN_TRANSIT, DELIVERED, CANCELLED, REJECTED}
OrderStatus = Literal[
    "PENDING", "ACCEPTED", "PACKED", "PICKED_UP", "IN_TRANSIT", "DELIVERED", "CANCELLED", "REJECTED"
]

CLAIMABLE_STATUSES = frozenset({PENDING})

_TRANSITIONS = {
    (PENDING, ACCEPTED),
    (PENDING, CANCELLED),
    (ACCEPTED, PACKED),
    (ACCEPTED, REJECTED),
    (PACKED, PICKED_UP),
    (PICKED_UP, IN_TRANSIT),
    (IN_TRANSIT, DELIVERED),
}

# Transitions an assigned vendor may request through update_order_status.
# PENDING -> ACCEPTED happens only through a claim; PENDING -> CANCELLED
# only through the customer's cancel.
VENDOR_DRIVEN_STATUSES = frozenset({PACKED, PICKED_UP, IN_TRANSIT, DELIVERED, REJECTED})


class LifecycleError(ValidationError):
    """Raised for an unknown status or a status a caller may not set."""
    pass


class InvalidStatusTransition(LifecycleError):
    """
    Raised when an invalid status transition is attempted.

    This is a domain error, not a technical error.
    """
    pass


def validate_status(status: str) -> None:
    if status not in VALID_STATUSES:
        raise LifecycleError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """True if the state machine has an edge from_status -> to_status."""
    validate_status(from_status)
    validate_status(to_status)
    return (from_status, to_status) in _TRANSITIONS


def require_transition(from_status: str, to_status: str) -> None:
    if not can_transition(from_status, to_status):
        raise InvalidStatusTransition(
            f"Cannot move order from {from_status} to {to_status}",
            details={"from_status": from_status, "to_status": to_status},
        )


def is_claimable(status: str, assigned_vendor_id: int | None) -> bool:
    return status in CLAIMABLE_STATUSES and assigned_vendor_id is None