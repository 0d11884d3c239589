"""
ORDER LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed lifecycle transitions
for Order entities.

    (new)  -> draft       first "save draft"
    (new)  -> completed   checkout of a fresh cart
    draft  -> draft       re-save of a resumed draft
    draft  -> completed   checkout of a resumed draft

Completed orders are never demoted. Cancelled is modelled but has no
incoming transition.

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
- Single source of truth
"""

from sales.models import Order

# ============================================================
# DOMAIN ERRORS
# ============================================================


class OrderLifecycleError(Exception):
    pass


class InvalidOrderTransitionError(OrderLifecycleError):
    pass


# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Order.STATUS_COMPLETED,
    Order.STATUS_CANCELLED,
}

ALLOWED_TRANSITIONS = {
    None: {
        Order.STATUS_DRAFT,
        Order.STATUS_COMPLETED,
    },
    Order.STATUS_DRAFT: {
        Order.STATUS_DRAFT,
        Order.STATUS_COMPLETED,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, order_id, from_status, target_status: str):
    if not can_transition(
        from_status=from_status,
        to_status=target_status,
    ):
        raise InvalidOrderTransitionError(
            f"Order {order_id} cannot transition from "
            f"'{from_status or 'new'}' to '{target_status}'"
        )


def can_resume(order: Order) -> bool:
    return order.status == Order.STATUS_DRAFT


def validate_resume(order: Order):
    if not can_resume(order):
        raise InvalidOrderTransitionError(
            f"Order {order.id} is '{order.status}'; only drafts can be resumed"
        )
