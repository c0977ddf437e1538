# backend/app/services/order_lifecycle.py
"""
Order status state machine.

Pure rules only: nothing here touches the session or performs I/O. The
orchestrator applies a transition and then acts on the returned outcome.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from backend.app.core.constants import (
    DEFAULT_CANCELLATION_REASON,
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
    PaymentStatus,
)
from backend.app.core.exceptions import InvalidInputError, InvalidTransitionError
from backend.app.models.order import Order


def _build_transitions() -> Dict[OrderStatus, FrozenSet[OrderStatus]]:
    table = {}
    for status in OrderStatus:
        if status in TERMINAL_ORDER_STATUSES:
            table[status] = frozenset()
        else:
            table[status] = frozenset(s for s in OrderStatus if s != status)
    return table


# Any non-terminal status may move to any other status; terminal ones are final.
ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = _build_transitions()

PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.FAILED: frozenset(),
}


@dataclass(frozen=True)
class TransitionOutcome:
    """What happened, plus the side effects the caller must schedule."""
    old_status: OrderStatus
    new_status: OrderStatus
    reprint_kitchen: bool
    broadcast_update: bool = True
    release_slot_id: Optional[int] = None


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in OrderStatus)
        raise InvalidInputError(f"Invalid status '{value}'. Must be one of: {valid}")


def parse_payment_status(value) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in PaymentStatus)
        raise InvalidInputError(f"Invalid payment status '{value}'. Must be one of: {valid}")


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in ORDER_TRANSITIONS[current]


def apply_transition(
    order: Order,
    new_status,
    reason: Optional[str] = None,
    delivered_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> TransitionOutcome:
    """
    Move ``order`` to ``new_status`` in place.

    Raises InvalidInputError for an unknown status value and
    InvalidTransitionError when the table forbids the move (every move out
    of delivered or cancelled is forbidden).
    """
    target = parse_status(new_status)
    current = parse_status(order.status)
    if current in TERMINAL_ORDER_STATUSES:
        raise InvalidTransitionError(
            f"Order {order.id} is already {current.value}; status can no longer change"
        )
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot change order {order.id} status from {current.value} to {target.value}"
        )

    if now is None:
        now = datetime.utcnow()

    order.status = target.value
    release_slot_id = None
    if target == OrderStatus.DELIVERED:
        order.actual_delivery_time = delivered_at or now
    elif target == OrderStatus.CANCELLED:
        order.cancellation_reason = (reason or "").strip() or DEFAULT_CANCELLATION_REASON
        release_slot_id = order.delivery_slot_id

    return TransitionOutcome(
        old_status=current,
        new_status=target,
        reprint_kitchen=target == OrderStatus.PREPARING,
        release_slot_id=release_slot_id,
    )


def apply_payment_transition(order: Order, new_payment_status) -> PaymentStatus:
    """Change payment_status only; order.status is left alone."""
    target = parse_payment_status(new_payment_status)
    current = parse_payment_status(order.payment_status)
    if target not in PAYMENT_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot change order {order.id} payment status from {current.value} to {target.value}"
        )
    order.payment_status = target.value
    return current


def ensure_deletable(order: Order) -> None:
    if order.status != OrderStatus.PENDING.value:
        raise InvalidTransitionError(
            f"Order {order.id} can only be deleted while pending (current status: {order.status})"
        )
