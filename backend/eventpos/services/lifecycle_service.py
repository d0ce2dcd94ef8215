# Overview: Purchase status state machine; the only place transitions are defined.

"""
Purchase lifecycle

STATE MACHINE:
    pending  --confirm payment-->  paid  --deliver-->  delivered
    pending  --cancel----------->  cancelled
    pre-sale --confirm---------->  pre-sale-confirmed  --confirm payment-->  paid

    Item edits keep the status (pending only) and are not transitions.

RULES:
1. Any (from, to) pair not in TRANSITIONS is rejected with
   InvalidStateTransition, including repeating a transition already made.
2. cancelled and delivered are terminal.
3. Which statuses ConfirmPayment accepts is further narrowed per deployment
   by PAYMENT_SOURCE_STATUSES.
"""

from __future__ import annotations

from ..constants import PurchaseStatus
from ..errors import InvalidStateTransition


TRANSITIONS: frozenset[tuple[PurchaseStatus, PurchaseStatus]] = frozenset({
    (PurchaseStatus.PENDING, PurchaseStatus.PAID),
    (PurchaseStatus.PENDING, PurchaseStatus.CANCELLED),
    (PurchaseStatus.PAID, PurchaseStatus.DELIVERED),
    (PurchaseStatus.PRE_SALE, PurchaseStatus.PRE_SALE_CONFIRMED),
    (PurchaseStatus.PRE_SALE_CONFIRMED, PurchaseStatus.PAID),
})

EDITABLE_STATUSES = frozenset({PurchaseStatus.PENDING})
RETURNABLE_STATUSES = frozenset({PurchaseStatus.PAID, PurchaseStatus.DELIVERED})
TERMINAL_STATUSES = frozenset({PurchaseStatus.CANCELLED, PurchaseStatus.DELIVERED})


def can_transition(from_status: PurchaseStatus | str, to_status: PurchaseStatus | str) -> bool:
    return (PurchaseStatus(from_status), PurchaseStatus(to_status)) in TRANSITIONS


def require_transition(purchase, to_status: PurchaseStatus, allowed_from=None) -> None:
    """
    Raise InvalidStateTransition unless `purchase` may move to `to_status`.

    `allowed_from` optionally narrows the source statuses further.
    """
    current = PurchaseStatus(purchase.status)
    if not can_transition(current, to_status) or (
        allowed_from is not None and current not in allowed_from
    ):
        raise InvalidStateTransition(purchase.id, current.value, to_status.value)


def require_status(purchase, allowed: frozenset, attempted: str) -> None:
    """Guard for operations that keep the status (edit, return)."""
    current = PurchaseStatus(purchase.status)
    if current not in allowed:
        raise InvalidStateTransition(purchase.id, current.value, attempted)
