"""Invoice lifecycle state machine

Single source of truth for which status changes are legal and who may make
them. Used by the issuer, the payment watcher, the sweeper and the
administrative API; every write re-validates against this table.

    pending   -> paid       (watcher: balance >= required)
    pending   -> cancelled  (admin)
    cancelled -> pending    (admin)
    paid      -> swept      (sweeper: sweep transfer confirmed)

swept and cancelled have no automatic exits; swept is terminal.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple
from src.domain.errors import InvalidTransitionError
from src.domain.invoice import InvoiceStatus


class LifecycleActor(str, Enum):
    """Actors allowed to change invoice status"""
    WATCHER = "watcher"
    SWEEPER = "sweeper"
    ADMIN = "admin"


INITIAL_STATUS = InvoiceStatus.PENDING

TRANSITIONS: Dict[Tuple[InvoiceStatus, InvoiceStatus], LifecycleActor] = {
    (InvoiceStatus.PENDING, InvoiceStatus.PAID): LifecycleActor.WATCHER,
    (InvoiceStatus.PENDING, InvoiceStatus.CANCELLED): LifecycleActor.ADMIN,
    (InvoiceStatus.CANCELLED, InvoiceStatus.PENDING): LifecycleActor.ADMIN,
    (InvoiceStatus.PAID, InvoiceStatus.SWEPT): LifecycleActor.SWEEPER,
}

DELETABLE_STATUSES: FrozenSet[InvoiceStatus] = frozenset(
    {InvoiceStatus.PENDING, InvoiceStatus.CANCELLED}
)

# Timestamp set exactly once when the status is entered
_ENTRY_TIMESTAMPS = {
    InvoiceStatus.PAID: "paid_at",
    InvoiceStatus.SWEPT: "swept_at",
}


def can_transition(
    current: InvoiceStatus,
    target: InvoiceStatus,
    actor: Optional[LifecycleActor] = None,
) -> bool:
    """Return True if (current -> target) is legal, optionally for a given actor"""
    allowed_actor = TRANSITIONS.get((InvoiceStatus(current), InvoiceStatus(target)))
    if allowed_actor is None:
        return False
    return actor is None or allowed_actor == actor


def ensure_transition(
    current: InvoiceStatus,
    target: InvoiceStatus,
    actor: Optional[LifecycleActor] = None,
) -> None:
    """Raise InvalidTransitionError unless the transition is legal"""
    if not can_transition(current, target, actor):
        raise InvalidTransitionError(
            InvoiceStatus(current).value,
            InvoiceStatus(target).value,
            actor.value if actor else None,
        )


def allowed_targets(
    current: InvoiceStatus, actor: Optional[LifecycleActor] = None
) -> list[InvoiceStatus]:
    """Statuses reachable from current, in table order"""
    return [
        target
        for (source, target), allowed_actor in TRANSITIONS.items()
        if source == current and (actor is None or allowed_actor == actor)
    ]


def is_deletable(status: InvoiceStatus) -> bool:
    return InvoiceStatus(status) in DELETABLE_STATUSES


def is_terminal(status: InvoiceStatus) -> bool:
    return not allowed_targets(InvoiceStatus(status))


def transition_changes(
    current: InvoiceStatus,
    target: InvoiceStatus,
    actor: LifecycleActor,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Validate a transition and build the field changes it writes

    Args:
        current: Status the caller expects the record to have
        target: Requested status
        actor: Actor performing the change
        now: Timestamp to record (defaults to utcnow)

    Returns:
        Mapping of column name to new value (status, updated_at and the
        entry timestamp of the target state, if it has one)

    Raises:
        InvalidTransitionError: If the transition is not in the table
    """
    ensure_transition(current, target, actor)
    now = now or datetime.utcnow()
    changes: Dict[str, Any] = {"status": InvoiceStatus(target), "updated_at": now}
    timestamp_field = _ENTRY_TIMESTAMPS.get(InvoiceStatus(target))
    if timestamp_field:
        changes[timestamp_field] = now
    return changes
