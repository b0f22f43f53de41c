# clinic_core/visits/transitions.py
from __future__ import annotations

from clinic_core.common.errors import IllegalTransition
from clinic_core.visits.models import QueueStatus as Q

QUEUE_TRANSITIONS: dict[str, frozenset[str]] = {
    Q.WAITING: frozenset({Q.CALLED, Q.CANCELLED}),
    Q.CALLED: frozenset({Q.IN_PROGRESS, Q.COMPLETED, Q.CANCELLED}),
    Q.IN_PROGRESS: frozenset({Q.COMPLETED}),
    Q.COMPLETED: frozenset(),
    Q.CANCELLED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in QUEUE_TRANSITIONS.get(current, frozenset())


def validate_queue_transition(*, current: str, target: str) -> None:
    if not can_transition(current, target):
        raise IllegalTransition(
            f"Queue entry cannot move from {current} to {target}.",
            code="INVALID_QUEUE_TRANSITION",
            details={"from": current, "to": target},
        )
