# clinic_core/visits/ordering.py
"""
Waiting-room order: priority rank first (high < normal < low), then ticket
number. Applied in Python on every read, never taken from storage order.
"""
from __future__ import annotations

from typing import Iterable, Protocol, TypeVar

from django.conf import settings

from clinic_core.appointments.models import Priority

PRIORITY_RANK: dict[str, int] = {
    Priority.HIGH: 0,
    Priority.NORMAL: 1,
    Priority.LOW: 2,
}


class Queued(Protocol):
    priority: str
    sequence_number: int


T = TypeVar("T", bound=Queued)


def queue_sort_key(entry: Queued) -> tuple[int, int]:
    # unknown priorities sort after low
    return PRIORITY_RANK.get(entry.priority, len(PRIORITY_RANK)), entry.sequence_number


def order_waiting(entries: Iterable[T]) -> list[T]:
    return sorted(entries, key=queue_sort_key)


def avg_minutes_per_patient() -> int:
    return int(getattr(settings, "CLINIC_AVG_MINUTES_PER_PATIENT", 15))


def estimate_wait(position: int, *, per_patient: int | None = None) -> int:
    """`position` is the number of patients ahead (0 for the head of the queue)."""
    per_patient = avg_minutes_per_patient() if per_patient is None else per_patient
    return max(position, 0) * per_patient
