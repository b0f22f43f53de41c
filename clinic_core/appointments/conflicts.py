# clinic_core/appointments/conflicts.py
"""
Double-booking detection for a clinician's day.

`find_conflicts` is a pure function over slot snapshots; `check_conflict`
loads the snapshot for one clinician and date and applies it.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional
from uuid import UUID

from django.conf import settings

from clinic_core.appointments.models import ACTIVE_APPOINTMENT_STATUSES, Appointment


def default_duration() -> int:
    return int(getattr(settings, "CLINIC_DEFAULT_DURATION_MINUTES", 30))


@dataclass(frozen=True)
class BookedSlot:
    appointment_id: Optional[UUID]
    start_time: time
    duration_minutes: Optional[int] = None

    def bounds(self, day: date) -> tuple[datetime, datetime]:
        start = datetime.combine(day, self.start_time)
        minutes = self.duration_minutes or default_duration()
        return start, start + timedelta(minutes=minutes)


@dataclass(frozen=True)
class ConflictResult:
    conflicting_ids: tuple[UUID, ...] = ()

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicting_ids)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # half-open: touching endpoints do not overlap
    return a_start < b_end and a_end > b_start


def find_conflicts(candidate: BookedSlot, booked: Iterable[BookedSlot], *, day: date) -> ConflictResult:
    cand_start, cand_end = candidate.bounds(day)
    hits = []
    for slot in booked:
        if candidate.appointment_id is not None and slot.appointment_id == candidate.appointment_id:
            continue
        other_start, other_end = slot.bounds(day)
        if overlaps(cand_start, cand_end, other_start, other_end):
            hits.append(slot.appointment_id)
    return ConflictResult(conflicting_ids=tuple(hits))


def check_conflict(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    clinician_id: UUID,
    appointment_date: date,
    start_time: time,
    duration_minutes: Optional[int] = None,
    exclude_appointment_id: Optional[UUID] = None,
) -> ConflictResult:
    qs = Appointment.objects.filter(
        tenant_id=tenant_id,
        facility_id=facility_id,
        clinician_id=clinician_id,
        appointment_date=appointment_date,
        status__in=ACTIVE_APPOINTMENT_STATUSES,
    )
    if exclude_appointment_id:
        qs = qs.exclude(id=exclude_appointment_id)

    booked = [
        BookedSlot(appointment_id=row["id"], start_time=row["start_time"], duration_minutes=row["duration_minutes"])
        for row in qs.order_by("start_time").values("id", "start_time", "duration_minutes")
    ]
    candidate = BookedSlot(appointment_id=None, start_time=start_time, duration_minutes=duration_minutes)
    return find_conflicts(candidate, booked, day=appointment_date)
