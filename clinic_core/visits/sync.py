# clinic_core/visits/sync.py
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional

from clinic_core.appointments.models import AppointmentStatus
from clinic_core.appointments.services import AppointmentService
from clinic_core.audit.services import AuditService
from clinic_core.common.clock import FixedClock
from clinic_core.common.errors import ValidationFailed
from clinic_core.visits.models import CheckIn, CheckInStatus, QueueEntry, QueueStatus

logger = logging.getLogger(__name__)

# Cancellation outcome -> (check-in status, appointment status)
CANCEL_OUTCOMES: dict[str, tuple[str, str]] = {
    "cancelled": (CheckInStatus.CANCELLED, AppointmentStatus.CANCELLED),
    "no-show": (CheckInStatus.NO_SHOW, AppointmentStatus.NO_SHOW),
}

# Queue status -> (check-in status, appointment status); None leaves the row as is
STATUS_MAP: dict[str, tuple[Optional[str], Optional[str]]] = {
    QueueStatus.WAITING: (CheckInStatus.WAITING, AppointmentStatus.CHECKED_IN),
    QueueStatus.CALLED: (CheckInStatus.CALLED, AppointmentStatus.CHECKED_IN),
    QueueStatus.IN_PROGRESS: (None, AppointmentStatus.IN_PROGRESS),
    QueueStatus.COMPLETED: (CheckInStatus.ATTENDED, AppointmentStatus.COMPLETED),
}

TERMINAL_CHECKIN = {CheckInStatus.ATTENDED, CheckInStatus.CANCELLED, CheckInStatus.NO_SHOW}


def normalize_outcome(outcome: Optional[str]) -> str:
    value = outcome or "cancelled"
    if value not in CANCEL_OUTCOMES:
        raise ValidationFailed(
            "Outcome must be one of: cancelled, no-show",
            code="INVALID_OUTCOME",
            details={"allowed": list(CANCEL_OUTCOMES), "value": value},
        )
    return value


def targets_for(queue_status: str, outcome: Optional[str] = None) -> tuple[Optional[str], Optional[str]]:
    if queue_status == QueueStatus.CANCELLED:
        return CANCEL_OUTCOMES[normalize_outcome(outcome)]
    return STATUS_MAP[queue_status]


def elapsed_minutes(start: datetime, end: datetime) -> int:
    return max(0, math.floor((end - start).total_seconds() / 60))


class StatusSynchronizer:
    """
    Carries a queue entry's new status to its check-in and linked appointment.

    Must run inside the queue transition's transaction: an appointment
    rejection raises and takes the whole triple back with it.
    """

    @staticmethod
    def propagate(
        *,
        entry: QueueEntry,
        at: datetime,
        outcome: Optional[str] = None,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> CheckIn:
        checkin_target, appointment_target = targets_for(entry.status, outcome)

        checkin = CheckIn.objects.select_for_update().get(pk=entry.check_in_id)
        changed: list[str] = []
        old_status = checkin.status

        if checkin_target and checkin.status != checkin_target:
            checkin.status = checkin_target
            changed.append("status")

        if entry.staff_id and checkin.staff_id != entry.staff_id:
            checkin.staff_id = entry.staff_id
            changed.append("staff")

        if checkin.status in TERMINAL_CHECKIN and checkin.waiting_time_minutes is None:
            checkin.waiting_time_minutes = elapsed_minutes(checkin.checkin_time, at)
            changed.append("waiting_time_minutes")

        if changed:
            checkin.save(update_fields=[*changed, "updated_at"])

        if "status" in changed:
            AuditService.log(
                action="checkin.status_changed",
                entity_type="CheckIn",
                entity_id=checkin.id,
                tenant_id=checkin.tenant_id,
                facility_id=checkin.facility_id,
                old_status=old_status,
                new_status=checkin.status,
                actor_id=actor_id,
                timestamp=at,
                metadata={"queue_entry_id": str(entry.id), "waiting_time_minutes": checkin.waiting_time_minutes},
            )
            logger.info("checkin %s status %s -> %s", checkin.id, old_status, checkin.status)

        if entry.appointment_id and appointment_target:
            AppointmentService.set_status(
                tenant_id=entry.tenant_id,
                facility_id=entry.facility_id,
                appointment_id=entry.appointment_id,
                status=appointment_target,
                reason=reason,
                actor_id=actor_id,
                clock=FixedClock(at),
            )

        return checkin
