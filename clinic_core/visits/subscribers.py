# clinic_core/visits/subscribers.py
from __future__ import annotations

import logging
from uuid import UUID

from django.utils.dateparse import parse_datetime

from clinic_core.appointments.models import AppointmentStatus
from clinic_core.common.clock import FixedClock
from clinic_core.common.events import subscribe
from clinic_core.visits.models import QueueStatus
from clinic_core.visits.queue import QueueService
from clinic_core.visits.selectors import QueueSelector

logger = logging.getLogger(__name__)


@subscribe("appointment.status_changed")
def follow_appointment_status(payload: dict) -> None:
    """
    Keep the queue in line with appointment changes made directly by staff.

    When the change came from the queue itself, the entry is already in the
    matching state and nothing happens. An entry that cannot follow raises
    INVALID_QUEUE_TRANSITION, rolling the appointment change back.
    """
    new_status = payload.get("new_status")
    if new_status not in (
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.COMPLETED,
    ):
        return

    tenant_id = UUID(payload["tenant_id"])
    facility_id = UUID(payload["facility_id"])
    entry = QueueSelector.open_entry_for_appointment(
        tenant_id=tenant_id,
        facility_id=facility_id,
        appointment_id=UUID(payload["appointment_id"]),
    )
    if entry is None:
        return

    common = {
        "tenant_id": tenant_id,
        "facility_id": facility_id,
        "queue_entry_id": entry.id,
        "actor_id": payload.get("actor_id"),
        "clock": FixedClock(parse_datetime(payload["occurred_at"])),
    }

    if new_status in (AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW):
        logger.info("appointment %s %s: closing queue entry %s", payload["appointment_id"], new_status, entry.id)
        QueueService.cancel(outcome=new_status, reason=payload.get("reason") or None, **common)
    elif new_status == AppointmentStatus.IN_PROGRESS:
        if entry.status != QueueStatus.IN_PROGRESS:
            QueueService.start(**common)
    else:
        QueueService.complete(**common)
