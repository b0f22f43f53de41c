# clinic_core/visits/admission.py
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Max

from clinic_core.appointments.models import AppointmentStatus, Priority
from clinic_core.appointments.selectors import AppointmentSelector
from clinic_core.appointments.services import AppointmentService
from clinic_core.audit.services import AuditService
from clinic_core.common.clock import Clock, DayWindow, FixedClock, day_window, get_clock
from clinic_core.common.errors import BusinessConflict, TransientCommitError
from clinic_core.common.validators import coerce_choice
from clinic_core.directory.services import DirectoryService
from clinic_core.visits.models import (
    ACTIVE_CHECKIN_STATUSES,
    CheckIn,
    CheckInStatus,
    CheckInType,
    DailySequence,
    QueueEntry,
    QueueStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = {
    CheckInType.APPOINTMENT: Priority.HIGH,
    CheckInType.WALK_IN: Priority.NORMAL,
}

STALE_REASON = "Open check-in from an earlier day"


def commit_retries() -> int:
    return max(0, int(getattr(settings, "CLINIC_COMMIT_RETRIES", 1)))


class CheckInService:
    """
    Admission: one CheckIn plus its waiting QueueEntry, numbered per day.

    Notes:
    - Numbering is serialized on the DailySequence row of the day; the unique
      (scope, day, sequence) constraint backs it up.
    - A lost race surfaces as IntegrityError and the whole admission is
      retried CLINIC_COMMIT_RETRIES times before CONCURRENT_UPDATE.
    """

    @staticmethod
    def admit_walk_in(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        patient_id: UUID,
        notes: Optional[str] = None,
        priority: Optional[str] = None,
        staff_id: Optional[UUID] = None,
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> CheckIn:
        return CheckInService._admit_with_retry(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient_id=patient_id,
            appointment_id=None,
            check_in_type=CheckInType.WALK_IN,
            notes=notes,
            priority=priority,
            staff_id=staff_id,
            actor_id=actor_id,
            clock=clock,
        )

    @staticmethod
    def admit_for_appointment(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        patient_id: UUID,
        appointment_id: UUID,
        notes: Optional[str] = None,
        priority: Optional[str] = None,
        staff_id: Optional[UUID] = None,
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> CheckIn:
        return CheckInService._admit_with_retry(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient_id=patient_id,
            appointment_id=appointment_id,
            check_in_type=CheckInType.APPOINTMENT,
            notes=notes,
            priority=priority,
            staff_id=staff_id,
            actor_id=actor_id,
            clock=clock,
        )

    # -------------------------
    # Internal helpers
    # -------------------------
    @staticmethod
    def _admit_with_retry(**kwargs) -> CheckIn:
        attempts = commit_retries() + 1
        for attempt in range(1, attempts + 1):
            try:
                with transaction.atomic():
                    return CheckInService._admit(**kwargs)
            except IntegrityError as exc:
                logger.warning(
                    "admission lost a race (attempt %s/%s) patient=%s: %s",
                    attempt, attempts, kwargs.get("patient_id"), exc,
                )
        raise TransientCommitError(
            "Check-in could not be committed because of concurrent admissions. Please retry.",
            details={"attempts": attempts},
        )

    @staticmethod
    def next_sequence_number(*, tenant_id: UUID, facility_id: UUID, window: DayWindow) -> int:
        counter, _ = DailySequence.objects.get_or_create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            service_date=window.day,
            defaults={"last_number": 0},
        )
        counter = DailySequence.objects.select_for_update().get(pk=counter.pk)

        # rows written before the counter existed still count
        issued = CheckIn.objects.filter(
            tenant_id=tenant_id, facility_id=facility_id, service_date=window.day
        ).aggregate(top=Max("sequence_number"))["top"] or 0

        number = max(counter.last_number, issued) + 1
        counter.last_number = number
        counter.save(update_fields=["last_number", "updated_at"])
        return number

    @staticmethod
    def _admit(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        patient_id: UUID,
        appointment_id: Optional[UUID],
        check_in_type: str,
        notes: Optional[str],
        priority: Optional[str],
        staff_id: Optional[UUID],
        actor_id: Optional[str],
        clock: Optional[Clock],
    ) -> CheckIn:
        clock = get_clock(clock)
        now = clock.now()
        window = day_window(at=now)

        DirectoryService.require_active_patient(tenant_id=tenant_id, facility_id=facility_id, patient_id=patient_id)
        if staff_id:
            DirectoryService.require_staff(tenant_id=tenant_id, facility_id=facility_id, staff_id=staff_id)

        appointment = None
        if appointment_id:
            appointment = AppointmentSelector.get_appointment(
                tenant_id=tenant_id, facility_id=facility_id, appointment_id=appointment_id, for_update=True
            )
            if str(appointment.patient_id) != str(patient_id):
                raise BusinessConflict(
                    "Appointment belongs to a different patient.",
                    code="APPOINTMENT_PATIENT_MISMATCH",
                    details={"appointment_id": str(appointment.id)},
                )
            if appointment.status != AppointmentStatus.SCHEDULED:
                raise BusinessConflict(
                    f"Appointment cannot be checked in (status is {appointment.status}).",
                    code="APPOINTMENT_NOT_CHECKABLE",
                    details={"status": appointment.status},
                )

        # local import: queue builds on admission for add_walk_in
        from clinic_core.visits.queue import QueueService

        open_checkins = CheckIn.objects.filter(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient_id=patient_id,
            status__in=ACTIVE_CHECKIN_STATUSES,
        ).order_by("-checkin_time")

        # left open on an earlier day: nobody can call it any more
        for stale in open_checkins.filter(service_date__lt=window.day):
            entry = QueueEntry.objects.select_for_update().get(check_in=stale)
            QueueService._apply(
                entry=entry,
                target=QueueStatus.CANCELLED,
                outcome="no-show",
                reason=STALE_REASON,
                actor_id=actor_id,
                clock=FixedClock(now),
            )
            logger.info("closed stale check-in %s from %s for patient=%s", stale.id, stale.service_date, patient_id)

        existing = open_checkins.filter(service_date=window.day).first()
        if existing is not None:
            raise BusinessConflict(
                "Patient is already checked in.",
                code="DUPLICATE_CHECKIN",
                details={"checkin_id": str(existing.id), "sequence_number": existing.sequence_number},
            )

        if priority:
            priority = coerce_choice(priority, Priority, code="INVALID_PRIORITY", label="Priority")
        else:
            priority = DEFAULT_PRIORITY[check_in_type]

        number = CheckInService.next_sequence_number(tenant_id=tenant_id, facility_id=facility_id, window=window)

        checkin = CheckIn.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient_id=patient_id,
            appointment=appointment,
            checkin_time=now,
            service_date=window.day,
            check_in_type=check_in_type,
            sequence_number=number,
            staff_id=staff_id,
            status=CheckInStatus.WAITING,
            notes=(notes or "").strip(),
        )
        entry = QueueEntry.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient_id=patient_id,
            appointment=appointment,
            check_in=checkin,
            sequence_number=number,
            service_date=window.day,
            priority=priority,
            status=QueueStatus.WAITING,
            staff_id=staff_id,
            checkin_time=now,
        )

        AuditService.log(
            action="checkin.admitted",
            entity_type="CheckIn",
            entity_id=checkin.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            old_status=None,
            new_status=checkin.status,
            actor_id=actor_id,
            timestamp=now,
            metadata={"type": check_in_type, "sequence_number": number},
        )
        AuditService.log(
            action="queue.admitted",
            entity_type="QueueEntry",
            entity_id=entry.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            old_status=None,
            new_status=entry.status,
            actor_id=actor_id,
            timestamp=now,
            metadata={"priority": str(priority), "sequence_number": number},
        )

        if appointment is not None:
            AppointmentService.set_status(
                tenant_id=tenant_id,
                facility_id=facility_id,
                appointment_id=appointment.id,
                status=AppointmentStatus.CHECKED_IN,
                actor_id=actor_id,
                clock=FixedClock(now),
            )

        QueueService.refresh_estimates(tenant_id=tenant_id, facility_id=facility_id, day=window.day)
        checkin.queue_entry.refresh_from_db()

        logger.info(
            "admitted patient=%s type=%s ticket=%s day=%s", patient_id, check_in_type, number, window.day
        )
        return checkin
