# clinic_core/appointments/services.py
from __future__ import annotations

import logging
from datetime import date, time
from typing import Optional
from uuid import UUID

from django.db import transaction

from clinic_core.appointments.conflicts import check_conflict, default_duration
from clinic_core.appointments.models import Appointment, AppointmentStatus, Priority
from clinic_core.appointments.selectors import AppointmentSelector
from clinic_core.appointments.transitions import append_note, status_note, validate_transition
from clinic_core.audit.services import AuditService
from clinic_core.common.clock import Clock, get_clock, local_today
from clinic_core.common.errors import BusinessConflict
from clinic_core.common.events import publish
from clinic_core.common.validators import (
    coerce_choice,
    coerce_date,
    coerce_duration,
    coerce_time,
    require_text,
)
from clinic_core.directory.models import StaffMember
from clinic_core.directory.services import DirectoryService

logger = logging.getLogger(__name__)

ENTITY = "Appointment"


class AppointmentService:
    """
    Appointment write-model operations.

    Notes:
    - Booking and rescheduling lock the clinician's StaffMember row so the
      conflict check and the write happen under the same mutual exclusion.
    - Every status change goes through set_status (transition table, note
      trail, audit, "appointment.status_changed" event).
    """

    # -------------------------
    # Internal helpers
    # -------------------------
    @staticmethod
    def _lock_clinicians(*, tenant_id: UUID, facility_id: UUID, clinician_ids) -> None:
        # fixed order so two reschedules swapping clinicians cannot deadlock
        ordered = sorted({str(cid) for cid in clinician_ids})
        for cid in ordered:
            StaffMember.objects.select_for_update().get(id=cid, tenant_id=tenant_id, facility_id=facility_id)

    @staticmethod
    def _raise_if_conflicting(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        clinician_id: UUID,
        appointment_date: date,
        start_time: time,
        duration_minutes: int,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> None:
        result = check_conflict(
            tenant_id=tenant_id,
            facility_id=facility_id,
            clinician_id=clinician_id,
            appointment_date=appointment_date,
            start_time=start_time,
            duration_minutes=duration_minutes,
            exclude_appointment_id=exclude_appointment_id,
        )
        if result.has_conflict:
            raise BusinessConflict(
                "The clinician already has an appointment in this time slot.",
                code="SCHEDULING_CONFLICT",
                details={"conflicting_appointment_ids": [str(i) for i in result.conflicting_ids]},
            )

    # -------------------------
    # Booking
    # -------------------------
    @staticmethod
    @transaction.atomic
    def book(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        patient_id: UUID,
        clinician_id: UUID,
        appointment_date,
        start_time,
        reason: str,
        duration_minutes=None,
        department_id: Optional[UUID] = None,
        priority: str = Priority.NORMAL,
        notes: str = "",
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> Appointment:
        appointment_date = coerce_date(appointment_date)
        start_time = coerce_time(start_time)
        duration = coerce_duration(duration_minutes if duration_minutes is not None else default_duration())
        priority = coerce_choice(priority or Priority.NORMAL, Priority, code="INVALID_PRIORITY", label="Priority")
        reason = require_text(reason, code="MISSING_REASON", label="Reason")

        DirectoryService.require_active_patient(tenant_id=tenant_id, facility_id=facility_id, patient_id=patient_id)
        DirectoryService.require_staff(tenant_id=tenant_id, facility_id=facility_id, staff_id=clinician_id)
        if department_id:
            DirectoryService.require_department(
                tenant_id=tenant_id, facility_id=facility_id, department_id=department_id
            )

        AppointmentService._lock_clinicians(tenant_id=tenant_id, facility_id=facility_id, clinician_ids=[clinician_id])
        AppointmentService._raise_if_conflicting(
            tenant_id=tenant_id,
            facility_id=facility_id,
            clinician_id=clinician_id,
            appointment_date=appointment_date,
            start_time=start_time,
            duration_minutes=duration,
        )

        appt = Appointment.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient_id=patient_id,
            clinician_id=clinician_id,
            department_id=department_id,
            appointment_date=appointment_date,
            start_time=start_time,
            duration_minutes=duration,
            priority=priority,
            reason=reason,
            notes=(notes or "").strip(),
            status=AppointmentStatus.SCHEDULED,
        )

        AuditService.log(
            action="appointment.booked",
            entity_type=ENTITY,
            entity_id=appt.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            old_status=None,
            new_status=appt.status,
            actor_id=actor_id,
            timestamp=get_clock(clock).now(),
            metadata={
                "clinician_id": str(clinician_id),
                "appointment_date": appointment_date.isoformat(),
                "start_time": start_time.strftime("%H:%M"),
                "duration_minutes": duration,
            },
        )
        logger.info(
            "appointment booked id=%s clinician=%s %s %s (%s min)",
            appt.id, clinician_id, appointment_date, start_time, duration,
        )
        return appt

    # -------------------------
    # Rescheduling
    # -------------------------
    @staticmethod
    @transaction.atomic
    def reschedule(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        appointment_id: UUID,
        appointment_date=None,
        start_time=None,
        clinician_id: Optional[UUID] = None,
        duration_minutes=None,
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> Appointment:
        appt = AppointmentSelector.get_appointment(
            tenant_id=tenant_id, facility_id=facility_id, appointment_id=appointment_id, for_update=True
        )
        if not appt.is_active:
            raise BusinessConflict(
                f"Only active appointments can be rescheduled (status is {appt.status}).",
                code="APPOINTMENT_NOT_ACTIVE",
                details={"status": appt.status},
            )

        new_date = coerce_date(appointment_date) if appointment_date is not None else appt.appointment_date
        new_time = coerce_time(start_time) if start_time is not None else appt.start_time
        new_duration = coerce_duration(duration_minutes) if duration_minutes is not None else appt.duration_minutes
        new_clinician_id = clinician_id or appt.clinician_id

        if str(new_clinician_id) != str(appt.clinician_id):
            DirectoryService.require_staff(tenant_id=tenant_id, facility_id=facility_id, staff_id=new_clinician_id)

        AppointmentService._lock_clinicians(
            tenant_id=tenant_id,
            facility_id=facility_id,
            clinician_ids=[appt.clinician_id, new_clinician_id],
        )
        AppointmentService._raise_if_conflicting(
            tenant_id=tenant_id,
            facility_id=facility_id,
            clinician_id=new_clinician_id,
            appointment_date=new_date,
            start_time=new_time,
            duration_minutes=new_duration,
            exclude_appointment_id=appt.id,
        )

        before = {
            "clinician_id": str(appt.clinician_id),
            "appointment_date": appt.appointment_date.isoformat(),
            "start_time": appt.start_time.strftime("%H:%M"),
            "duration_minutes": appt.duration_minutes,
        }

        appt.clinician_id = new_clinician_id
        appt.appointment_date = new_date
        appt.start_time = new_time
        appt.duration_minutes = new_duration
        appt.save(update_fields=["clinician", "appointment_date", "start_time", "duration_minutes", "updated_at"])

        AuditService.log(
            action="appointment.rescheduled",
            entity_type=ENTITY,
            entity_id=appt.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            old_status=appt.status,
            new_status=appt.status,
            actor_id=actor_id,
            timestamp=get_clock(clock).now(),
            metadata={
                "before": before,
                "after": {
                    "clinician_id": str(new_clinician_id),
                    "appointment_date": new_date.isoformat(),
                    "start_time": new_time.strftime("%H:%M"),
                    "duration_minutes": new_duration,
                },
            },
        )
        logger.info("appointment rescheduled id=%s to %s %s", appt.id, new_date, new_time)
        return appt

    # -------------------------
    # Detail edits (no status / slot change)
    # -------------------------
    @staticmethod
    @transaction.atomic
    def update_details(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        appointment_id: UUID,
        reason: Optional[str] = None,
        priority: Optional[str] = None,
        department_id: Optional[UUID] = None,
        notes: Optional[str] = None,
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> Appointment:
        appt = AppointmentSelector.get_appointment(
            tenant_id=tenant_id, facility_id=facility_id, appointment_id=appointment_id, for_update=True
        )
        changed: list[str] = []

        if reason is not None:
            appt.reason = require_text(reason, code="MISSING_REASON", label="Reason")
            changed.append("reason")

        if priority is not None:
            appt.priority = coerce_choice(priority, Priority, code="INVALID_PRIORITY", label="Priority")
            changed.append("priority")

        if department_id is not None:
            DirectoryService.require_department(
                tenant_id=tenant_id, facility_id=facility_id, department_id=department_id
            )
            appt.department_id = department_id
            changed.append("department")

        if notes is not None:
            appt.notes = notes
            changed.append("notes")

        if not changed:
            return appt

        appt.save(update_fields=[*changed, "updated_at"])
        AuditService.log(
            action="appointment.updated",
            entity_type=ENTITY,
            entity_id=appt.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            old_status=appt.status,
            new_status=appt.status,
            actor_id=actor_id,
            timestamp=get_clock(clock).now(),
            metadata={"fields": changed},
        )
        return appt

    # -------------------------
    # State machine
    # -------------------------
    @staticmethod
    @transaction.atomic
    def set_status(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        appointment_id: UUID,
        status: str,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> Appointment:
        """
        Moves the appointment along its transition table.
        Setting the current status again is a no-op (no note, no audit, no event).
        """
        target = coerce_choice(status, AppointmentStatus, code="INVALID_STATUS", label="Status")
        clock = get_clock(clock)

        appt = AppointmentSelector.get_appointment(
            tenant_id=tenant_id, facility_id=facility_id, appointment_id=appointment_id, for_update=True
        )
        old = appt.status

        if not validate_transition(
            current=old,
            target=target,
            appointment_date=appt.appointment_date,
            today=local_today(clock),
            reason=reason or "",
        ):
            return appt

        at = clock.now()
        appt.status = target
        appt.notes = append_note(appt.notes, status_note(at=at, old=old, new=target, reason=reason or ""))
        appt.save(update_fields=["status", "notes", "updated_at"])

        AuditService.log(
            action="appointment.status_changed",
            entity_type=ENTITY,
            entity_id=appt.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            old_status=old,
            new_status=target,
            actor_id=actor_id,
            timestamp=at,
            metadata={"reason": reason} if reason else None,
        )
        logger.info("appointment %s status %s -> %s", appt.id, old, target)

        # Subscribers run inside this transaction; a rejection rolls this change back.
        publish(
            "appointment.status_changed",
            {
                "tenant_id": str(tenant_id),
                "facility_id": str(facility_id),
                "appointment_id": str(appt.id),
                "old_status": old,
                "new_status": str(target),
                "reason": reason or "",
                "actor_id": actor_id,
                "occurred_at": at.isoformat(),
            },
        )
        return appt
