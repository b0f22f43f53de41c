import uuid

import pytest

from clinic_core.appointments.services import AppointmentService
from clinic_core.audit.models import AuditEvent
from clinic_core.common.errors import BusinessConflict, NotFoundError

pytestmark = pytest.mark.django_db


@pytest.fixture
def book(tenant_id, facility_id, patient, clinician, clock):
    def _book(start_time, **overrides):
        data = {
            "tenant_id": tenant_id,
            "facility_id": facility_id,
            "patient_id": patient.id,
            "clinician_id": clinician.id,
            "appointment_date": "2024-01-10",
            "start_time": start_time,
            "reason": "Consultation",
            "clock": clock,
        }
        data.update(overrides)
        return AppointmentService.book(**data)

    return _book


def test_reschedule_ignores_its_own_slot(book, tenant_id, facility_id, clock):
    appt = book("09:00")

    moved = AppointmentService.reschedule(
        tenant_id=tenant_id,
        facility_id=facility_id,
        appointment_id=appt.id,
        start_time="09:15",
        clock=clock,
    )
    assert moved.start_time.strftime("%H:%M") == "09:15"


def test_reschedule_into_busy_slot_is_rejected(book, tenant_id, facility_id, clock):
    busy = book("10:00")
    appt = book("09:00")

    with pytest.raises(BusinessConflict) as exc:
        AppointmentService.reschedule(
            tenant_id=tenant_id,
            facility_id=facility_id,
            appointment_id=appt.id,
            start_time="10:15",
            clock=clock,
        )
    assert exc.value.code == "SCHEDULING_CONFLICT"
    assert exc.value.details["conflicting_appointment_ids"] == [str(busy.id)]

    appt.refresh_from_db()
    assert appt.start_time.strftime("%H:%M") == "09:00"


def test_reschedule_to_other_clinician(book, tenant_id, facility_id, other_clinician, clock):
    book("09:00", clinician_id=other_clinician.id, reason="Other patient slot")
    appt = book("09:00")

    with pytest.raises(BusinessConflict):
        AppointmentService.reschedule(
            tenant_id=tenant_id,
            facility_id=facility_id,
            appointment_id=appt.id,
            clinician_id=other_clinician.id,
            clock=clock,
        )

    moved = AppointmentService.reschedule(
        tenant_id=tenant_id,
        facility_id=facility_id,
        appointment_id=appt.id,
        clinician_id=other_clinician.id,
        appointment_date="2024-01-11",
        duration_minutes=45,
        actor_id="7",
        clock=clock,
    )
    assert moved.clinician_id == other_clinician.id
    assert moved.duration_minutes == 45

    event = AuditEvent.objects.get(entity_id=appt.id, action="appointment.rescheduled")
    assert event.metadata["before"]["start_time"] == "09:00"
    assert event.metadata["after"]["appointment_date"] == "2024-01-11"


def test_only_active_appointments_can_be_rescheduled(book, tenant_id, facility_id, clock):
    appt = book("09:00")
    AppointmentService.set_status(
        tenant_id=tenant_id, facility_id=facility_id, appointment_id=appt.id, status="cancelled", clock=clock
    )

    with pytest.raises(BusinessConflict) as exc:
        AppointmentService.reschedule(
            tenant_id=tenant_id, facility_id=facility_id, appointment_id=appt.id, start_time="11:00", clock=clock
        )
    assert exc.value.code == "APPOINTMENT_NOT_ACTIVE"


def test_unknown_appointment(tenant_id, facility_id, clock):
    with pytest.raises(NotFoundError) as exc:
        AppointmentService.reschedule(
            tenant_id=tenant_id, facility_id=facility_id, appointment_id=uuid.uuid4(), start_time="11:00", clock=clock
        )
    assert exc.value.code == "APPOINTMENT_NOT_FOUND"


def test_update_details_changes_reason_and_priority(book, tenant_id, facility_id, clock):
    appt = book("09:00")

    updated = AppointmentService.update_details(
        tenant_id=tenant_id,
        facility_id=facility_id,
        appointment_id=appt.id,
        reason="Repeat prescription",
        priority="high",
        clock=clock,
    )
    assert updated.reason == "Repeat prescription"
    assert updated.priority == "high"
    assert updated.status == "scheduled"
