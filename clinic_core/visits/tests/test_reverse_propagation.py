import pytest

from clinic_core.appointments.services import AppointmentService
from clinic_core.common.errors import IllegalTransition
from clinic_core.visits.admission import CheckInService
from clinic_core.visits.models import CheckIn, QueueEntry
from clinic_core.visits.queue import QueueService

pytestmark = pytest.mark.django_db


@pytest.fixture
def scope(tenant_id, facility_id):
    return {"tenant_id": tenant_id, "facility_id": facility_id}


@pytest.fixture
def checked_in(scope, patient, clinician, clock):
    appt = AppointmentService.book(
        patient_id=patient.id,
        clinician_id=clinician.id,
        appointment_date="2024-01-10",
        start_time="09:00",
        reason="Consultation",
        clock=clock,
        **scope,
    )
    checkin = CheckInService.admit_for_appointment(
        patient_id=patient.id, appointment_id=appt.id, clock=clock, **scope
    )
    return appt, checkin.queue_entry


def test_cancelling_appointment_cancels_waiting_entry(scope, checked_in, clock):
    appt, entry = checked_in
    clock.advance(minutes=5)

    AppointmentService.set_status(
        appointment_id=appt.id, status="cancelled", reason="Patient called in sick", clock=clock, **scope
    )

    entry.refresh_from_db()
    checkin = CheckIn.objects.get(pk=entry.check_in_id)
    assert entry.status == "cancelled"
    assert checkin.status == "cancelled"
    assert checkin.waiting_time_minutes == 5


def test_no_show_on_appointment_marks_checkin_no_show(scope, checked_in, clock):
    appt, entry = checked_in
    QueueService.call(queue_entry_id=entry.id, clock=clock, **scope)

    AppointmentService.set_status(appointment_id=appt.id, status="no-show", clock=clock, **scope)

    assert CheckIn.objects.get(pk=entry.check_in_id).status == "no-show"
    assert QueueEntry.objects.get(pk=entry.pk).status == "cancelled"


def test_starting_appointment_starts_called_entry(scope, checked_in, clock):
    appt, entry = checked_in
    QueueService.call(queue_entry_id=entry.id, clock=clock, **scope)

    AppointmentService.set_status(appointment_id=appt.id, status="in-progress", clock=clock, **scope)

    assert QueueEntry.objects.get(pk=entry.pk).status == "in-progress"


def test_entry_that_cannot_follow_blocks_the_appointment_change(scope, checked_in, clock):
    appt, entry = checked_in

    with pytest.raises(IllegalTransition) as exc:
        AppointmentService.set_status(appointment_id=appt.id, status="completed", clock=clock, **scope)
    assert exc.value.code == "INVALID_QUEUE_TRANSITION"

    appt.refresh_from_db()
    entry.refresh_from_db()
    assert appt.status == "checked-in"
    assert entry.status == "waiting"
