import pytest

from clinic_core.appointments.models import AppointmentStatus
from clinic_core.appointments.services import AppointmentService
from clinic_core.audit.models import AuditEvent
from clinic_core.common.errors import BusinessConflict, NotFoundError, ValidationFailed

pytestmark = pytest.mark.django_db


@pytest.fixture
def book(tenant_id, facility_id, patient, clinician, clock):
    def _book(start_time, duration_minutes=30, **overrides):
        data = {
            "tenant_id": tenant_id,
            "facility_id": facility_id,
            "patient_id": patient.id,
            "clinician_id": clinician.id,
            "appointment_date": "2024-01-10",
            "start_time": start_time,
            "duration_minutes": duration_minutes,
            "reason": "Follow-up",
            "clock": clock,
        }
        data.update(overrides)
        return AppointmentService.book(**data)

    return _book


def test_booking_rejects_overlap_and_allows_touching_slot(book):
    first = book("09:00")
    assert first.status == AppointmentStatus.SCHEDULED

    with pytest.raises(BusinessConflict) as exc:
        book("09:15")
    assert exc.value.code == "SCHEDULING_CONFLICT"
    assert exc.value.details["conflicting_appointment_ids"] == [str(first.id)]

    second = book("09:30")
    assert second.status == AppointmentStatus.SCHEDULED


def test_other_clinician_is_not_blocked(book, other_clinician):
    book("09:00")
    appt = book("09:00", clinician_id=other_clinician.id)
    assert appt.clinician_id == other_clinician.id


def test_cancelled_slot_can_be_rebooked(book, tenant_id, facility_id, clock):
    first = book("09:00")
    AppointmentService.set_status(
        tenant_id=tenant_id, facility_id=facility_id, appointment_id=first.id, status="cancelled", clock=clock
    )
    assert book("09:00").status == AppointmentStatus.SCHEDULED


def test_duration_defaults_to_thirty(book):
    appt = book("14:00", duration_minutes=None)
    assert appt.duration_minutes == 30


@pytest.mark.parametrize(
    "overrides, code",
    [
        ({"appointment_date": "10/01/2024"}, "INVALID_DATE_FORMAT"),
        ({"appointment_date": "2024-02-30"}, "INVALID_DATE_FORMAT"),
        ({"start_time": "9am"}, "INVALID_TIME_FORMAT"),
        ({"duration_minutes": 0}, "INVALID_DURATION"),
        ({"priority": "urgent"}, "INVALID_PRIORITY"),
        ({"reason": "   "}, "MISSING_REASON"),
    ],
)
def test_booking_validation_codes(book, overrides, code):
    data = {"start_time": "10:00"}
    data.update(overrides)
    with pytest.raises(ValidationFailed) as exc:
        book(**data)
    assert exc.value.code == code


def test_booking_requires_known_active_parties(book, make_patient, clinician):
    inactive = make_patient(is_active=False)
    with pytest.raises(NotFoundError) as exc:
        book("10:00", patient_id=inactive.id)
    assert exc.value.code == "PATIENT_INACTIVE"

    clinician.is_active = False
    clinician.save()
    with pytest.raises(NotFoundError) as exc:
        book("10:00")
    assert exc.value.code == "STAFF_NOT_FOUND"


def test_booking_is_audited(book):
    appt = book("11:00", actor_id="42")

    event = AuditEvent.objects.get(entity_id=appt.id)
    assert event.action == "appointment.booked"
    assert event.entity_type == "Appointment"
    assert event.old_status == ""
    assert event.new_status == "scheduled"
    assert event.actor_id == "42"
