import uuid
from datetime import date, time

import pytest

from clinic_core.appointments.conflicts import BookedSlot, check_conflict, find_conflicts
from clinic_core.appointments.models import Appointment, AppointmentStatus

DAY = date(2024, 1, 10)


def _slot(hh, mm, minutes=30, appointment_id=None):
    return BookedSlot(appointment_id=appointment_id or uuid.uuid4(), start_time=time(hh, mm), duration_minutes=minutes)


def test_overlap_is_detected():
    booked = _slot(9, 0)
    result = find_conflicts(BookedSlot(None, time(9, 15), 30), [booked], day=DAY)

    assert result.has_conflict
    assert result.conflicting_ids == (booked.appointment_id,)


def test_touching_endpoints_do_not_conflict():
    booked = [_slot(9, 0), _slot(10, 0)]
    result = find_conflicts(BookedSlot(None, time(9, 30), 30), booked, day=DAY)

    assert not result.has_conflict
    assert result.conflicting_ids == ()


def test_candidate_spanning_several_slots_reports_all():
    booked = [_slot(9, 0), _slot(9, 30), _slot(11, 0)]
    result = find_conflicts(BookedSlot(None, time(9, 10), 60), booked, day=DAY)

    assert set(result.conflicting_ids) == {booked[0].appointment_id, booked[1].appointment_id}


def test_missing_duration_defaults_to_thirty_minutes():
    booked = BookedSlot(uuid.uuid4(), time(9, 0), None)

    assert find_conflicts(BookedSlot(None, time(9, 29), 5), [booked], day=DAY).has_conflict
    assert not find_conflicts(BookedSlot(None, time(9, 30), 5), [booked], day=DAY).has_conflict


def test_candidate_never_conflicts_with_itself():
    own_id = uuid.uuid4()
    booked = [_slot(9, 0, appointment_id=own_id)]
    candidate = BookedSlot(own_id, time(9, 10), 30)

    assert not find_conflicts(candidate, booked, day=DAY).has_conflict


@pytest.mark.django_db
def test_check_conflict_only_counts_active_appointments(tenant_id, facility_id, patient, clinician):
    def _appt(start, status):
        return Appointment.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient=patient,
            clinician=clinician,
            appointment_date=DAY,
            start_time=start,
            duration_minutes=30,
            reason="Checkup",
            status=status,
        )

    active = _appt(time(9, 0), AppointmentStatus.CHECKED_IN)
    _appt(time(9, 0), AppointmentStatus.CANCELLED)
    _appt(time(9, 0), AppointmentStatus.COMPLETED)

    result = check_conflict(
        tenant_id=tenant_id,
        facility_id=facility_id,
        clinician_id=clinician.id,
        appointment_date=DAY,
        start_time=time(9, 15),
        duration_minutes=30,
    )
    assert result.conflicting_ids == (active.id,)

    excluded = check_conflict(
        tenant_id=tenant_id,
        facility_id=facility_id,
        clinician_id=clinician.id,
        appointment_date=DAY,
        start_time=time(9, 15),
        duration_minutes=30,
        exclude_appointment_id=active.id,
    )
    assert not excluded.has_conflict
