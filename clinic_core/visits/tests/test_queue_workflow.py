import pytest

from clinic_core.appointments.models import Appointment
from clinic_core.appointments.services import AppointmentService
from clinic_core.audit.models import AuditEvent
from clinic_core.common.errors import BusinessConflict, IllegalTransition, NotFoundError, ValidationFailed
from clinic_core.visits.admission import CheckInService
from clinic_core.visits.models import CheckIn, QueueEntry
from clinic_core.visits.queue import QueueService
from clinic_core.visits.sync import STATUS_MAP

pytestmark = pytest.mark.django_db


@pytest.fixture
def scope(tenant_id, facility_id):
    return {"tenant_id": tenant_id, "facility_id": facility_id}


@pytest.fixture
def admit_appointment(scope, clinician, clock):
    def _admit(patient, start_time="09:00"):
        appt = AppointmentService.book(
            patient_id=patient.id,
            clinician_id=clinician.id,
            appointment_date="2024-01-10",
            start_time=start_time,
            reason="Consultation",
            clock=clock,
            **scope,
        )
        return CheckInService.admit_for_appointment(
            patient_id=patient.id, appointment_id=appt.id, clock=clock, **scope
        )

    return _admit


def _triple(entry):
    entry = QueueEntry.objects.get(pk=entry.pk)
    checkin = CheckIn.objects.get(pk=entry.check_in_id)
    appt = Appointment.objects.get(pk=entry.appointment_id) if entry.appointment_id else None
    return entry, checkin, appt


def _assert_in_sync(entry):
    entry, checkin, appt = _triple(entry)
    checkin_target, appointment_target = STATUS_MAP[entry.status]
    if checkin_target:
        assert checkin.status == checkin_target
    if appt is not None:
        assert appt.status == appointment_target


def test_call_next_on_empty_queue(scope, clock):
    with pytest.raises(NotFoundError) as exc:
        QueueService.call_next(clock=clock, **scope)
    assert exc.value.code == "NO_WAITING_PATIENTS"
    assert not AuditEvent.objects.exists()


def test_call_next_then_complete_freezes_wait_and_completes_appointment(
    scope, patient, clinician, admit_appointment, clock
):
    checkin = admit_appointment(patient)

    clock.advance(minutes=25)
    entry = QueueService.call_next(staff_id=clinician.id, clock=clock, **scope)
    assert entry.pk == checkin.queue_entry.pk
    assert entry.status == "called"
    assert entry.staff_id == clinician.id
    assert entry.called_time == clock.now()
    _assert_in_sync(entry)

    clock.advance(minutes=12, seconds=30)
    entry = QueueService.complete(queue_entry_id=entry.id, staff_id=clinician.id, clock=clock, **scope)
    assert entry.status == "completed"
    assert entry.completed_time == clock.now()

    entry, checkin, appt = _triple(entry)
    assert checkin.status == "attended"
    assert checkin.waiting_time_minutes == 37
    assert appt.status == "completed"


def test_call_next_takes_the_head_of_the_order(scope, make_patient, admit_appointment, clock):
    walk = CheckInService.admit_walk_in(patient_id=make_patient().id, clock=clock, **scope)
    urgent = admit_appointment(make_patient())

    first = QueueService.call_next(clock=clock, **scope)
    second = QueueService.call_next(clock=clock, **scope)

    assert first.pk == urgent.queue_entry.pk
    assert second.pk == walk.queue_entry.pk


def test_full_path_through_in_progress(scope, patient, admit_appointment, clock):
    checkin = admit_appointment(patient)
    entry = QueueService.call(queue_entry_id=checkin.queue_entry.id, clock=clock, **scope)
    _assert_in_sync(entry)

    entry = QueueService.start(queue_entry_id=entry.id, clock=clock, **scope)
    _assert_in_sync(entry)
    _, checkin, appt = _triple(entry)
    assert checkin.status == "called"
    assert appt.status == "in-progress"

    entry = QueueService.complete(queue_entry_id=entry.id, clock=clock, **scope)
    _assert_in_sync(entry)


def test_calling_twice_is_a_conflict(scope, patient, clock):
    checkin = CheckInService.admit_walk_in(patient_id=patient.id, clock=clock, **scope)
    QueueService.call(queue_entry_id=checkin.queue_entry.id, clock=clock, **scope)

    with pytest.raises(BusinessConflict) as exc:
        QueueService.call(queue_entry_id=checkin.queue_entry.id, clock=clock, **scope)
    assert exc.value.code == "QUEUE_ENTRY_ALREADY_CALLED"


def test_complete_requires_called_or_in_progress(scope, patient, clock):
    checkin = CheckInService.admit_walk_in(patient_id=patient.id, clock=clock, **scope)

    with pytest.raises(IllegalTransition) as exc:
        QueueService.complete(queue_entry_id=checkin.queue_entry.id, clock=clock, **scope)
    assert exc.value.code == "INVALID_QUEUE_TRANSITION"
    assert QueueEntry.objects.get(pk=checkin.queue_entry.pk).status == "waiting"


def test_cancel_with_no_show_outcome(scope, patient, admit_appointment, clock):
    checkin = admit_appointment(patient)
    clock.advance(minutes=40)

    entry = QueueService.cancel(
        queue_entry_id=checkin.queue_entry.id, outcome="no-show", reason="Left the building", clock=clock, **scope
    )
    entry, checkin, appt = _triple(entry)
    assert entry.status == "cancelled"
    assert checkin.status == "no-show"
    assert checkin.waiting_time_minutes == 40
    assert appt.status == "no-show"
    assert "Left the building" in appt.notes


def test_cancel_rejects_unknown_outcome_and_in_progress(scope, patient, clock):
    checkin = CheckInService.admit_walk_in(patient_id=patient.id, clock=clock, **scope)
    entry_id = checkin.queue_entry.id

    with pytest.raises(ValidationFailed) as exc:
        QueueService.cancel(queue_entry_id=entry_id, outcome="gone", clock=clock, **scope)
    assert exc.value.code == "INVALID_OUTCOME"

    QueueService.call(queue_entry_id=entry_id, clock=clock, **scope)
    QueueService.start(queue_entry_id=entry_id, clock=clock, **scope)
    with pytest.raises(IllegalTransition):
        QueueService.cancel(queue_entry_id=entry_id, clock=clock, **scope)


def test_waiting_time_is_frozen_once(scope, patient, clock):
    checkin = CheckInService.admit_walk_in(patient_id=patient.id, clock=clock, **scope)
    clock.advance(minutes=10)
    QueueService.cancel(queue_entry_id=checkin.queue_entry.id, clock=clock, **scope)

    clock.advance(minutes=50)
    with pytest.raises(IllegalTransition):
        QueueService.cancel(queue_entry_id=checkin.queue_entry.id, clock=clock, **scope)

    checkin.refresh_from_db()
    assert checkin.waiting_time_minutes == 10


def test_rejected_appointment_change_rolls_back_queue_transition(scope, patient, admit_appointment, clock):
    checkin = admit_appointment(patient)
    entry = QueueService.call_next(clock=clock, **scope)

    # Someone completed the appointment directly; the queue follows it.
    AppointmentService.set_status(
        appointment_id=entry.appointment_id, status="completed", clock=clock, **scope
    )
    entry, checkin, appt = _triple(entry)
    assert entry.status == "completed"
    assert checkin.status == "attended"

    # A retroactive cancel without reason is rejected and nothing moves.
    with pytest.raises(IllegalTransition) as exc:
        AppointmentService.set_status(appointment_id=appt.id, status="cancelled", clock=clock, **scope)
    assert exc.value.code == "REASON_REQUIRED_FOR_CANCELLATION"
    _assert_in_sync(entry)


def test_estimates_are_refreshed_after_each_action(scope, make_patient, clock):
    entries = [
        CheckInService.admit_walk_in(patient_id=make_patient().id, clock=clock, **scope).queue_entry
        for _ in range(3)
    ]
    assert [QueueEntry.objects.get(pk=e.pk).estimated_wait_minutes for e in entries] == [0, 15, 30]

    QueueService.call_next(clock=clock, **scope)
    assert [QueueEntry.objects.get(pk=e.pk).estimated_wait_minutes for e in entries[1:]] == [0, 15]

    QueueService.cancel(queue_entry_id=entries[1].id, clock=clock, **scope)
    assert QueueEntry.objects.get(pk=entries[2].pk).estimated_wait_minutes == 0


def test_add_walk_in_goes_through_admission(scope, patient, clock):
    entry = QueueService.add_walk_in(patient_id=patient.id, priority="high", clock=clock, **scope)

    assert entry.sequence_number == 1
    assert entry.priority == "high"
    assert CheckIn.objects.get(pk=entry.check_in_id).check_in_type == "walk-in"


def test_board_lists_waiting_then_called(scope, make_patient, clock):
    for _ in range(3):
        CheckInService.admit_walk_in(patient_id=make_patient().id, clock=clock, **scope)
    called = QueueService.call_next(clock=clock, **scope)

    board = QueueService.list_board(clock=clock, **scope)
    assert [e.status for e in board] == ["waiting", "waiting", "called"]
    assert board[-1].pk == called.pk


def test_each_transition_is_audited_once(scope, patient, admit_appointment, clock):
    checkin = admit_appointment(patient)
    entry = QueueService.call_next(clock=clock, **scope)
    QueueService.complete(queue_entry_id=entry.id, clock=clock, **scope)

    actions = list(AuditEvent.objects.filter(entity_id=entry.id).values_list("action", flat=True))
    assert sorted(actions) == ["queue.admitted", "queue.called", "queue.completed"]

    checkin_actions = AuditEvent.objects.filter(entity_id=checkin.id, action="checkin.status_changed")
    assert [(e.old_status, e.new_status) for e in checkin_actions.order_by("occurred_at", "created_at")] == [
        ("waiting", "called"),
        ("called", "attended"),
    ]
