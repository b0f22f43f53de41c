from dataclasses import dataclass

from clinic_core.visits.ordering import estimate_wait, order_waiting, queue_sort_key


@dataclass
class Ticket:
    priority: str
    sequence_number: int


def test_priority_first_then_sequence():
    tickets = [Ticket("normal", 4), Ticket("high", 5), Ticket("low", 1), Ticket("normal", 2), Ticket("high", 7)]

    ordered = order_waiting(tickets)

    assert [(t.priority, t.sequence_number) for t in ordered] == [
        ("high", 5),
        ("high", 7),
        ("normal", 2),
        ("normal", 4),
        ("low", 1),
    ]


def test_sorting_is_idempotent():
    tickets = [Ticket("low", 3), Ticket("normal", 1), Ticket("high", 9), Ticket("normal", 2)]

    once = order_waiting(tickets)
    twice = order_waiting(once)

    assert once == twice


def test_order_does_not_depend_on_input_order():
    tickets = [Ticket("normal", 1), Ticket("high", 2), Ticket("normal", 3)]

    assert order_waiting(tickets) == order_waiting(list(reversed(tickets)))


def test_sort_key_ranks():
    assert queue_sort_key(Ticket("high", 10)) < queue_sort_key(Ticket("normal", 1))
    assert queue_sort_key(Ticket("normal", 10)) < queue_sort_key(Ticket("low", 1))


def test_estimate_is_patients_ahead_times_average(settings):
    settings.CLINIC_AVG_MINUTES_PER_PATIENT = 15

    assert estimate_wait(0) == 0
    assert estimate_wait(3) == 45
    assert estimate_wait(2, per_patient=10) == 20
