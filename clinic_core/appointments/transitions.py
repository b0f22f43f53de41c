# clinic_core/appointments/transitions.py
from __future__ import annotations

from datetime import date, datetime

from clinic_core.appointments.models import AppointmentStatus as S
from clinic_core.common.errors import IllegalTransition

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    S.SCHEDULED: frozenset({S.CHECKED_IN, S.CANCELLED, S.NO_SHOW}),
    S.CHECKED_IN: frozenset({S.IN_PROGRESS, S.COMPLETED, S.CANCELLED, S.NO_SHOW}),
    S.IN_PROGRESS: frozenset({S.COMPLETED, S.CANCELLED, S.NO_SHOW}),
    S.COMPLETED: frozenset({S.CANCELLED}),  # retroactive, reason required
    S.CANCELLED: frozenset(),
    S.NO_SHOW: frozenset(),
}


def validate_transition(*, current: str, target: str, appointment_date: date, today: date, reason: str = "") -> bool:
    """
    Returns False when the change is a no-op, True when it may proceed.
    Raises IllegalTransition otherwise.
    """
    if current == target:
        return False

    if current == S.COMPLETED:
        if target != S.CANCELLED:
            raise IllegalTransition(
                "A completed appointment can only be cancelled.",
                code="COMPLETED_APPOINTMENT_IMMUTABLE",
                details={"from": current, "to": target},
            )
        if not (reason or "").strip():
            raise IllegalTransition(
                "Cancelling a completed appointment requires a reason.",
                code="REASON_REQUIRED_FOR_CANCELLATION",
                details={"from": current, "to": target},
            )
        return True

    if current in (S.CANCELLED, S.NO_SHOW):
        raise IllegalTransition(
            f"Appointment is {current} and can no longer change status.",
            details={"from": current, "to": target},
        )

    if target == S.COMPLETED and appointment_date > today:
        raise IllegalTransition(
            "Future appointments cannot be marked completed.",
            code="FUTURE_APPOINTMENT_CANNOT_BE_COMPLETED",
            details={"appointment_date": appointment_date.isoformat(), "today": today.isoformat()},
        )

    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise IllegalTransition(
            f"Cannot change status from {current} to {target}.",
            details={"from": current, "to": target},
        )
    return True


def status_note(*, at: datetime, old: str, new: str, reason: str = "") -> str:
    stamp = at.isoformat(timespec="seconds")
    reason = (reason or "").strip()
    if reason:
        return f"[{stamp}] Status changed to {new}: {reason}"
    return f"[{stamp}] Status changed from {old} to {new}"


def append_note(existing: str, line: str) -> str:
    if not existing:
        return line
    return f"{existing}\n{line}"
