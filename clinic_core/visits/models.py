# clinic_core/visits/models.py
from django.db import models

from clinic_core.appointments.models import Priority
from clinic_core.common.models import ScopedModel


class CheckInType(models.TextChoices):
    APPOINTMENT = "appointment", "Appointment"
    WALK_IN = "walk-in", "Walk-in"


class CheckInStatus(models.TextChoices):
    WAITING = "waiting", "Waiting"
    CALLED = "called", "Called"
    ATTENDED = "attended", "Attended"
    CANCELLED = "cancelled", "Cancelled"
    NO_SHOW = "no-show", "No show"


class QueueStatus(models.TextChoices):
    WAITING = "waiting", "Waiting"
    CALLED = "called", "Called"
    IN_PROGRESS = "in-progress", "In progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


ACTIVE_CHECKIN_STATUSES = (CheckInStatus.WAITING, CheckInStatus.CALLED)
TERMINAL_CHECKIN_STATUSES = (CheckInStatus.ATTENDED, CheckInStatus.CANCELLED, CheckInStatus.NO_SHOW)
TERMINAL_QUEUE_STATUSES = (QueueStatus.COMPLETED, QueueStatus.CANCELLED)


class DailySequence(ScopedModel):
    """
    Per (scope, day) ticket counter. Admissions lock this row to serialize
    numbering for the day.
    """
    service_date = models.DateField()
    last_number = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "visits_daily_sequence"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "service_date"],
                name="uq_daily_sequence_scope_day",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.service_date}: {self.last_number}"


class CheckIn(ScopedModel):
    patient = models.ForeignKey("directory.Patient", on_delete=models.PROTECT, related_name="checkins")
    appointment = models.ForeignKey(
        "appointments.Appointment",
        on_delete=models.PROTECT,
        related_name="checkins",
        null=True,
        blank=True,
    )

    checkin_time = models.DateTimeField()
    # local calendar day of checkin_time; scopes the ticket numbering
    service_date = models.DateField(db_index=True)
    check_in_type = models.CharField(max_length=16, choices=CheckInType.choices)
    sequence_number = models.PositiveIntegerField()

    staff = models.ForeignKey(
        "directory.StaffMember",
        on_delete=models.SET_NULL,
        related_name="checkins",
        null=True,
        blank=True,
    )

    # Actual wait, set once when a terminal status is first reached
    waiting_time_minutes = models.PositiveIntegerField(null=True, blank=True)

    status = models.CharField(
        max_length=16,
        choices=CheckInStatus.choices,
        default=CheckInStatus.WAITING,
        db_index=True,
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "visits_checkin"
        ordering = ["service_date", "sequence_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "service_date", "sequence_number"],
                name="uq_checkin_scope_day_sequence",
            ),
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "patient"],
                condition=models.Q(status__in=["waiting", "called"]),
                name="uq_checkin_one_active_per_patient",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "service_date", "status"]),
        ]

    def __str__(self) -> str:
        return f"#{self.sequence_number} {self.service_date} [{self.status}]"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_CHECKIN_STATUSES


class QueueEntry(ScopedModel):
    patient = models.ForeignKey("directory.Patient", on_delete=models.PROTECT, related_name="queue_entries")
    appointment = models.ForeignKey(
        "appointments.Appointment",
        on_delete=models.PROTECT,
        related_name="queue_entries",
        null=True,
        blank=True,
    )
    check_in = models.OneToOneField(CheckIn, on_delete=models.PROTECT, related_name="queue_entry")

    sequence_number = models.PositiveIntegerField()
    service_date = models.DateField(db_index=True)
    priority = models.CharField(max_length=16, choices=Priority.choices, default=Priority.NORMAL)

    status = models.CharField(
        max_length=16,
        choices=QueueStatus.choices,
        default=QueueStatus.WAITING,
        db_index=True,
    )
    staff = models.ForeignKey(
        "directory.StaffMember",
        on_delete=models.SET_NULL,
        related_name="queue_entries",
        null=True,
        blank=True,
    )

    checkin_time = models.DateTimeField()
    called_time = models.DateTimeField(null=True, blank=True)
    # stamped when the entry closes (completed or cancelled)
    completed_time = models.DateTimeField(null=True, blank=True)

    # Heuristic: patients ahead x average minutes per patient
    estimated_wait_minutes = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "visits_queue_entry"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "service_date", "sequence_number"],
                name="uq_queue_entry_scope_day_sequence",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "service_date", "status"]),
        ]

    def __str__(self) -> str:
        return f"#{self.sequence_number} {self.priority} [{self.status}]"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_QUEUE_STATUSES
