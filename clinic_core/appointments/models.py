# clinic_core/appointments/models.py
from django.db import models

from clinic_core.common.models import ScopedModel


class AppointmentStatus(models.TextChoices):
    SCHEDULED = "scheduled", "Scheduled"
    CHECKED_IN = "checked-in", "Checked in"
    IN_PROGRESS = "in-progress", "In progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"
    NO_SHOW = "no-show", "No show"


class Priority(models.TextChoices):
    HIGH = "high", "High"
    NORMAL = "normal", "Normal"
    LOW = "low", "Low"


# Statuses that occupy a clinician's calendar
ACTIVE_APPOINTMENT_STATUSES = (
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CHECKED_IN,
    AppointmentStatus.IN_PROGRESS,
)

TERMINAL_APPOINTMENT_STATUSES = (
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
)


class Appointment(ScopedModel):
    """
    A booked slot on a clinician's calendar.

    Never deleted: cancellation is a status transition. `notes` holds the
    free text plus the append-only status trail.
    """
    patient = models.ForeignKey(
        "directory.Patient",
        on_delete=models.PROTECT,
        related_name="appointments",
    )
    clinician = models.ForeignKey(
        "directory.StaffMember",
        on_delete=models.PROTECT,
        related_name="appointments",
    )
    department = models.ForeignKey(
        "directory.Department",
        on_delete=models.PROTECT,
        related_name="appointments",
        null=True,
        blank=True,
    )

    appointment_date = models.DateField(db_index=True)
    start_time = models.TimeField()
    duration_minutes = models.PositiveIntegerField(default=30)

    priority = models.CharField(max_length=16, choices=Priority.choices, default=Priority.NORMAL)
    reason = models.TextField()
    notes = models.TextField(blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=AppointmentStatus.choices,
        default=AppointmentStatus.SCHEDULED,
        db_index=True,
    )

    class Meta:
        db_table = "appointments_appointment"
        ordering = ["appointment_date", "start_time"]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "clinician", "appointment_date"]),
            models.Index(fields=["tenant_id", "facility_id", "patient", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(duration_minutes__gt=0),
                name="ck_appointment_duration_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.appointment_date} {self.start_time:%H:%M} {self.clinician_id} [{self.status}]"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_APPOINTMENT_STATUSES
