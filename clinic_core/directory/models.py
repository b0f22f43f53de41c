# clinic_core/directory/models.py
from django.conf import settings
from django.db import models

from clinic_core.common.models import ScopedModel


class Patient(ScopedModel):
    """
    Registered patient. Registration and identity checks happen outside the
    scheduling core; only existence and the active flag are consulted here.
    """
    full_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)

    # facility-local medical record number
    mrn = models.CharField(max_length=64)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "directory_patient"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "mrn"],
                name="uq_patient_scope_mrn",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "full_name"]),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} ({self.mrn})"


class Department(ScopedModel):
    code = models.SlugField(max_length=64)
    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "directory_department"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "code"],
                name="uq_department_scope_code",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class StaffRole(models.TextChoices):
    DOCTOR = "doctor", "Doctor"
    NURSE = "nurse", "Nurse"
    RECEPTION = "reception", "Reception"
    ADMIN = "admin", "Admin"


class StaffMember(ScopedModel):
    """
    Clinician or front-desk staff. Booking locks this row to serialize a
    clinician's calendar.
    """
    full_name = models.CharField(max_length=255)
    role = models.CharField(max_length=32, choices=StaffRole.choices, default=StaffRole.DOCTOR)
    department = models.ForeignKey(
        Department,
        on_delete=models.PROTECT,
        related_name="staff",
        null=True,
        blank=True,
    )
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="staff_member",
        null=True,
        blank=True,
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "directory_staff_member"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "role"]),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} ({self.role})"
