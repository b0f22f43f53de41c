# clinic_core/appointments/selectors.py
from __future__ import annotations

from typing import Any
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import QuerySet

from clinic_core.appointments.models import Appointment, AppointmentStatus
from clinic_core.common.errors import NotFoundError, ValidationFailed
from clinic_core.common.validators import coerce_date, coerce_uuid


class AppointmentSelector:
    @staticmethod
    def get_appointment(*, tenant_id: UUID, facility_id: UUID, appointment_id: UUID, for_update: bool = False) -> Appointment:
        qs = Appointment.objects.all()
        if for_update:
            qs = qs.select_for_update()
        try:
            return qs.get(id=appointment_id, tenant_id=tenant_id, facility_id=facility_id)
        except (Appointment.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("Appointment not found.", code="APPOINTMENT_NOT_FOUND")

    @staticmethod
    def list_appointments(*, tenant_id: UUID, facility_id: UUID, params: Any) -> QuerySet[Appointment]:
        """
        Query params supported:
          - date (YYYY-MM-DD) or date_from / date_to
          - clinician_id, patient_id, department_id
          - status
        """
        qs = Appointment.objects.filter(tenant_id=tenant_id, facility_id=facility_id).select_related(
            "patient", "clinician", "department"
        )

        day = params.get("date")
        if day:
            qs = qs.filter(appointment_date=coerce_date(day, field="date"))
        date_from = params.get("date_from")
        if date_from:
            qs = qs.filter(appointment_date__gte=coerce_date(date_from, field="date_from"))
        date_to = params.get("date_to")
        if date_to:
            qs = qs.filter(appointment_date__lte=coerce_date(date_to, field="date_to"))

        for key in ("clinician_id", "patient_id", "department_id"):
            value = params.get(key)
            if value:
                qs = qs.filter(**{key: coerce_uuid(value, field=key)})

        status_param = params.get("status")
        if status_param:
            if status_param not in AppointmentStatus.values:
                raise ValidationFailed(
                    "Unknown appointment status.",
                    code="INVALID_STATUS",
                    details={"allowed": list(AppointmentStatus.values), "value": status_param},
                )
            qs = qs.filter(status=status_param)

        return qs.order_by("appointment_date", "start_time", "created_at")
