# clinic_core/visits/selectors.py
from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import QuerySet

from clinic_core.common.errors import NotFoundError, ValidationFailed
from clinic_core.common.validators import coerce_date, coerce_uuid
from clinic_core.visits.models import CheckIn, CheckInStatus, QueueEntry, QueueStatus


class CheckInSelector:
    @staticmethod
    def get_checkin(*, tenant_id: UUID, facility_id: UUID, checkin_id: UUID) -> CheckIn:
        try:
            return CheckIn.objects.select_related("queue_entry").get(
                id=checkin_id, tenant_id=tenant_id, facility_id=facility_id
            )
        except (CheckIn.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("Check-in not found.", code="CHECKIN_NOT_FOUND")

    @staticmethod
    def list_checkins(*, tenant_id: UUID, facility_id: UUID, params: Any) -> QuerySet[CheckIn]:
        """
        Query params supported:
          - date (YYYY-MM-DD, the service day)
          - status, patient_id, check_in_type
        """
        qs = CheckIn.objects.filter(tenant_id=tenant_id, facility_id=facility_id).select_related(
            "patient", "queue_entry"
        )

        day = params.get("date")
        if day:
            qs = qs.filter(service_date=coerce_date(day, field="date"))

        status_param = params.get("status")
        if status_param:
            if status_param not in CheckInStatus.values:
                raise ValidationFailed(
                    "Unknown check-in status.",
                    code="INVALID_STATUS",
                    details={"allowed": list(CheckInStatus.values), "value": status_param},
                )
            qs = qs.filter(status=status_param)

        patient_id = params.get("patient_id")
        if patient_id:
            qs = qs.filter(patient_id=coerce_uuid(patient_id, field="patient_id"))

        check_in_type = params.get("check_in_type")
        if check_in_type:
            qs = qs.filter(check_in_type=check_in_type)

        return qs.order_by("-service_date", "sequence_number")


class QueueSelector:
    @staticmethod
    def get_entry(*, tenant_id: UUID, facility_id: UUID, queue_entry_id: UUID, for_update: bool = False) -> QueueEntry:
        qs = QueueEntry.objects.all()
        if for_update:
            qs = qs.select_for_update()
        try:
            return qs.get(id=queue_entry_id, tenant_id=tenant_id, facility_id=facility_id)
        except (QueueEntry.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("Queue entry not found.", code="QUEUE_ENTRY_NOT_FOUND")

    @staticmethod
    def waiting_entries(*, tenant_id: UUID, facility_id: UUID, day: date) -> QuerySet[QueueEntry]:
        # storage order is irrelevant; callers sort with visits.ordering
        return QueueEntry.objects.filter(
            tenant_id=tenant_id,
            facility_id=facility_id,
            service_date=day,
            status=QueueStatus.WAITING,
        ).select_related("patient", "staff")

    @staticmethod
    def open_entry_for_appointment(*, tenant_id: UUID, facility_id: UUID, appointment_id: UUID) -> QueueEntry | None:
        return (
            QueueEntry.objects.select_for_update()
            .filter(tenant_id=tenant_id, facility_id=facility_id, appointment_id=appointment_id)
            .exclude(status__in=[QueueStatus.COMPLETED, QueueStatus.CANCELLED])
            .order_by("-checkin_time")
            .first()
        )
