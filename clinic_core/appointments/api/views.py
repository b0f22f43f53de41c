# clinic_core/appointments/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic_core.appointments.api.serializers import (
    AppointmentBookSerializer,
    AppointmentRescheduleSerializer,
    AppointmentSerializer,
    AppointmentStatusSerializer,
    AppointmentUpdateSerializer,
    ConflictCheckSerializer,
    ConflictResultSerializer,
)
from clinic_core.appointments.conflicts import check_conflict
from clinic_core.appointments.models import Appointment
from clinic_core.appointments.selectors import AppointmentSelector
from clinic_core.appointments.services import AppointmentService
from clinic_core.common.api.pagination import paginate
from clinic_core.common.scope import actor_id_for, require_scope
from clinic_core.common.validators import coerce_duration


class AppointmentViewSet(viewsets.GenericViewSet):
    """
    Thin API layer:
    - scope from headers
    - request shape via serializers
    - selectors for reads, AppointmentService for writes
    Domain errors render through the shared exception handler.
    """
    permission_classes = [IsAuthenticated]
    serializer_class = AppointmentSerializer
    queryset = Appointment.objects.none()

    @extend_schema(
        tags=["Appointments"],
        parameters=[
            OpenApiParameter("date", str, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("clinician_id", str, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("patient_id", str, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("status", str, OpenApiParameter.QUERY, required=False),
        ],
        responses={200: AppointmentSerializer(many=True)},
    )
    def list(self, request):
        scope = require_scope(request)
        qs = AppointmentSelector.list_appointments(
            tenant_id=scope.tenant_id, facility_id=scope.facility_id, params=request.query_params
        )
        return paginate(request, qs, AppointmentSerializer)

    @extend_schema(tags=["Appointments"], responses={200: AppointmentSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        appt = AppointmentSelector.get_appointment(
            tenant_id=scope.tenant_id, facility_id=scope.facility_id, appointment_id=pk
        )
        return Response(AppointmentSerializer(appt).data)

    @extend_schema(
        tags=["Appointments"],
        request=AppointmentBookSerializer,
        responses={201: AppointmentSerializer},
    )
    def create(self, request):
        scope = require_scope(request)
        ser = AppointmentBookSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        appt = AppointmentService.book(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            patient_id=data["patient_id"],
            clinician_id=data["clinician_id"],
            department_id=data.get("department_id"),
            appointment_date=data["appointment_date"],
            start_time=data["start_time"],
            duration_minutes=data.get("duration_minutes"),
            priority=data.get("priority"),
            reason=data.get("reason", ""),
            notes=data.get("notes", ""),
            actor_id=actor_id_for(request),
        )
        return Response(AppointmentSerializer(appt).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Appointments"],
        request=AppointmentUpdateSerializer,
        responses={200: AppointmentSerializer},
    )
    def partial_update(self, request, pk=None):
        scope = require_scope(request)
        ser = AppointmentUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        appt = AppointmentService.update_details(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            appointment_id=pk,
            actor_id=actor_id_for(request),
            **ser.validated_data,
        )
        return Response(AppointmentSerializer(appt).data)

    @extend_schema(
        tags=["Appointments"],
        request=AppointmentRescheduleSerializer,
        responses={200: AppointmentSerializer},
    )
    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):
        scope = require_scope(request)
        ser = AppointmentRescheduleSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        appt = AppointmentService.reschedule(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            appointment_id=pk,
            actor_id=actor_id_for(request),
            **ser.validated_data,
        )
        return Response(AppointmentSerializer(appt).data)

    @extend_schema(
        tags=["Appointments"],
        request=AppointmentStatusSerializer,
        responses={200: AppointmentSerializer},
    )
    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        scope = require_scope(request)
        ser = AppointmentStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        appt = AppointmentService.set_status(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            appointment_id=pk,
            status=ser.validated_data["status"],
            reason=ser.validated_data.get("reason") or None,
            actor_id=actor_id_for(request),
        )
        return Response(AppointmentSerializer(appt).data)

    @extend_schema(
        tags=["Appointments"],
        parameters=[ConflictCheckSerializer],
        responses={200: ConflictResultSerializer},
    )
    @action(detail=False, methods=["get"])
    def conflicts(self, request):
        scope = require_scope(request)
        ser = ConflictCheckSerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        duration = data.get("duration_minutes")
        result = check_conflict(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            clinician_id=data["clinician_id"],
            appointment_date=data["appointment_date"],
            start_time=data["start_time"],
            duration_minutes=coerce_duration(duration) if duration is not None else None,
            exclude_appointment_id=data.get("exclude_appointment_id"),
        )
        return Response(
            {
                "has_conflict": result.has_conflict,
                "conflicting_appointment_ids": [str(i) for i in result.conflicting_ids],
            }
        )
