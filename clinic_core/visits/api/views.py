# clinic_core/visits/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic_core.common.api.pagination import paginate
from clinic_core.common.errors import ValidationFailed
from clinic_core.common.scope import actor_id_for, require_scope
from clinic_core.visits.admission import CheckInService
from clinic_core.visits.api.serializers import (
    CheckInCreateSerializer,
    CheckInSerializer,
    QueueAddSerializer,
    QueueCancelSerializer,
    QueueEntrySerializer,
    QueueStaffActionSerializer,
)
from clinic_core.visits.models import CheckIn, CheckInType, QueueEntry
from clinic_core.visits.queue import QueueService
from clinic_core.visits.selectors import CheckInSelector, QueueSelector


class CheckInViewSet(viewsets.GenericViewSet):
    """
    Admission endpoint. `type` picks walk-in or appointment check-in.
    """
    permission_classes = [IsAuthenticated]
    serializer_class = CheckInSerializer
    queryset = CheckIn.objects.none()

    @extend_schema(
        tags=["Check-ins"],
        parameters=[
            OpenApiParameter("date", str, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("status", str, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("patient_id", str, OpenApiParameter.QUERY, required=False),
        ],
        responses={200: CheckInSerializer(many=True)},
    )
    def list(self, request):
        scope = require_scope(request)
        qs = CheckInSelector.list_checkins(
            tenant_id=scope.tenant_id, facility_id=scope.facility_id, params=request.query_params
        )
        return paginate(request, qs, CheckInSerializer)

    @extend_schema(tags=["Check-ins"], responses={200: CheckInSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        checkin = CheckInSelector.get_checkin(tenant_id=scope.tenant_id, facility_id=scope.facility_id, checkin_id=pk)
        return Response(CheckInSerializer(checkin).data)

    @extend_schema(tags=["Check-ins"], request=CheckInCreateSerializer, responses={201: CheckInSerializer})
    def create(self, request):
        scope = require_scope(request)
        ser = CheckInCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        kind = data["type"]
        common = {
            "tenant_id": scope.tenant_id,
            "facility_id": scope.facility_id,
            "patient_id": data["patient_id"],
            "notes": data.get("notes"),
            "priority": data.get("priority"),
            "staff_id": data.get("staff_id"),
            "actor_id": actor_id_for(request),
        }

        if kind == CheckInType.WALK_IN:
            checkin = CheckInService.admit_walk_in(**common)
        elif kind == CheckInType.APPOINTMENT:
            if not data.get("appointment_id"):
                raise ValidationFailed(
                    "appointment_id is required for appointment check-ins.",
                    code="VALIDATION_ERROR",
                    details={"appointment_id": "This field is required."},
                )
            checkin = CheckInService.admit_for_appointment(appointment_id=data["appointment_id"], **common)
        else:
            raise ValidationFailed(
                "type must be one of: appointment, walk-in",
                code="INVALID_CHECKIN_TYPE",
                details={"allowed": list(CheckInType.values), "value": kind},
            )

        return Response(CheckInSerializer(checkin).data, status=status.HTTP_201_CREATED)


class QueueViewSet(viewsets.GenericViewSet):
    """
    Waiting-room queue.
    GET queue/ returns today's waiting order with estimates; ?view=board adds
    the called entries after it.
    """
    permission_classes = [IsAuthenticated]
    serializer_class = QueueEntrySerializer
    queryset = QueueEntry.objects.none()

    def _staff_id(self, request):
        ser = QueueStaffActionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return ser.validated_data.get("staff_id")

    @extend_schema(
        tags=["Queue"],
        parameters=[OpenApiParameter("view", str, OpenApiParameter.QUERY, required=False, enum=["waiting", "board"])],
        responses={200: QueueEntrySerializer(many=True)},
    )
    def list(self, request):
        scope = require_scope(request)
        if request.query_params.get("view") == "board":
            entries = QueueService.list_board(tenant_id=scope.tenant_id, facility_id=scope.facility_id)
        else:
            entries = QueueService.list_waiting(tenant_id=scope.tenant_id, facility_id=scope.facility_id)
        return Response(QueueEntrySerializer(entries, many=True).data)

    @extend_schema(tags=["Queue"], responses={200: QueueEntrySerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        entry = QueueSelector.get_entry(tenant_id=scope.tenant_id, facility_id=scope.facility_id, queue_entry_id=pk)
        return Response(QueueEntrySerializer(entry).data)

    @extend_schema(tags=["Queue"], request=QueueAddSerializer, responses={201: QueueEntrySerializer})
    @action(detail=False, methods=["post"])
    def add(self, request):
        scope = require_scope(request)
        ser = QueueAddSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        entry = QueueService.add_walk_in(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            patient_id=data["patient_id"],
            priority=data.get("priority"),
            staff_id=data.get("staff_id"),
            notes=data.get("notes"),
            actor_id=actor_id_for(request),
        )
        return Response(QueueEntrySerializer(entry).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Queue"], request=QueueStaffActionSerializer, responses={200: QueueEntrySerializer})
    @action(detail=False, methods=["post"], url_path="call-next")
    def call_next(self, request):
        scope = require_scope(request)
        entry = QueueService.call_next(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            staff_id=self._staff_id(request),
            actor_id=actor_id_for(request),
        )
        return Response(QueueEntrySerializer(entry).data)

    @extend_schema(tags=["Queue"], request=QueueStaffActionSerializer, responses={200: QueueEntrySerializer})
    @action(detail=True, methods=["post"])
    def call(self, request, pk=None):
        scope = require_scope(request)
        entry = QueueService.call(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            queue_entry_id=pk,
            staff_id=self._staff_id(request),
            actor_id=actor_id_for(request),
        )
        return Response(QueueEntrySerializer(entry).data)

    @extend_schema(tags=["Queue"], request=QueueStaffActionSerializer, responses={200: QueueEntrySerializer})
    @action(detail=True, methods=["post"])
    def start(self, request, pk=None):
        scope = require_scope(request)
        entry = QueueService.start(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            queue_entry_id=pk,
            staff_id=self._staff_id(request),
            actor_id=actor_id_for(request),
        )
        return Response(QueueEntrySerializer(entry).data)

    @extend_schema(tags=["Queue"], request=QueueStaffActionSerializer, responses={200: QueueEntrySerializer})
    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        scope = require_scope(request)
        entry = QueueService.complete(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            queue_entry_id=pk,
            staff_id=self._staff_id(request),
            actor_id=actor_id_for(request),
        )
        return Response(QueueEntrySerializer(entry).data)

    @extend_schema(tags=["Queue"], request=QueueCancelSerializer, responses={200: QueueEntrySerializer})
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        scope = require_scope(request)
        ser = QueueCancelSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        entry = QueueService.cancel(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            queue_entry_id=pk,
            reason=ser.validated_data.get("reason"),
            outcome=ser.validated_data.get("outcome") or "cancelled",
            actor_id=actor_id_for(request),
        )
        return Response(QueueEntrySerializer(entry).data)
