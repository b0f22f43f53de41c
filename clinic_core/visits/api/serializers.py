# clinic_core/visits/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.visits.models import CheckIn, QueueEntry


class QueueEntrySerializer(serializers.ModelSerializer):
    patient_id = serializers.UUIDField(read_only=True)
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)
    appointment_id = serializers.UUIDField(read_only=True, allow_null=True)
    check_in_id = serializers.UUIDField(read_only=True)
    staff_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = QueueEntry
        fields = [
            "id",
            "tenant_id",
            "facility_id",
            "patient_id",
            "patient_name",
            "appointment_id",
            "check_in_id",
            "sequence_number",
            "service_date",
            "priority",
            "status",
            "staff_id",
            "checkin_time",
            "called_time",
            "completed_time",
            "estimated_wait_minutes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CheckInSerializer(serializers.ModelSerializer):
    patient_id = serializers.UUIDField(read_only=True)
    appointment_id = serializers.UUIDField(read_only=True, allow_null=True)
    staff_id = serializers.UUIDField(read_only=True, allow_null=True)
    queue_entry = QueueEntrySerializer(read_only=True)

    class Meta:
        model = CheckIn
        fields = [
            "id",
            "tenant_id",
            "facility_id",
            "patient_id",
            "appointment_id",
            "check_in_type",
            "checkin_time",
            "service_date",
            "sequence_number",
            "staff_id",
            "waiting_time_minutes",
            "status",
            "notes",
            "queue_entry",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CheckInCreateSerializer(serializers.Serializer):
    type = serializers.CharField(default="walk-in")
    patient_id = serializers.UUIDField()
    appointment_id = serializers.UUIDField(required=False, allow_null=True)
    priority = serializers.CharField(required=False, allow_null=True)
    staff_id = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class QueueAddSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    priority = serializers.CharField(required=False, allow_null=True)
    staff_id = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class QueueStaffActionSerializer(serializers.Serializer):
    staff_id = serializers.UUIDField(required=False, allow_null=True)


class QueueCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    outcome = serializers.CharField(required=False, default="cancelled")
