# clinic_core/appointments/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.appointments.models import Appointment


class AppointmentSerializer(serializers.ModelSerializer):
    patient_id = serializers.UUIDField(read_only=True)
    clinician_id = serializers.UUIDField(read_only=True)
    department_id = serializers.UUIDField(read_only=True, allow_null=True)
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)
    clinician_name = serializers.CharField(source="clinician.full_name", read_only=True)

    class Meta:
        model = Appointment
        fields = [
            "id",
            "tenant_id",
            "facility_id",
            "patient_id",
            "patient_name",
            "clinician_id",
            "clinician_name",
            "department_id",
            "appointment_date",
            "start_time",
            "duration_minutes",
            "priority",
            "reason",
            "notes",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# Dates and times are parsed here; enum checks stay in the service layer so
# they surface with their stable error codes.
class AppointmentBookSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    clinician_id = serializers.UUIDField()
    department_id = serializers.UUIDField(required=False, allow_null=True)
    appointment_date = serializers.DateField()
    start_time = serializers.TimeField()
    duration_minutes = serializers.IntegerField(required=False, allow_null=True)
    priority = serializers.CharField(required=False, default="normal")
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class AppointmentRescheduleSerializer(serializers.Serializer):
    appointment_date = serializers.DateField(required=False)
    start_time = serializers.TimeField(required=False)
    clinician_id = serializers.UUIDField(required=False)
    duration_minutes = serializers.IntegerField(required=False)


class AppointmentUpdateSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True)
    priority = serializers.CharField(required=False)
    department_id = serializers.UUIDField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class ConflictCheckSerializer(serializers.Serializer):
    clinician_id = serializers.UUIDField()
    appointment_date = serializers.DateField()
    start_time = serializers.TimeField()
    duration_minutes = serializers.IntegerField(required=False)
    exclude_appointment_id = serializers.UUIDField(required=False)


class ConflictResultSerializer(serializers.Serializer):
    has_conflict = serializers.BooleanField()
    conflicting_appointment_ids = serializers.ListField(child=serializers.UUIDField())
