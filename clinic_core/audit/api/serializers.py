from rest_framework import serializers

from clinic_core.audit.models import AuditEvent


class AuditEventSerializer(serializers.ModelSerializer):
    # API field name "timestamp" maps to the model field "occurred_at"
    timestamp = serializers.DateTimeField(source="occurred_at", read_only=True)

    class Meta:
        model = AuditEvent
        fields = [
            "id",
            "tenant_id",
            "facility_id",
            "action",
            "entity_type",
            "entity_id",
            "old_status",
            "new_status",
            "actor_id",
            "timestamp",
            "metadata",
        ]
        read_only_fields = fields
