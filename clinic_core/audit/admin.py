from django.contrib import admin

from clinic_core.audit.models import AuditEvent


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = (
        "action",
        "entity_type",
        "entity_id",
        "old_status",
        "new_status",
        "actor_id",
        "occurred_at",
    )
    list_filter = ("tenant_id", "facility_id", "action", "entity_type")
    search_fields = ("action", "entity_type", "entity_id", "actor_id")
    readonly_fields = ("occurred_at",)
    ordering = ("-occurred_at",)
