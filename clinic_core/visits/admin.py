from django.contrib import admin

from clinic_core.visits.models import CheckIn, DailySequence, QueueEntry


@admin.register(CheckIn)
class CheckInAdmin(admin.ModelAdmin):
    list_display = (
        "service_date",
        "sequence_number",
        "patient",
        "check_in_type",
        "status",
        "checkin_time",
        "waiting_time_minutes",
    )
    list_filter = ("status", "check_in_type", "service_date", "tenant_id", "facility_id")
    search_fields = ("patient__full_name", "patient__mrn")
    readonly_fields = ("id", "sequence_number", "service_date", "waiting_time_minutes", "created_at", "updated_at")
    ordering = ("-service_date", "sequence_number")


@admin.register(QueueEntry)
class QueueEntryAdmin(admin.ModelAdmin):
    list_display = (
        "service_date",
        "sequence_number",
        "patient",
        "priority",
        "status",
        "staff",
        "estimated_wait_minutes",
        "called_time",
        "completed_time",
    )
    list_filter = ("status", "priority", "service_date", "tenant_id", "facility_id")
    search_fields = ("patient__full_name", "patient__mrn")
    readonly_fields = ("id", "check_in", "sequence_number", "service_date", "created_at", "updated_at")
    ordering = ("-service_date", "sequence_number")


@admin.register(DailySequence)
class DailySequenceAdmin(admin.ModelAdmin):
    list_display = ("service_date", "last_number", "tenant_id", "facility_id")
    list_filter = ("tenant_id", "facility_id")
    ordering = ("-service_date",)
