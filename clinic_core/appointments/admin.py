from django.contrib import admin

from clinic_core.appointments.models import Appointment


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = (
        "appointment_date",
        "start_time",
        "duration_minutes",
        "clinician",
        "patient",
        "priority",
        "status",
    )
    list_filter = ("status", "priority", "appointment_date", "tenant_id", "facility_id")
    search_fields = ("patient__full_name", "patient__mrn", "clinician__full_name", "reason")
    readonly_fields = ("id", "status", "notes", "created_at", "updated_at")
    ordering = ("-appointment_date", "start_time")

    fieldsets = (
        ("Scope", {"fields": ("id", "tenant_id", "facility_id")}),
        ("Slot", {"fields": ("clinician", "department", "appointment_date", "start_time", "duration_minutes")}),
        ("Visit", {"fields": ("patient", "priority", "reason", "status", "notes")}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )
