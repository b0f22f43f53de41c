from django.contrib import admin

from clinic_core.directory.models import Department, Patient, StaffMember


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("full_name", "mrn", "phone", "is_active", "tenant_id", "facility_id", "created_at")
    list_filter = ("is_active",)
    search_fields = ("full_name", "mrn", "phone", "email")


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "is_active", "tenant_id", "facility_id")
    search_fields = ("code", "name")


@admin.register(StaffMember)
class StaffMemberAdmin(admin.ModelAdmin):
    list_display = ("full_name", "role", "department", "is_active", "tenant_id", "facility_id")
    list_filter = ("role", "is_active")
    search_fields = ("full_name",)
    list_select_related = ("department",)
