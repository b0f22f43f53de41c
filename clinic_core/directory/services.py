# clinic_core/directory/services.py
from __future__ import annotations

from uuid import UUID

from clinic_core.common.errors import NotFoundError
from clinic_core.directory.models import Department, Patient, StaffMember


class DirectoryService:
    """
    The only questions the scheduling core asks the patient/staff directory.
    """

    @staticmethod
    def patient_exists(*, tenant_id: UUID, facility_id: UUID, patient_id: UUID) -> bool:
        return Patient.objects.filter(id=patient_id, tenant_id=tenant_id, facility_id=facility_id).exists()

    @staticmethod
    def patient_is_active(*, tenant_id: UUID, facility_id: UUID, patient_id: UUID) -> bool:
        return Patient.objects.filter(
            id=patient_id, tenant_id=tenant_id, facility_id=facility_id, is_active=True
        ).exists()

    @staticmethod
    def staff_exists(*, tenant_id: UUID, facility_id: UUID, staff_id: UUID) -> bool:
        return StaffMember.objects.filter(
            id=staff_id, tenant_id=tenant_id, facility_id=facility_id, is_active=True
        ).exists()

    @staticmethod
    def department_exists(*, tenant_id: UUID, facility_id: UUID, department_id: UUID) -> bool:
        return Department.objects.filter(id=department_id, tenant_id=tenant_id, facility_id=facility_id).exists()

    # -------------------------
    # Guard helpers (raise stable codes)
    # -------------------------
    @staticmethod
    def require_active_patient(*, tenant_id: UUID, facility_id: UUID, patient_id: UUID) -> None:
        if not DirectoryService.patient_exists(tenant_id=tenant_id, facility_id=facility_id, patient_id=patient_id):
            raise NotFoundError("Patient not found.", code="PATIENT_NOT_FOUND")
        if not DirectoryService.patient_is_active(tenant_id=tenant_id, facility_id=facility_id, patient_id=patient_id):
            raise NotFoundError("Patient is inactive.", code="PATIENT_INACTIVE")

    @staticmethod
    def require_staff(*, tenant_id: UUID, facility_id: UUID, staff_id: UUID) -> None:
        if not DirectoryService.staff_exists(tenant_id=tenant_id, facility_id=facility_id, staff_id=staff_id):
            raise NotFoundError("Staff member not found.", code="STAFF_NOT_FOUND")

    @staticmethod
    def require_department(*, tenant_id: UUID, facility_id: UUID, department_id: UUID) -> None:
        if not DirectoryService.department_exists(
            tenant_id=tenant_id, facility_id=facility_id, department_id=department_id
        ):
            raise NotFoundError("Department not found.", code="DEPARTMENT_NOT_FOUND")
