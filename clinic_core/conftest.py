# clinic_core/conftest.py
import uuid
from datetime import datetime

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from clinic_core.common.clock import FixedClock
from clinic_core.directory.models import Department, Patient, StaffMember, StaffRole


def scope_headers(tenant_id, facility_id):
    """
    Standard scope headers. DRF test client requires the HTTP_ prefix.
    """
    return {
        "HTTP_X_TENANT_ID": str(tenant_id),
        "HTTP_X_FACILITY_ID": str(facility_id),
    }


@pytest.fixture
def tenant_id():
    return uuid.uuid4()


@pytest.fixture
def facility_id():
    return uuid.uuid4()


@pytest.fixture
def scoped(tenant_id, facility_id):
    return scope_headers(tenant_id, facility_id)


@pytest.fixture
def clock():
    # Wednesday 10 Jan 2024, 08:00 local time
    return FixedClock(datetime(2024, 1, 10, 8, 0))


@pytest.fixture
def use_clock(settings, clock):
    """
    Pins the configured clock, for code paths that take no clock argument
    (API views, management commands).
    """
    settings.CLINIC_CLOCK = clock
    return clock


@pytest.fixture
def user(db):
    User = get_user_model()
    return User.objects.create_user(username="frontdesk", password="testpass", is_active=True)


@pytest.fixture
def api_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def department(db, tenant_id, facility_id):
    return Department.objects.create(
        tenant_id=tenant_id,
        facility_id=facility_id,
        code="gp",
        name="General Practice",
    )


@pytest.fixture
def clinician(db, tenant_id, facility_id, department):
    return StaffMember.objects.create(
        tenant_id=tenant_id,
        facility_id=facility_id,
        full_name="Dr Naledi Dube",
        role=StaffRole.DOCTOR,
        department=department,
    )


@pytest.fixture
def other_clinician(db, tenant_id, facility_id, department):
    return StaffMember.objects.create(
        tenant_id=tenant_id,
        facility_id=facility_id,
        full_name="Dr Pieter Botha",
        role=StaffRole.DOCTOR,
        department=department,
    )


@pytest.fixture
def make_patient(db, tenant_id, facility_id):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "tenant_id": tenant_id,
            "facility_id": facility_id,
            "full_name": f"Patient {counter['n']}",
            "mrn": f"MRN-{counter['n']:04d}",
        }
        data.update(overrides)
        return Patient.objects.create(**data)

    return _make


@pytest.fixture
def patient(make_patient):
    return make_patient(full_name="Thandi Mokoena")
