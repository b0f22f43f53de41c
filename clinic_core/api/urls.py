# clinic_core/api/urls.py
from __future__ import annotations

from rest_framework.routers import DefaultRouter

from clinic_core.appointments.api.views import AppointmentViewSet
from clinic_core.audit.api.views import AuditEventViewSet
from clinic_core.visits.api.views import CheckInViewSet, QueueViewSet

router = DefaultRouter()

router.register(r"appointments", AppointmentViewSet, basename="appointments")
router.register(r"checkins", CheckInViewSet, basename="checkins")
router.register(r"queue", QueueViewSet, basename="queue")
router.register(r"audit/events", AuditEventViewSet, basename="audit-events")

urlpatterns = router.urls
