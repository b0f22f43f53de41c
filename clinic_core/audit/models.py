# clinic_core/audit/models.py
from django.core.exceptions import ValidationError
from django.db import models

from clinic_core.common.models import ScopedModel


class AuditEvent(ScopedModel):
    """
    Immutable audit record of one entity status change.
    """
    action = models.CharField(max_length=128, db_index=True)  # e.g. "queue.called"
    entity_type = models.CharField(max_length=64, db_index=True)  # e.g. "QueueEntry"
    entity_id = models.UUIDField(db_index=True)

    old_status = models.CharField(max_length=32, blank=True, default="")
    new_status = models.CharField(max_length=32, blank=True, default="")

    # staff member or API user id, stringified
    actor_id = models.CharField(max_length=64, blank=True, default="", db_index=True)

    occurred_at = models.DateTimeField(db_index=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "audit_audit_event"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "occurred_at"]),
            models.Index(fields=["entity_type", "entity_id"]),
            models.Index(fields=["tenant_id", "facility_id", "action"]),
        ]

    def __str__(self) -> str:
        return f"{self.action} {self.entity_type}:{self.entity_id} {self.old_status}->{self.new_status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("AuditEvent is immutable and cannot be modified once created.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("AuditEvent is immutable and cannot be deleted.")
