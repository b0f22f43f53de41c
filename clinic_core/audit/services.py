# clinic_core/audit/services.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from clinic_core.audit.models import AuditEvent
from clinic_core.common.events import publish

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditRecord:
    action: str
    entity_type: str
    entity_id: UUID
    old_status: str
    new_status: str
    actor_id: str | None
    timestamp: datetime
    tenant_id: UUID
    facility_id: UUID
    metadata: Dict[str, Any]


class AuditService:
    """
    Central audit writer.
    Persists into AuditEvent (immutable) and publishes "audit.recorded" for
    any downstream consumer.
    """

    @staticmethod
    @transaction.atomic
    def log(
        *,
        action: str,
        entity_type: str,
        entity_id: UUID,
        tenant_id: UUID,
        facility_id: UUID,
        old_status: str | None = None,
        new_status: str | None = None,
        actor_id: str | None = None,
        timestamp: datetime | None = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditRecord:
        record = AuditRecord(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_status=str(old_status or ""),
            new_status=str(new_status or ""),
            actor_id=str(actor_id) if actor_id is not None else None,
            timestamp=timestamp or timezone.now(),
            tenant_id=tenant_id,
            facility_id=facility_id,
            metadata=metadata or {},
        )

        AuditEvent.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            action=record.action,
            entity_type=record.entity_type,
            entity_id=record.entity_id,
            old_status=record.old_status,
            new_status=record.new_status,
            actor_id=record.actor_id or "",
            occurred_at=record.timestamp,
            metadata=record.metadata,
        )
        logger.debug("audit %s %s:%s %s->%s", action, entity_type, entity_id, record.old_status, record.new_status)

        payload = asdict(record)
        payload.update(
            entity_id=str(entity_id),
            tenant_id=str(tenant_id),
            facility_id=str(facility_id),
            timestamp=record.timestamp.isoformat(),
        )
        publish("audit.recorded", payload)
        return record
