# clinic_core/visits/queue.py
from __future__ import annotations

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from django.db import transaction

from clinic_core.audit.services import AuditService
from clinic_core.common.clock import Clock, day_window, get_clock
from clinic_core.common.errors import BusinessConflict, NotFoundError
from clinic_core.directory.services import DirectoryService
from clinic_core.visits.admission import CheckInService
from clinic_core.visits.models import QueueEntry, QueueStatus
from clinic_core.visits.ordering import avg_minutes_per_patient, estimate_wait, order_waiting
from clinic_core.visits.selectors import QueueSelector
from clinic_core.visits.sync import StatusSynchronizer, normalize_outcome
from clinic_core.visits.transitions import validate_queue_transition

logger = logging.getLogger(__name__)

ENTITY = "QueueEntry"
CLOSE_OUT_REASON = "Not seen by end of day"


class QueueService:
    """
    Waiting-room queue: ordering, staff actions and wait estimates.

    Every transition runs in one transaction together with the
    StatusSynchronizer, so entry, check-in and appointment move as a unit.
    """

    # -------------------------
    # Reads
    # -------------------------
    @staticmethod
    def list_waiting(*, tenant_id: UUID, facility_id: UUID, clock: Optional[Clock] = None) -> list[QueueEntry]:
        """
        Today's waiting entries in queue order, each carrying a freshly
        computed `estimated_wait_minutes` (not written back).
        """
        window = day_window(clock)
        entries = order_waiting(
            QueueSelector.waiting_entries(tenant_id=tenant_id, facility_id=facility_id, day=window.day)
        )
        per_patient = avg_minutes_per_patient()
        for position, entry in enumerate(entries):
            entry.estimated_wait_minutes = estimate_wait(position, per_patient=per_patient)
        return entries

    @staticmethod
    def list_board(*, tenant_id: UUID, facility_id: UUID, clock: Optional[Clock] = None) -> list[QueueEntry]:
        """Waiting entries in order, followed by called ones (by called time)."""
        window = day_window(clock)
        waiting = QueueService.list_waiting(tenant_id=tenant_id, facility_id=facility_id, clock=clock)
        called = list(
            QueueEntry.objects.filter(
                tenant_id=tenant_id,
                facility_id=facility_id,
                service_date=window.day,
                status=QueueStatus.CALLED,
            )
            .select_related("patient", "staff")
            .order_by("called_time", "sequence_number")
        )
        return waiting + called

    # -------------------------
    # Estimates
    # -------------------------
    @staticmethod
    def refresh_estimates(*, tenant_id: UUID, facility_id: UUID, day: date) -> int:
        entries = order_waiting(
            QueueEntry.objects.filter(
                tenant_id=tenant_id,
                facility_id=facility_id,
                service_date=day,
                status=QueueStatus.WAITING,
            )
        )
        per_patient = avg_minutes_per_patient()
        stale = []
        for position, entry in enumerate(entries):
            estimate = estimate_wait(position, per_patient=per_patient)
            if entry.estimated_wait_minutes != estimate:
                entry.estimated_wait_minutes = estimate
                stale.append(entry)
        if stale:
            QueueEntry.objects.bulk_update(stale, ["estimated_wait_minutes"])
        return len(stale)

    # -------------------------
    # Internal helpers
    # -------------------------
    @staticmethod
    def _get_entry(*, tenant_id: UUID, facility_id: UUID, queue_entry_id: UUID) -> QueueEntry:
        return QueueSelector.get_entry(
            tenant_id=tenant_id, facility_id=facility_id, queue_entry_id=queue_entry_id, for_update=True
        )

    @staticmethod
    def _apply(
        *,
        entry: QueueEntry,
        target: str,
        staff_id: Optional[UUID] = None,
        outcome: Optional[str] = None,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> QueueEntry:
        validate_queue_transition(current=entry.status, target=target)
        if staff_id:
            DirectoryService.require_staff(tenant_id=entry.tenant_id, facility_id=entry.facility_id, staff_id=staff_id)

        at = get_clock(clock).now()
        old = entry.status
        values = {"status": target, "updated_at": at}
        if staff_id:
            values["staff_id"] = staff_id
        if target == QueueStatus.CALLED:
            values["called_time"] = at
        if target in (QueueStatus.COMPLETED, QueueStatus.CANCELLED):
            values["completed_time"] = at

        # compare-and-swap on status: a concurrent writer makes this a no-op
        swapped = QueueEntry.objects.filter(pk=entry.pk, status=old).update(**values)
        if not swapped:
            entry.refresh_from_db()
            if target == QueueStatus.CALLED and entry.status == QueueStatus.CALLED:
                raise BusinessConflict(
                    "Queue entry has already been called.",
                    code="QUEUE_ENTRY_ALREADY_CALLED",
                    details={"queue_entry_id": str(entry.id)},
                )
            validate_queue_transition(current=entry.status, target=target)
            return QueueService._apply(
                entry=entry,
                target=target,
                staff_id=staff_id,
                outcome=outcome,
                reason=reason,
                actor_id=actor_id,
                clock=clock,
            )

        entry.refresh_from_db()
        metadata = {"sequence_number": entry.sequence_number}
        if outcome:
            metadata["outcome"] = outcome
        if reason:
            metadata["reason"] = reason
        AuditService.log(
            action=f"queue.{target}",
            entity_type=ENTITY,
            entity_id=entry.id,
            tenant_id=entry.tenant_id,
            facility_id=entry.facility_id,
            old_status=old,
            new_status=target,
            actor_id=actor_id,
            timestamp=at,
            metadata=metadata,
        )
        logger.info("queue entry %s #%s %s -> %s", entry.id, entry.sequence_number, old, target)

        StatusSynchronizer.propagate(entry=entry, at=at, outcome=outcome, reason=reason, actor_id=actor_id)

        QueueService.refresh_estimates(tenant_id=entry.tenant_id, facility_id=entry.facility_id, day=entry.service_date)
        return entry

    # -------------------------
    # Staff actions
    # -------------------------
    @staticmethod
    @transaction.atomic
    def call_next(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        staff_id: Optional[UUID] = None,
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> QueueEntry:
        clock = get_clock(clock)
        window = day_window(clock)
        if staff_id:
            DirectoryService.require_staff(tenant_id=tenant_id, facility_id=facility_id, staff_id=staff_id)

        candidates = order_waiting(
            QueueEntry.objects.select_for_update().filter(
                tenant_id=tenant_id,
                facility_id=facility_id,
                service_date=window.day,
                status=QueueStatus.WAITING,
            )
        )
        at = clock.now()
        for head in candidates:
            values = {"status": QueueStatus.CALLED, "called_time": at, "updated_at": at}
            if staff_id:
                values["staff_id"] = staff_id
            if not QueueEntry.objects.filter(pk=head.pk, status=QueueStatus.WAITING).update(**values):
                # another desk took it; try the next head
                logger.warning("call-next lost entry %s to a concurrent call", head.pk)
                continue

            head.refresh_from_db()
            AuditService.log(
                action="queue.called",
                entity_type=ENTITY,
                entity_id=head.id,
                tenant_id=tenant_id,
                facility_id=facility_id,
                old_status=QueueStatus.WAITING,
                new_status=QueueStatus.CALLED,
                actor_id=actor_id,
                timestamp=at,
                metadata={"sequence_number": head.sequence_number, "via": "call-next"},
            )
            logger.info("called next entry %s #%s", head.id, head.sequence_number)
            StatusSynchronizer.propagate(entry=head, at=at, actor_id=actor_id)
            QueueService.refresh_estimates(tenant_id=tenant_id, facility_id=facility_id, day=window.day)
            return head

        raise NotFoundError("No patients are waiting.", code="NO_WAITING_PATIENTS")

    @staticmethod
    @transaction.atomic
    def call(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        queue_entry_id: UUID,
        staff_id: Optional[UUID] = None,
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> QueueEntry:
        entry = QueueService._get_entry(tenant_id=tenant_id, facility_id=facility_id, queue_entry_id=queue_entry_id)
        if entry.status == QueueStatus.CALLED:
            raise BusinessConflict(
                "Queue entry has already been called.",
                code="QUEUE_ENTRY_ALREADY_CALLED",
                details={"queue_entry_id": str(entry.id)},
            )
        return QueueService._apply(
            entry=entry, target=QueueStatus.CALLED, staff_id=staff_id, actor_id=actor_id, clock=clock
        )

    @staticmethod
    @transaction.atomic
    def start(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        queue_entry_id: UUID,
        staff_id: Optional[UUID] = None,
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> QueueEntry:
        entry = QueueService._get_entry(tenant_id=tenant_id, facility_id=facility_id, queue_entry_id=queue_entry_id)
        return QueueService._apply(
            entry=entry, target=QueueStatus.IN_PROGRESS, staff_id=staff_id, actor_id=actor_id, clock=clock
        )

    @staticmethod
    @transaction.atomic
    def complete(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        queue_entry_id: UUID,
        staff_id: Optional[UUID] = None,
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> QueueEntry:
        entry = QueueService._get_entry(tenant_id=tenant_id, facility_id=facility_id, queue_entry_id=queue_entry_id)
        return QueueService._apply(
            entry=entry, target=QueueStatus.COMPLETED, staff_id=staff_id, actor_id=actor_id, clock=clock
        )

    @staticmethod
    @transaction.atomic
    def cancel(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        queue_entry_id: UUID,
        reason: Optional[str] = None,
        outcome: str = "cancelled",
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> QueueEntry:
        outcome = normalize_outcome(outcome)
        entry = QueueService._get_entry(tenant_id=tenant_id, facility_id=facility_id, queue_entry_id=queue_entry_id)
        return QueueService._apply(
            entry=entry,
            target=QueueStatus.CANCELLED,
            outcome=outcome,
            reason=(reason or "").strip() or None,
            actor_id=actor_id,
            clock=clock,
        )

    @staticmethod
    def add_walk_in(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        patient_id: UUID,
        priority: Optional[str] = None,
        staff_id: Optional[UUID] = None,
        notes: Optional[str] = None,
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> QueueEntry:
        """
        Direct queue insertion. Goes through admission so the entry still gets
        its paired check-in and an atomically issued ticket number.
        """
        checkin = CheckInService.admit_walk_in(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient_id=patient_id,
            notes=notes,
            priority=priority,
            staff_id=staff_id,
            actor_id=actor_id,
            clock=clock,
        )
        return checkin.queue_entry

    # -------------------------
    # End of day
    # -------------------------
    @staticmethod
    @transaction.atomic
    def close_out_day(
        *,
        day: date,
        tenant_id: Optional[UUID] = None,
        facility_id: Optional[UUID] = None,
        actor_id: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> int:
        """
        Entries from days before `day` that are still waiting or called are
        closed as no-shows. Returns how many were closed.
        """
        qs = QueueEntry.objects.select_for_update().filter(
            service_date__lt=day,
            status__in=[QueueStatus.WAITING, QueueStatus.CALLED],
        )
        if tenant_id:
            qs = qs.filter(tenant_id=tenant_id)
        if facility_id:
            qs = qs.filter(facility_id=facility_id)

        closed = 0
        for entry in qs.order_by("service_date", "sequence_number"):
            QueueService._apply(
                entry=entry,
                target=QueueStatus.CANCELLED,
                outcome="no-show",
                reason=CLOSE_OUT_REASON,
                actor_id=actor_id,
                clock=clock,
            )
            closed += 1

        if closed:
            logger.info("closed out %s stale queue entries before %s", closed, day)
        return closed
