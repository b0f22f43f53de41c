# clinic_core/visits/management/commands/close_out_queue.py
from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from clinic_core.common.clock import local_today
from clinic_core.common.errors import ValidationFailed
from clinic_core.common.validators import coerce_date
from clinic_core.visits.queue import QueueService


class Command(BaseCommand):
    help = "Close queue entries left waiting/called on earlier days as no-shows."

    def add_arguments(self, parser):
        parser.add_argument("--date", type=str, default=None, help="Close days before this date (YYYY-MM-DD). Default: today.")
        parser.add_argument("--tenant-id", type=str, default=None, help="Optional tenant UUID filter.")
        parser.add_argument("--facility-id", type=str, default=None, help="Optional facility UUID filter.")

    def handle(self, *args, **opts):
        try:
            day = coerce_date(opts["date"], field="date") if opts["date"] else local_today()
        except ValidationFailed as e:
            raise CommandError(e.message)

        closed = QueueService.close_out_day(
            day=day,
            tenant_id=opts["tenant_id"],
            facility_id=opts["facility_id"],
        )
        self.stdout.write(self.style.SUCCESS(f"Closed {closed} queue entries before {day.isoformat()}"))
