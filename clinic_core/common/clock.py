# clinic_core/common/clock.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Protocol

from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock (aware datetimes, UTC)."""

    def now(self) -> datetime:
        return timezone.now()


class FixedClock:
    """
    Manually driven clock for tests and replays.
    Naive datetimes are interpreted in the current Django time zone.
    """

    def __init__(self, at: datetime):
        self._at = self._aware(at)

    @staticmethod
    def _aware(value: datetime) -> datetime:
        if timezone.is_naive(value):
            return timezone.make_aware(value)
        return value

    def now(self) -> datetime:
        return self._at

    def set(self, at: datetime) -> None:
        self._at = self._aware(at)

    def advance(self, **delta) -> datetime:
        self._at = self._at + timedelta(**delta)
        return self._at


def get_clock(clock: Clock | None = None) -> Clock:
    """
    Explicit clock wins. Otherwise CLINIC_CLOCK: a dotted path to a clock
    class, or a clock instance (tests pin one through settings).
    """
    if clock is not None:
        return clock
    configured = getattr(settings, "CLINIC_CLOCK", "clinic_core.common.clock.SystemClock")
    if isinstance(configured, str):
        return import_string(configured)()
    return configured


@dataclass(frozen=True)
class DayWindow:
    """
    Local calendar day [start, end) used to scope same-day numbering and queue reads.
    """
    day: date
    start: datetime
    end: datetime


def day_window(clock: Clock | None = None, *, at: datetime | None = None) -> DayWindow:
    moment = at if at is not None else get_clock(clock).now()
    local = timezone.localtime(moment)
    day = local.date()
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(day, time.min), tz)
    end = timezone.make_aware(datetime.combine(day + timedelta(days=1), time.min), tz)
    return DayWindow(day=day, start=start, end=end)


def local_today(clock: Clock | None = None) -> date:
    return day_window(clock).day
