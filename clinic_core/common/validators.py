# clinic_core/common/validators.py
from __future__ import annotations

from datetime import date, datetime, time
from uuid import UUID

from django.utils.dateparse import parse_date, parse_time

from clinic_core.common.errors import ValidationFailed


def coerce_date(value, *, field: str = "appointment_date") -> date:
    """Accepts a date or a YYYY-MM-DD string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value or "").strip()
    try:
        parsed = parse_date(raw)
    except ValueError:
        raise ValidationFailed("Invalid calendar date.", code="INVALID_DATE_FORMAT", details={field: raw})
    if parsed is None:
        raise ValidationFailed("Invalid date format. Use YYYY-MM-DD.", code="INVALID_DATE_FORMAT", details={field: raw})
    return parsed


def coerce_time(value, *, field: str = "start_time") -> time:
    """Accepts a time or an HH:MM[:SS] string."""
    if isinstance(value, time):
        return value
    raw = str(value or "").strip()
    try:
        parsed = parse_time(raw)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationFailed("Invalid time format. Use HH:MM.", code="INVALID_TIME_FORMAT", details={field: raw})
    return parsed


def coerce_uuid(value, *, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationFailed(f"{field} is not a valid id.", code="INVALID_ID", details={field: value})


def coerce_duration(value) -> int:
    try:
        minutes = int(value)
    except (TypeError, ValueError):
        raise ValidationFailed("Duration must be a whole number of minutes.", code="INVALID_DURATION")
    if minutes <= 0:
        raise ValidationFailed("Duration must be greater than zero.", code="INVALID_DURATION")
    return minutes


def coerce_choice(value, choices, *, code: str, label: str) -> str:
    """Validate against a TextChoices class."""
    allowed = list(choices.values)
    if value not in allowed:
        raise ValidationFailed(
            f"{label} must be one of: {', '.join(allowed)}",
            code=code,
            details={"allowed": allowed, "value": value},
        )
    return choices(value)


def require_text(value, *, code: str, label: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationFailed(f"{label} is required.", code=code)
    return text
