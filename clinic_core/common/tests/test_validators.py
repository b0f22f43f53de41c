import uuid
from datetime import date, time

import pytest

from clinic_core.common.errors import ValidationFailed
from clinic_core.common.validators import coerce_date, coerce_time, coerce_uuid


def test_date_strings_are_parsed():
    assert coerce_date("2024-01-10") == date(2024, 1, 10)
    assert coerce_date(date(2024, 1, 10)) == date(2024, 1, 10)


@pytest.mark.parametrize("raw", ["10/01/2024", "2024-02-30", "", None])
def test_bad_dates(raw):
    with pytest.raises(ValidationFailed) as exc:
        coerce_date(raw)
    assert exc.value.code == "INVALID_DATE_FORMAT"


@pytest.mark.parametrize(
    "raw, expected",
    [("09:00", time(9, 0)), ("9:00", time(9, 0)), ("14:30:15", time(14, 30, 15))],
)
def test_time_strings_are_parsed(raw, expected):
    assert coerce_time(raw) == expected


@pytest.mark.parametrize("raw", ["9am", "25:00", ""])
def test_bad_times(raw):
    with pytest.raises(ValidationFailed) as exc:
        coerce_time(raw)
    assert exc.value.code == "INVALID_TIME_FORMAT"


def test_ids():
    value = uuid.uuid4()
    assert coerce_uuid(str(value), field="patient_id") == value

    with pytest.raises(ValidationFailed) as exc:
        coerce_uuid("not-a-uuid", field="patient_id")
    assert exc.value.code == "INVALID_ID"
    assert exc.value.details == {"patient_id": "not-a-uuid"}
