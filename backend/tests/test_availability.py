import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from servicefinder.services.availability import (
    dump_availability,
    load_availability,
    parse_availability,
)
from servicefinder.services.database import AvailabilityFormatError, StoreValidationError


def test_empty_values_mean_no_availability():
    assert parse_availability(None) is None
    assert parse_availability("") is None
    assert parse_availability({}) is None


def test_days_are_normalised_to_week_order():
    availability = parse_availability({"days": ["sunday", "Monday", "WEDNESDAY", "monday"]})
    assert availability.days == ["Monday", "Wednesday", "Sunday"]
    assert availability.hours is None
    assert availability.notes == ""


def test_json_string_is_accepted():
    availability = parse_availability(
        '{"days": ["Tuesday"], "hours": {"start": "08:30", "end": "12:00"}, "notes": " call first "}'
    )
    assert availability.days == ["Tuesday"]
    assert availability.hours.start == "08:30"
    assert availability.hours.end == "12:00"
    assert availability.notes == "call first"


@pytest.mark.parametrize(
    "value",
    [
        "{not json",
        "[1, 2, 3]",
        42,
        {"days": "Monday"},
        {"days": ["Someday"]},
        {"days": [1]},
        {"hours": "9-5"},
        {"hours": {"start": "9am", "end": "17:00"}},
        {"hours": {"start": "24:00", "end": "23:00"}},
        {"hours": {"start": "17:00", "end": "09:00"}},
        {"hours": {"start": "09:00", "end": "09:00"}},
        {"notes": ["not", "text"]},
    ],
)
def test_malformed_availability_is_rejected(value):
    with pytest.raises(AvailabilityFormatError):
        parse_availability(value)


def test_format_error_is_a_validation_error():
    assert issubclass(AvailabilityFormatError, StoreValidationError)


def test_stored_form_reads_back():
    availability = parse_availability({"days": ["Friday"], "hours": {"start": "10:00", "end": "18:00"}})
    assert load_availability(dump_availability(availability)) == availability
    assert dump_availability(None) is None


def test_malformed_stored_value_is_tolerated(caplog):
    with caplog.at_level("WARNING"):
        assert load_availability("{broken") is None
    assert "malformed stored availability" in caplog.text
    assert load_availability(None) is None
