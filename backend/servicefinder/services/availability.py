import json
import logging
import re
from typing import Any, Optional

from servicefinder.models import Availability, AvailabilityHours
from servicefinder.services.database import AvailabilityFormatError

logger = logging.getLogger(__name__)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_WEEKDAY_LOOKUP = {day.lower(): day for day in WEEKDAYS}
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def _parse_days(raw: Any) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise AvailabilityFormatError("Invalid availability format: days must be a list of weekday names")
    days = set()
    for item in raw:
        day = _WEEKDAY_LOOKUP.get(str(item).strip().lower()) if isinstance(item, str) else None
        if not day:
            raise AvailabilityFormatError(f"Invalid availability format: unknown weekday {item!r}")
        days.add(day)
    return [day for day in WEEKDAYS if day in days]


def _parse_time(raw: Any, field: str) -> str:
    if not isinstance(raw, str) or not _TIME_RE.match(raw.strip()):
        raise AvailabilityFormatError(f"Invalid availability format: hours.{field} must be HH:MM")
    return raw.strip()


def _parse_hours(raw: Any) -> Optional[AvailabilityHours]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise AvailabilityFormatError("Invalid availability format: hours must be an object with start and end")
    start = _parse_time(raw.get("start"), "start")
    end = _parse_time(raw.get("end"), "end")
    # Zero-padded HH:MM compares correctly as text.
    if start >= end:
        raise AvailabilityFormatError("Invalid availability format: hours.start must be before hours.end")
    return AvailabilityHours(start=start, end=end)


def parse_availability(value: Any) -> Optional[Availability]:
    """Validate client-supplied availability.

    Accepts a mapping or its JSON-encoded string form, e.g.
    ``{"days": ["Monday", "Friday"], "hours": {"start": "08:00", "end": "17:00"}, "notes": "..."}``.
    Empty values mean "no availability given". Raises
    ``AvailabilityFormatError`` for anything structurally wrong.
    """
    if value is None or value == "" or value == {}:
        return None
    if isinstance(value, Availability):
        return value
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise AvailabilityFormatError("Invalid availability format") from exc
    if not isinstance(value, dict):
        raise AvailabilityFormatError("Invalid availability format")

    notes = value.get("notes")
    if notes is None:
        notes = ""
    if not isinstance(notes, str):
        raise AvailabilityFormatError("Invalid availability format: notes must be text")

    return Availability(
        days=_parse_days(value.get("days")),
        hours=_parse_hours(value.get("hours")),
        notes=notes.strip(),
    )


def dump_availability(availability: Optional[Availability]) -> Optional[str]:
    if availability is None:
        return None
    return json.dumps(availability.model_dump())


def load_availability(raw: Optional[str]) -> Optional[Availability]:
    if not raw:
        return None
    try:
        return parse_availability(raw)
    except AvailabilityFormatError:
        logger.warning("Ignoring malformed stored availability: %r", raw[:200])
        return None
