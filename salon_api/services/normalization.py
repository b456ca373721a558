"""Canonicalisation of booking inputs.

Frontends send dates, times and a few fields under several spellings. Every
payload goes through :func:`collapse_aliases` first, and dates and times are
converted to ``YYYY-MM-DD`` and ``HH:MM`` before they reach validation or
storage.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Tuple

from salon_api.services.exceptions import ValidationError

CANONICAL_DATE_FORMAT = "%Y-%m-%d"
CANONICAL_TIME_FORMAT = "%H:%M"

# Tried in order after the ISO prefix shortcut. Month-first is a last resort
# for slash-separated values that are not valid day-first dates.
DATE_LAYOUTS: Tuple[str, ...] = (
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y/%m/%d",
    "%m/%d/%Y",
)

TIME_LAYOUTS: Tuple[str, ...] = (
    "%H:%M",
    "%H:%M:%S",
    "%I:%M %p",
    "%I:%M%p",
)

# Canonical field name -> accepted spellings, highest priority first.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "date": ("date", "appointment_date", "appointmentDate"),
    "time": ("time", "appointment_time", "appointmentTime"),
    "selected_option_ids": ("selected_option_ids", "selectedOptionIds"),
}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def collapse_aliases(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``payload`` with aliased fields folded to one key.

    The first non-blank value across the alias set wins. When every spelling
    is blank the canonical key carries the first value that was present (so
    an explicit ``""`` still reaches validation), and is omitted otherwise.
    """

    data = dict(payload)
    for canonical, aliases in FIELD_ALIASES.items():
        present = [name for name in aliases if name in data]
        if not present:
            continue
        values = [data.pop(name) for name in present]
        chosen = next((value for value in values if not _is_blank(value)), values[0])
        if isinstance(chosen, str):
            chosen = chosen.strip()
        data[canonical] = chosen
    return data


def normalize_date(raw: str | None) -> str:
    value = (raw or "").strip()
    if not value:
        raise ValidationError("date is required")

    # ISO dates and full timestamps keep their calendar part verbatim.
    if len(value) >= 10 and value[4] == "-" and value[7] == "-":
        return value[:10]

    for layout in DATE_LAYOUTS:
        try:
            parsed = datetime.strptime(value, layout)
        except ValueError:
            continue
        return parsed.strftime(CANONICAL_DATE_FORMAT)

    raise ValidationError("invalid date format; expected YYYY-MM-DD")


def normalize_time(raw: str | None) -> str:
    value = (raw or "").strip()
    if not value:
        raise ValidationError("time is required")

    for layout in TIME_LAYOUTS:
        try:
            parsed = datetime.strptime(value, layout)
        except ValueError:
            continue
        return parsed.strftime(CANONICAL_TIME_FORMAT)

    raise ValidationError("invalid time format; expected HH:MM")
