"""Recurrence arithmetic for calendar events."""

import enum
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from propdesk.core.database import as_utc
from propdesk.models.enums import RecurrenceFrequency

_FIXED_STEPS = {
    RecurrenceFrequency.daily.value: timedelta(days=1),
    RecurrenceFrequency.weekly.value: timedelta(weeks=1),
}
_CALENDAR_STEPS = {
    RecurrenceFrequency.monthly.value: "months",
    RecurrenceFrequency.yearly.value: "years",
}


def _value(v):
    return v.value if isinstance(v, enum.Enum) else v


def next_occurrence(event, now: datetime) -> datetime | None:
    """
    Start of the first occurrence at or after ``now``.

    Non-recurring events only have their own start.  Returns None once the
    event is in the past or its series ended on ``recurrence_until``.
    Occurrences are counted from the original start, so a series starting
    on the 31st lands on the last day of shorter months and returns to the
    31st afterwards.
    """
    now = as_utc(now)
    start = as_utc(event.start)
    if start >= now:
        return start

    frequency = _value(event.recurrence_frequency)
    interval = event.recurrence_interval
    if not event.is_recurring or not frequency or not interval:
        return None

    if frequency in _FIXED_STEPS:
        step = _FIXED_STEPS[frequency] * interval
        count = -(-(now - start) // step)
        candidate = start + step * count
    else:
        unit = _CALENDAR_STEPS[frequency]
        count = 1
        candidate = start + relativedelta(**{unit: interval})
        while candidate < now:
            count += 1
            candidate = start + relativedelta(**{unit: interval * count})

    until = event.recurrence_until
    if until is not None and candidate.date() > until:
        return None
    return candidate
