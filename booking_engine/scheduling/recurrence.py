"""Recurrence expansion for repeating bookings."""

from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from booking_engine.scheduling.durations import Span
from booking_engine.scheduling.errors import InvalidRecurrenceError
from booking_engine.scheduling.models import Frequency

DEFAULT_MAX_OCCURRENCES = 52
DEFAULT_END_AFTER_LIMIT = 520

# relativedelta clamps to the last valid day of a shorter month. Each step
# starts from the previous occurrence, so once a date is clamped it stays
# clamped: Jan 31 -> Feb 29 -> Mar 29.
_STEPS: dict[Frequency, relativedelta] = {
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.MONTHLY: relativedelta(months=1),
}


def parse_frequency(value: str) -> Frequency:
    try:
        return Frequency(value)
    except ValueError:
        raise InvalidRecurrenceError({"field": "frequency", "value": value})


def occurrence_count(
    end_after: Optional[int],
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    end_after_limit: int = DEFAULT_END_AFTER_LIMIT,
) -> int:
    """Number of instances to create; ``None`` means indefinite and is capped.

    A finite count above *end_after_limit* is rejected rather than truncated.
    """
    if end_after is None:
        return max_occurrences
    if isinstance(end_after, bool) or not isinstance(end_after, int) or end_after <= 0:
        raise InvalidRecurrenceError({"field": "end_after", "value": end_after})
    if end_after > end_after_limit:
        raise InvalidRecurrenceError(
            {"field": "end_after", "value": end_after, "limit": end_after_limit}
        )
    return end_after


def expand_recurrence(
    anchor: datetime,
    span: Span,
    frequency: str,
    end_after: Optional[int],
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    end_after_limit: int = DEFAULT_END_AFTER_LIMIT,
) -> list[tuple[datetime, datetime]]:
    """Expand a recurring booking into concrete ``(start, end)`` pairs.

    The first pair is the anchor itself. A finite *end_after* is the total
    number of instances, at most *end_after_limit*; ``None`` yields
    *max_occurrences* instances. A series that would run past the last
    representable date is rejected.
    """
    step = _STEPS[parse_frequency(frequency)]
    count = occurrence_count(end_after, max_occurrences, end_after_limit)

    occurrences: list[tuple[datetime, datetime]] = []
    start = anchor
    for i in range(count):
        try:
            end, _blocked = span.effective_span(start)
            occurrences.append((start, end))
            if i + 1 < count:
                start = start + step
        except (OverflowError, ValueError):
            raise InvalidRecurrenceError(
                {"field": "end_after", "value": end_after, "reason": "date out of range"}
            )
    return occurrences
