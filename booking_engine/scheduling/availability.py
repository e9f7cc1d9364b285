"""Free-slot computation for a provider on a single day."""

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Protocol

from booking_engine.scheduling.conflicts import intervals_overlap
from booking_engine.scheduling.durations import Span
from booking_engine.scheduling.models import Appointment, TimeSlot, WorkingWindow

logger = logging.getLogger(__name__)


class WorkingHoursSource(Protocol):
    """Supplies a provider's open/close window for a date.

    Returns ``None`` when the provider does not work that day.
    """

    def window_for(self, provider_id: str, day: date) -> Optional[WorkingWindow]: ...


class WeeklyWorkingHours:
    """Fixed weekly hours, optionally overridden per provider.

    *default_hours* maps weekday (0=Mon..6=Sun) to ``(open, close)``.
    """

    def __init__(
        self,
        default_hours: dict[int, tuple[time, time]],
        provider_hours: Optional[dict[str, dict[int, tuple[time, time]]]] = None,
    ) -> None:
        self.default_hours = default_hours
        self.provider_hours = provider_hours or {}

    @classmethod
    def from_settings(cls, settings) -> "WeeklyWorkingHours":
        hours = (settings.default_open_time, settings.default_close_time)
        return cls({wd: hours for wd in settings.working_days})

    def set_provider_hours(self, provider_id: str, hours: dict[int, tuple[time, time]]) -> None:
        self.provider_hours[provider_id] = hours

    def window_for(self, provider_id: str, day: date) -> Optional[WorkingWindow]:
        hours = self.provider_hours.get(provider_id, self.default_hours)
        rule = hours.get(day.weekday())
        if rule is None:
            return None
        open_at, close_at = rule
        return WorkingWindow(
            open_time=datetime.combine(day, open_at),
            close_time=datetime.combine(day, close_at),
        )


def compute_available_slots(
    provider_id: str,
    span: Span,
    window: WorkingWindow,
    existing: Iterable[Appointment],
    granularity_minutes: int = 15,
) -> list[TimeSlot]:
    """Return every granularity-aligned start at which *span* fits.

    A candidate is kept when ``[start, start + duration + buffer)`` lies inside
    the working window and does not intersect the blocked interval of any
    non-canceled appointment in *existing*.
    """
    if granularity_minutes <= 0:
        raise ValueError("granularity must be positive")

    blocked = [
        (a.start_time, a.blocked_until)
        for a in existing
        if a.provider_id == provider_id and a.is_active
    ]
    step = timedelta(minutes=granularity_minutes)

    slots: list[TimeSlot] = []
    current = window.open_time
    while current + span.blocked <= window.close_time:
        end, blocked_until = span.effective_span(current)
        if not any(intervals_overlap(current, blocked_until, b_start, b_end) for b_start, b_end in blocked):
            slots.append(TimeSlot(start_time=current, end_time=end, provider_id=provider_id))
        current += step

    logger.debug(
        f"Computed {len(slots)} free slots for provider={provider_id} "
        f"between {window.open_time} and {window.close_time}"
    )
    return slots
