"""Dashboard views over a list of appointments: stats, history and upcoming."""

import math
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from pydantic import BaseModel

from booking_engine.scheduling.models import Appointment, AppointmentStatus

# Look-back (history) and look-ahead (upcoming) windows by name.
RANGE_WINDOWS: dict[str, Optional[timedelta]] = {
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
    "all": None,
}


class AppointmentStats(BaseModel):
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    canceled: int = 0
    today: int = 0
    tomorrow: int = 0


class AppointmentHistory(BaseModel):
    appointments: list[Appointment]
    total: int
    page: int
    limit: int
    pages: int
    range: str
    status: str


class UpcomingAppointments(BaseModel):
    appointments: list[Appointment]
    count: int
    filter: str
    start_date: datetime
    end_date: Optional[datetime] = None


def _window(name: str) -> Optional[timedelta]:
    if name not in RANGE_WINDOWS:
        raise ValueError(f"Unknown range: {name!r}; expected one of {sorted(RANGE_WINDOWS)}")
    return RANGE_WINDOWS[name]


def appointment_stats(appointments: Iterable[Appointment], today: date) -> AppointmentStats:
    """Count appointments per status plus non-canceled ones today and tomorrow."""
    stats = AppointmentStats()
    tomorrow = today + timedelta(days=1)
    for appt in appointments:
        stats.total += 1
        setattr(stats, appt.status.value, getattr(stats, appt.status.value) + 1)
        if not appt.is_active:
            continue
        day = appt.start_time.date()
        if day == today:
            stats.today += 1
        elif day == tomorrow:
            stats.tomorrow += 1
    return stats


def appointment_history(
    appointments: Iterable[Appointment],
    now: datetime,
    page: int = 1,
    limit: int = 10,
    status: Optional[AppointmentStatus] = None,
    range_name: str = "month",
) -> AppointmentHistory:
    """Paginated past appointments, newest first."""
    if page < 1 or limit < 1:
        raise ValueError("page and limit must be positive")
    window = _window(range_name)
    since = now - window if window is not None else None

    matching = [
        a
        for a in appointments
        if a.start_time < now
        and (since is None or a.start_time >= since)
        and (status is None or a.status == status)
    ]
    matching.sort(key=lambda a: a.start_time, reverse=True)

    offset = (page - 1) * limit
    return AppointmentHistory(
        appointments=matching[offset : offset + limit],
        total=len(matching),
        page=page,
        limit=limit,
        pages=math.ceil(len(matching) / limit) if matching else 0,
        range=range_name,
        status=status.value if status is not None else "",
    )


def upcoming_appointments(
    appointments: Iterable[Appointment],
    now: datetime,
    filter_name: str = "month",
    limit: int = 10,
) -> UpcomingAppointments:
    """Non-canceled appointments starting from *now* within the filter window."""
    window = _window(filter_name)
    if filter_name == "day":
        until = datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=now.tzinfo)
    else:
        until = now + window if window is not None else None

    matching = sorted(
        (
            a
            for a in appointments
            if a.is_active and a.start_time >= now and (until is None or a.start_time < until)
        ),
        key=lambda a: a.start_time,
    )[:limit]
    return UpcomingAppointments(
        appointments=matching,
        count=len(matching),
        filter=filter_name,
        start_date=now,
        end_date=until,
    )


def split_upcoming_past(
    appointments: Iterable[Appointment], now: datetime
) -> tuple[list[Appointment], list[Appointment]]:
    """Consumer view: future open bookings versus everything else."""
    upcoming: list[Appointment] = []
    past: list[Appointment] = []
    for appt in appointments:
        if appt.start_time >= now and appt.is_active and appt.status != AppointmentStatus.COMPLETED:
            upcoming.append(appt)
        else:
            past.append(appt)
    upcoming.sort(key=lambda a: a.start_time)
    past.sort(key=lambda a: a.start_time, reverse=True)
    return upcoming, past
