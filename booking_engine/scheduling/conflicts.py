"""Interval overlap checks against a provider's booked appointments."""

from datetime import datetime
from typing import Iterable, Optional

from booking_engine.scheduling.models import Appointment


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open interval overlap: touching edges do not conflict."""
    return a_start < b_end and a_end > b_start


class ConflictDetector:
    """Finds appointments whose blocked interval intersects a candidate.

    Callers must hold the provider lock between the check and the commit,
    otherwise two bookings can both pass and both be written.
    """

    def find_conflict(
        self,
        appointments: Iterable[Appointment],
        provider_id: str,
        candidate_start: datetime,
        candidate_blocked_until: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> Optional[Appointment]:
        for appt in appointments:
            if appt.provider_id != provider_id or not appt.is_active:
                continue
            if exclude_appointment_id is not None and appt.id == exclude_appointment_id:
                continue
            if intervals_overlap(
                candidate_start, candidate_blocked_until, appt.start_time, appt.blocked_until
            ):
                return appt
        return None

    def has_conflict(
        self,
        appointments: Iterable[Appointment],
        provider_id: str,
        candidate_start: datetime,
        candidate_blocked_until: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> bool:
        return (
            self.find_conflict(
                appointments,
                provider_id,
                candidate_start,
                candidate_blocked_until,
                exclude_appointment_id,
            )
            is not None
        )
