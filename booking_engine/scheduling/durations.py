"""Service duration and post-appointment buffer as whole minutes.

Minutes are the only time unit inside the engine. The frontend sends service
durations in nanoseconds; conversion happens in the API schemas through the
helpers below and nowhere else.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

NANOSECONDS_PER_MINUTE = 60 * 1_000_000_000


@dataclass(frozen=True)
class Span:
    """How long an appointment lasts and how long the provider stays blocked after it."""

    duration_minutes: int
    buffer_minutes: int = 0

    def __post_init__(self) -> None:
        if self.duration_minutes <= 0:
            raise ValueError(f"duration must be positive, got {self.duration_minutes}")
        if self.buffer_minutes < 0:
            raise ValueError(f"buffer must not be negative, got {self.buffer_minutes}")

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes)

    @property
    def buffer(self) -> timedelta:
        return timedelta(minutes=self.buffer_minutes)

    @property
    def blocked(self) -> timedelta:
        """Total time the provider is unavailable per booking."""
        return timedelta(minutes=self.duration_minutes + self.buffer_minutes)

    def effective_span(self, start: datetime) -> tuple[datetime, datetime]:
        """Return ``(end, blocked_until)`` for an appointment starting at *start*."""
        end = start + self.duration
        return end, end + self.buffer


def nanoseconds_to_minutes(nanoseconds: int) -> int:
    """Convert a nanosecond payload value to whole minutes."""
    minutes, remainder = divmod(nanoseconds, NANOSECONDS_PER_MINUTE)
    if remainder:
        raise ValueError(f"{nanoseconds}ns is not a whole number of minutes")
    return minutes


def minutes_to_nanoseconds(minutes: int) -> int:
    return minutes * NANOSECONDS_PER_MINUTE
