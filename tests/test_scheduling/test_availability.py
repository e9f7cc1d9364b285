"""Tests for free-slot computation."""

from datetime import date, datetime, time

import pytest

from booking_engine.config import Settings
from booking_engine.scheduling.availability import WeeklyWorkingHours, compute_available_slots
from booking_engine.scheduling.durations import Span
from booking_engine.scheduling.models import Appointment, AppointmentStatus, WorkingWindow

DAY = date(2024, 1, 1)


def _window(open_hour: int = 9, close_hour: int = 17) -> WorkingWindow:
    return WorkingWindow(
        open_time=datetime.combine(DAY, time(open_hour)),
        close_time=datetime.combine(DAY, time(close_hour)),
    )


def _booked(start: datetime, minutes: int, buffer: int = 0, provider_id: str = "prov-1",
            status: AppointmentStatus = AppointmentStatus.CONFIRMED) -> Appointment:
    return Appointment(
        service_id="svc",
        provider_id=provider_id,
        customer_id="cust",
        start_time=start,
        end_time=start + Span(minutes).duration,
        duration_minutes=minutes,
        buffer_minutes=buffer,
        status=status,
    )


def _starts(slots) -> list[time]:
    return [s.start_time.time() for s in slots]


class TestComputeAvailableSlots:
    def test_empty_day_yields_every_aligned_start(self):
        slots = compute_available_slots("prov-1", Span(60), _window(), [])
        starts = _starts(slots)
        assert starts[0] == time(9, 0)
        assert starts[-1] == time(16, 0)
        assert len(starts) == 29

    def test_existing_booking_and_buffer_block_slots(self):
        existing = [_booked(datetime(2024, 1, 1, 10, 0), 30, buffer=10)]
        slots = compute_available_slots("prov-1", Span(15), _window(), existing)
        starts = _starts(slots)

        assert time(9, 45) in starts
        assert time(10, 0) not in starts
        assert time(10, 15) not in starts
        assert time(10, 30) not in starts
        assert time(10, 45) in starts
        assert len(starts) == 32 - 3

    def test_candidate_buffer_must_fit_before_next_booking(self):
        existing = [_booked(datetime(2024, 1, 1, 10, 0), 30)]
        slots = compute_available_slots("prov-1", Span(15, 15), _window(), existing)
        starts = _starts(slots)

        assert time(9, 30) in starts
        assert time(9, 45) not in starts

    def test_slot_must_end_with_buffer_inside_window(self):
        slots = compute_available_slots("prov-1", Span(30, 15), _window(), [])
        assert _starts(slots)[-1] == time(16, 15)

    def test_canceled_and_foreign_appointments_ignored(self):
        existing = [
            _booked(datetime(2024, 1, 1, 9, 0), 60, status=AppointmentStatus.CANCELED),
            _booked(datetime(2024, 1, 1, 9, 0), 60, provider_id="prov-2"),
        ]
        slots = compute_available_slots("prov-1", Span(30), _window(), existing)
        assert _starts(slots)[0] == time(9, 0)

    def test_service_longer_than_window(self):
        assert compute_available_slots("prov-1", Span(120), _window(9, 10), []) == []

    def test_custom_granularity(self):
        slots = compute_available_slots("prov-1", Span(30), _window(9, 10), [], granularity_minutes=30)
        assert _starts(slots) == [time(9, 0), time(9, 30)]

    def test_invalid_granularity(self):
        with pytest.raises(ValueError):
            compute_available_slots("prov-1", Span(30), _window(), [], granularity_minutes=0)


class TestWeeklyWorkingHours:
    def test_from_settings_covers_weekdays_only(self):
        hours = WeeklyWorkingHours.from_settings(Settings())
        monday = hours.window_for("prov-1", date(2024, 1, 1))
        saturday = hours.window_for("prov-1", date(2024, 1, 6))

        assert monday.open_time == datetime(2024, 1, 1, 9, 0)
        assert monday.close_time == datetime(2024, 1, 1, 17, 0)
        assert saturday is None

    def test_provider_override(self):
        hours = WeeklyWorkingHours({0: (time(9), time(17))})
        hours.set_provider_hours("prov-2", {5: (time(10), time(14))})

        assert hours.window_for("prov-2", date(2024, 1, 1)) is None
        saturday = hours.window_for("prov-2", date(2024, 1, 6))
        assert saturday.open_time.hour == 10

    def test_window_rejects_inverted_hours(self):
        with pytest.raises(ValueError):
            WorkingWindow(
                open_time=datetime(2024, 1, 1, 17, 0),
                close_time=datetime(2024, 1, 1, 9, 0),
            )
