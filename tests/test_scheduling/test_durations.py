"""Tests for the duration/buffer model."""

from datetime import datetime, timedelta

import pytest

from booking_engine.scheduling.durations import (
    NANOSECONDS_PER_MINUTE,
    Span,
    minutes_to_nanoseconds,
    nanoseconds_to_minutes,
)


class TestSpan:
    def test_effective_span_adds_buffer_after_end(self):
        span = Span(duration_minutes=30, buffer_minutes=10)
        end, blocked_until = span.effective_span(datetime(2024, 1, 1, 10, 0))

        assert end == datetime(2024, 1, 1, 10, 30)
        assert blocked_until == datetime(2024, 1, 1, 10, 40)

    def test_zero_buffer_blocks_until_end(self):
        span = Span(duration_minutes=15)
        end, blocked_until = span.effective_span(datetime(2024, 1, 1, 10, 0))
        assert end == blocked_until

    def test_blocked_is_duration_plus_buffer(self):
        span = Span(45, 15)
        assert span.duration == timedelta(minutes=45)
        assert span.buffer == timedelta(minutes=15)
        assert span.blocked == timedelta(hours=1)

    @pytest.mark.parametrize("duration", [0, -5])
    def test_duration_must_be_positive(self, duration):
        with pytest.raises(ValueError):
            Span(duration_minutes=duration)

    def test_negative_buffer_rejected(self):
        with pytest.raises(ValueError):
            Span(duration_minutes=30, buffer_minutes=-1)


class TestNanosecondConversion:
    def test_thirty_minutes(self):
        assert nanoseconds_to_minutes(1_800_000_000_000) == 30
        assert minutes_to_nanoseconds(30) == 1_800_000_000_000

    def test_partial_minute_rejected(self):
        with pytest.raises(ValueError):
            nanoseconds_to_minutes(NANOSECONDS_PER_MINUTE + 1)
