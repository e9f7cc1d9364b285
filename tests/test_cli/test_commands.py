"""Tests for CLI commands."""

import json

from typer.testing import CliRunner

from booking_engine.cli.commands import app

runner = CliRunner()


class TestVersionCommand:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "Booking Engine v" in result.output


class TestExpandCommand:
    def test_weekly_json(self):
        result = runner.invoke(
            app, ["expand", "2024-01-01T09:00", "--frequency", "weekly", "--count", "3", "--json"]
        )
        assert result.exit_code == 0
        occurrences = json.loads(result.output)
        assert [o["start"] for o in occurrences] == [
            "2024-01-01T09:00:00",
            "2024-01-08T09:00:00",
            "2024-01-15T09:00:00",
        ]

    def test_monthly_clamping(self):
        result = runner.invoke(
            app, ["expand", "2024-01-31T09:00", "-f", "monthly", "-n", "3", "-d", "30", "--json"]
        )
        starts = [o["start"] for o in json.loads(result.output)]
        assert starts[1:] == ["2024-02-29T09:00:00", "2024-03-29T09:00:00"]

    def test_indefinite_uses_cap(self):
        result = runner.invoke(app, ["expand", "2024-01-01T09:00", "--json"])
        assert len(json.loads(result.output)) == 52

    def test_table_output(self):
        result = runner.invoke(app, ["expand", "2024-01-01T09:00", "-n", "2", "-b", "15"])
        assert result.exit_code == 0
        assert "Blocked until" in result.output

    def test_invalid_frequency(self):
        result = runner.invoke(app, ["expand", "2024-01-01T09:00", "-f", "hourly", "-n", "2"])
        assert result.exit_code == 1
        assert "Invalid recurrence pattern" in result.output

    def test_count_past_year_9999(self):
        result = runner.invoke(app, ["expand", "9999-06-01T09:00", "-f", "monthly", "-n", "12"])
        assert result.exit_code == 1
        assert "Invalid recurrence pattern" in result.output

    def test_invalid_datetime(self):
        result = runner.invoke(app, ["expand", "not-a-date"])
        assert result.exit_code == 1


class TestSlotsCommand:
    def test_slots_with_bookings(self, tmp_path):
        bookings = tmp_path / "bookings.json"
        bookings.write_text(json.dumps([
            {"start": "2024-01-01T10:00", "end": "2024-01-01T10:30", "buffer_minutes": 10},
        ]))

        result = runner.invoke(
            app,
            ["slots", "2024-01-01", "--duration", "15", "--open", "09:00", "--close", "12:00",
             "--bookings", str(bookings), "--json"],
        )
        assert result.exit_code == 0
        starts = json.loads(result.output)
        assert "2024-01-01T09:45:00" in starts
        assert "2024-01-01T10:00:00" not in starts
        assert "2024-01-01T10:30:00" not in starts
        assert "2024-01-01T10:45:00" in starts
        assert starts[-1] == "2024-01-01T11:45:00"

    def test_no_free_slots(self):
        result = runner.invoke(app, ["slots", "2024-01-01", "-d", "120", "--open", "09:00", "--close", "10:00"])
        assert result.exit_code == 0
        assert "No free slots" in result.output

    def test_missing_bookings_file(self, tmp_path):
        result = runner.invoke(app, ["slots", "2024-01-01", "-d", "30", "--bookings", str(tmp_path / "none.json")])
        assert result.exit_code == 1

    def test_bad_date(self):
        result = runner.invoke(app, ["slots", "01/01/2024", "-d", "30"])
        assert result.exit_code == 1
