"""Booking Engine - appointment scheduling for provider calendars."""

__version__ = "0.1.0"
