"""CLI commands for the booking engine."""

import json
from datetime import date, datetime, time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from booking_engine.config import get_settings

app = typer.Typer(
    name="booking-engine",
    help="Appointment scheduling engine",
    add_completion=False,
)
console = Console()


def _parse_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Invalid datetime: {value}. Use ISO format, e.g. 2024-01-01T09:00[/red]")
        raise typer.Exit(1)


def _parse_time(value: str) -> time:
    try:
        return time.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Invalid time: {value}. Use HH:MM[/red]")
        raise typer.Exit(1)


def _load_busy(path: Path, provider_id: str) -> list:
    """Read existing bookings from a JSON list of ``{start, end, buffer_minutes}``."""
    from booking_engine.scheduling.models import Appointment

    if not path.exists():
        console.print(f"[red]Bookings file not found: {path}[/red]")
        raise typer.Exit(1)

    busy = []
    for i, entry in enumerate(json.loads(path.read_text())):
        start = _parse_datetime(entry["start"])
        end = _parse_datetime(entry["end"])
        busy.append(
            Appointment(
                id=entry.get("id", f"busy-{i}"),
                service_id=entry.get("service_id", "external"),
                provider_id=provider_id,
                customer_id=entry.get("customer_id", "external"),
                start_time=start,
                end_time=end,
                duration_minutes=max(1, int((end - start).total_seconds() // 60)),
                buffer_minutes=entry.get("buffer_minutes", 0),
            )
        )
    return busy


@app.command()
def expand(
    start: str = typer.Argument(..., help="First occurrence, ISO datetime"),
    frequency: str = typer.Option("weekly", "--frequency", "-f", help="daily, weekly or monthly"),
    count: Optional[int] = typer.Option(
        None, "--count", "-n", help="Total occurrences (omit for indefinite)"
    ),
    duration: int = typer.Option(60, "--duration", "-d", help="Service duration in minutes"),
    buffer: int = typer.Option(0, "--buffer", "-b", help="Buffer after each occurrence in minutes"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Preview the occurrences a recurring booking would create."""
    from booking_engine.scheduling.durations import Span
    from booking_engine.scheduling.errors import InvalidRecurrenceError
    from booking_engine.scheduling.recurrence import expand_recurrence

    settings = get_settings()
    anchor = _parse_datetime(start)

    try:
        span = Span(duration, buffer)
        occurrences = expand_recurrence(
            anchor,
            span,
            frequency,
            count,
            max_occurrences=settings.max_recurrence_occurrences,
            end_after_limit=settings.max_recurrence_end_after,
        )
    except InvalidRecurrenceError as e:
        console.print(f"[red]{e.message}: {e.detail}[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if output_json:
        console.print_json(
            json.dumps([{"start": s.isoformat(), "end": end.isoformat()} for s, end in occurrences])
        )
        return

    table = Table(title=f"{frequency} x {len(occurrences)}")
    table.add_column("#", style="dim")
    table.add_column("Start", style="cyan")
    table.add_column("End")
    table.add_column("Blocked until", style="yellow")
    for i, (s, end) in enumerate(occurrences, 1):
        table.add_row(str(i), s.isoformat(), end.isoformat(), (end + span.buffer).isoformat())
    console.print(table)


@app.command()
def slots(
    day: str = typer.Argument(..., help="Date to inspect, YYYY-MM-DD"),
    duration: int = typer.Option(..., "--duration", "-d", help="Service duration in minutes"),
    buffer: int = typer.Option(0, "--buffer", "-b", help="Buffer after each booking in minutes"),
    open_at: Optional[str] = typer.Option(None, "--open", help="Opening time HH:MM"),
    close_at: Optional[str] = typer.Option(None, "--close", help="Closing time HH:MM"),
    bookings_file: Optional[Path] = typer.Option(
        None, "--bookings", help="JSON file with existing bookings"
    ),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List free start times for a service on one day."""
    from booking_engine.scheduling.availability import compute_available_slots
    from booking_engine.scheduling.durations import Span
    from booking_engine.scheduling.models import WorkingWindow

    settings = get_settings()
    try:
        target = date.fromisoformat(day)
    except ValueError:
        console.print(f"[red]Invalid date: {day}. Use YYYY-MM-DD[/red]")
        raise typer.Exit(1)

    open_time = _parse_time(open_at) if open_at else settings.default_open_time
    close_time = _parse_time(close_at) if close_at else settings.default_close_time

    try:
        span = Span(duration, buffer)
        window = WorkingWindow(
            open_time=datetime.combine(target, open_time),
            close_time=datetime.combine(target, close_time),
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    provider_id = "cli"
    busy = _load_busy(bookings_file, provider_id) if bookings_file else []
    free = compute_available_slots(
        provider_id, span, window, busy, granularity_minutes=settings.slot_granularity_minutes
    )

    if output_json:
        console.print_json(json.dumps([s.start_time.isoformat() for s in free]))
        return

    if not free:
        console.print("[yellow]No free slots[/yellow]")
        return

    table = Table(title=f"Free slots on {target.isoformat()}")
    table.add_column("Start", style="green")
    table.add_column("End")
    for slot in free:
        table.add_row(slot.start_time.strftime("%H:%M"), slot.end_time.strftime("%H:%M"))
    console.print(table)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Host to bind"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
):
    """Start the REST API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print(f"Starting booking engine API server on {host}:{port}")
    uvicorn.run(
        "booking_engine.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def version():
    """Show version information."""
    from booking_engine import __version__

    console.print(f"Booking Engine v{__version__}")
