"""Domain events emitted after appointment changes are committed.

Notifiers (email, SMS, push) subscribe to the bus; the engine never sends
anything itself. Events can also be appended to a JSON Lines log.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from booking_engine.scheduling.models import AppointmentStatus

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of domain events."""

    APPOINTMENT_CREATED = "appointment_created"
    APPOINTMENT_STATUS_CHANGED = "appointment_status_changed"
    APPOINTMENT_RESCHEDULED = "appointment_rescheduled"


class DomainEvent(BaseModel):
    """Base class for all domain events."""

    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    provider_id: str
    customer_id: str
    actor_id: Optional[str] = None
    actor_role: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class AppointmentCreated(DomainEvent):
    """One booking request committed (a single appointment or a whole series)."""

    event_type: EventType = EventType.APPOINTMENT_CREATED
    appointment_ids: list[str]
    series_id: Optional[str] = None
    service_id: str
    start_times: list[datetime] = Field(default_factory=list)


class AppointmentStatusChanged(DomainEvent):
    event_type: EventType = EventType.APPOINTMENT_STATUS_CHANGED
    appointment_id: str
    previous_status: AppointmentStatus
    new_status: AppointmentStatus


class AppointmentRescheduled(DomainEvent):
    event_type: EventType = EventType.APPOINTMENT_RESCHEDULED
    appointment_id: str
    previous_start: datetime
    previous_end: datetime
    new_start: datetime
    new_end: datetime


EventCallback = Callable[[DomainEvent], None]


class EventBus:
    """Fan-out of committed domain events to subscribers.

    A failing subscriber is logged and skipped; it never undoes or blocks the
    operation that produced the event.
    """

    def __init__(self, log_dir: Optional[Path] = None):
        self._callbacks: list[EventCallback] = []
        self.log_file: Optional[Path] = None
        if log_dir is not None:
            log_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = log_dir / "appointment_events.jsonl"

    def subscribe(self, callback: EventCallback) -> None:
        """Add callback for real-time event delivery."""
        self._callbacks.append(callback)

    def unsubscribe(self, callback: EventCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def publish(self, event: DomainEvent) -> None:
        if self.log_file is not None:
            try:
                with open(self.log_file, "a") as f:
                    f.write(event.model_dump_json() + "\n")
            except OSError as e:
                logger.warning(f"Failed to write domain event: {e}")

        for callback in self._callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"Event subscriber failed for {event.event_type.value}: {e}")
