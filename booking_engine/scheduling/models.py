"""Pydantic models for the scheduling engine."""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from booking_engine.scheduling.durations import Span


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def to_naive_utc(value: datetime) -> datetime:
    """Normalize a timestamp to naive UTC, the form used for all scheduling math."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AppointmentStatus(str, Enum):
    """Appointment lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELED = "canceled"


class Frequency(str, Enum):
    """Supported recurrence frequencies."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ActorRole(str, Enum):
    """Roles supplied by the auth collaborator."""

    CUSTOMER = "customer"
    PROVIDER = "provider"
    RECEPTIONIST = "receptionist"


class Actor(BaseModel):
    """The authenticated caller of an operation.

    ``provider_id`` is only meaningful for receptionists: it names the
    provider whose appointments they are acting on.
    """

    user_id: str
    role: ActorRole
    provider_id: Optional[str] = None


class RecurPattern(BaseModel):
    """Recurrence settings as collected by the booking form.

    ``frequency`` is kept as a plain string so that unknown values reach the
    recurrence expander and fail with its typed error. ``end_after=None``
    means indefinite.
    """

    frequency: str
    end_after: Optional[int] = None


class Service(BaseModel):
    """A bookable service offered by one provider."""

    id: str = Field(default_factory=new_id)
    provider_id: str
    name: str
    description: Optional[str] = None
    duration_minutes: int = Field(gt=0)
    buffer_minutes: int = Field(default=0, ge=0)
    cost: Decimal = Field(default=Decimal("0"), ge=0)

    @property
    def span(self) -> Span:
        return Span(self.duration_minutes, self.buffer_minutes)


class Provider(BaseModel):
    """A service provider and the receptionists it delegates to."""

    id: str = Field(default_factory=new_id)
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    receptionist_ids: list[str] = Field(default_factory=list)


class Customer(BaseModel):
    """The booking party."""

    id: str = Field(default_factory=new_id)
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class TimeSlot(BaseModel):
    """A single bookable time window."""

    start_time: datetime
    end_time: datetime
    provider_id: str


class WorkingWindow(BaseModel):
    """Open and close times of a provider on one date."""

    open_time: datetime
    close_time: datetime

    @field_validator("open_time", "close_time")
    @classmethod
    def _normalize(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def _check_order(self) -> "WorkingWindow":
        if self.close_time <= self.open_time:
            raise ValueError("close_time must be after open_time")
        return self


class Appointment(BaseModel):
    """A booked appointment.

    Duration and buffer are copied from the service at booking time so later
    edits to the service never move existing bookings.
    """

    id: str = Field(default_factory=new_id)
    service_id: str
    provider_id: str
    customer_id: str
    series_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    duration_minutes: int = Field(gt=0)
    buffer_minutes: int = Field(default=0, ge=0)
    status: AppointmentStatus = AppointmentStatus.PENDING
    is_recurring: bool = False
    recur_pattern: Optional[RecurPattern] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def _check_times(self) -> "Appointment":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        if self.is_recurring != (self.recur_pattern is not None):
            raise ValueError("recur_pattern must be present exactly when is_recurring is set")
        return self

    @property
    def span(self) -> Span:
        return Span(self.duration_minutes, self.buffer_minutes)

    @property
    def blocked_until(self) -> datetime:
        return self.end_time + timedelta(minutes=self.buffer_minutes)

    @property
    def is_active(self) -> bool:
        """Whether the appointment still occupies the provider's calendar."""
        return self.status != AppointmentStatus.CANCELED
