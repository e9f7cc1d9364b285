"""Appointment scheduling engine."""

from booking_engine.scheduling.availability import (
    WeeklyWorkingHours,
    WorkingHoursSource,
    compute_available_slots,
)
from booking_engine.scheduling.catalog import ServiceCatalog
from booking_engine.scheduling.conflicts import ConflictDetector, intervals_overlap
from booking_engine.scheduling.durations import Span
from booking_engine.scheduling.errors import (
    InvalidRecurrenceError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    SchedulingConflictError,
    SchedulingError,
)
from booking_engine.scheduling.events import (
    AppointmentCreated,
    AppointmentRescheduled,
    AppointmentStatusChanged,
    DomainEvent,
    EventBus,
)
from booking_engine.scheduling.locks import ProviderLockRegistry
from booking_engine.scheduling.models import (
    Actor,
    ActorRole,
    Appointment,
    AppointmentStatus,
    Customer,
    Frequency,
    Provider,
    RecurPattern,
    Service,
    TimeSlot,
    WorkingWindow,
)
from booking_engine.scheduling.recurrence import expand_recurrence
from booking_engine.scheduling.service import SchedulingService
from booking_engine.scheduling.store import InMemorySchedulingStore, SchedulingStore

__all__ = [
    "Actor",
    "ActorRole",
    "Appointment",
    "AppointmentCreated",
    "AppointmentRescheduled",
    "AppointmentStatus",
    "AppointmentStatusChanged",
    "ConflictDetector",
    "Customer",
    "DomainEvent",
    "EventBus",
    "Frequency",
    "InMemorySchedulingStore",
    "InvalidRecurrenceError",
    "InvalidTransitionError",
    "NotFoundError",
    "PermissionDeniedError",
    "Provider",
    "ProviderLockRegistry",
    "RecurPattern",
    "SchedulingConflictError",
    "SchedulingError",
    "SchedulingService",
    "SchedulingStore",
    "Service",
    "ServiceCatalog",
    "Span",
    "TimeSlot",
    "WeeklyWorkingHours",
    "WorkingHoursSource",
    "WorkingWindow",
    "compute_available_slots",
    "expand_recurrence",
    "intervals_overlap",
]
