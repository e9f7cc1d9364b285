"""Core scheduling engine: booking, cancellation, rescheduling and status changes."""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional, Union

from booking_engine.scheduling.availability import WorkingHoursSource, compute_available_slots
from booking_engine.scheduling.conflicts import ConflictDetector
from booking_engine.scheduling.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    SchedulingConflictError,
)
from booking_engine.scheduling.events import (
    AppointmentCreated,
    AppointmentRescheduled,
    AppointmentStatusChanged,
    EventBus,
)
from booking_engine.scheduling.lifecycle import (
    check_booking_scope,
    check_capability,
    check_reschedulable,
    check_scope,
    check_transition,
)
from booking_engine.scheduling.locks import ProviderLockRegistry
from booking_engine.scheduling.models import (
    Actor,
    ActorRole,
    Appointment,
    AppointmentStatus,
    Provider,
    RecurPattern,
    Service,
    TimeSlot,
    to_naive_utc,
)
from booking_engine.scheduling.recurrence import (
    DEFAULT_END_AFTER_LIMIT,
    DEFAULT_MAX_OCCURRENCES,
    expand_recurrence,
)
from booking_engine.scheduling.store import SchedulingStore

logger = logging.getLogger(__name__)

_ACTIVE = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SchedulingService:
    """Orchestrates recurrence, conflict detection and the status lifecycle.

    Every check-then-commit runs under the provider's lock and inside the
    store's provider transaction, so two requests racing for the same slot
    cannot both succeed, even from different processes.
    """

    def __init__(
        self,
        store: SchedulingStore,
        locks: Optional[ProviderLockRegistry] = None,
        events: Optional[EventBus] = None,
        working_hours: Optional[WorkingHoursSource] = None,
        slot_granularity_minutes: int = 15,
        max_recurrence_occurrences: int = DEFAULT_MAX_OCCURRENCES,
        max_recurrence_end_after: int = DEFAULT_END_AFTER_LIMIT,
    ) -> None:
        self.store = store
        self.locks = locks or ProviderLockRegistry()
        self.events = events or EventBus()
        self.working_hours = working_hours
        self.slot_granularity_minutes = slot_granularity_minutes
        self.max_recurrence_occurrences = max_recurrence_occurrences
        self.max_recurrence_end_after = max_recurrence_end_after
        self.detector = ConflictDetector()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _require_provider(self, provider_id: str) -> Provider:
        provider = await self.store.get_provider(provider_id)
        if provider is None:
            raise NotFoundError("provider", provider_id)
        return provider

    async def _require_service(self, service_id: str, provider_id: Optional[str] = None) -> Service:
        service = await self.store.get_service(service_id)
        if service is None or (provider_id is not None and service.provider_id != provider_id):
            raise NotFoundError("service", service_id)
        return service

    async def _require_appointment(self, appointment_id: str) -> Appointment:
        appt = await self.store.get_appointment(appointment_id)
        if appt is None:
            raise NotFoundError("appointment", appointment_id)
        return appt

    async def _receptionists(self, provider_id: str) -> list[str]:
        provider = await self.store.get_provider(provider_id)
        return provider.receptionist_ids if provider else []

    async def get_appointment(self, appointment_id: str, actor: Actor) -> Appointment:
        """Fetch one appointment the actor is a party to."""
        appt = await self._require_appointment(appointment_id)
        check_scope(actor, appt, await self._receptionists(appt.provider_id))
        return appt

    async def list_appointments(
        self, actor: Actor, status: Optional[AppointmentStatus] = None
    ) -> list[Appointment]:
        """List the actor's appointments: own bookings or own calendar."""
        statuses = [status] if status is not None else None
        if actor.role == ActorRole.CUSTOMER:
            return await self.store.list_appointments(customer_id=actor.user_id, statuses=statuses)

        provider_id = actor.user_id if actor.role == ActorRole.PROVIDER else actor.provider_id
        if provider_id is None:
            raise PermissionDeniedError(actor.role.value, "list_appointments")
        if actor.role == ActorRole.RECEPTIONIST:
            provider = await self._require_provider(provider_id)
            if actor.user_id not in provider.receptionist_ids:
                raise PermissionDeniedError(actor.role.value, "list_appointments")
        return await self.store.list_appointments(provider_id=provider_id, statuses=statuses)

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    async def get_available_slots(
        self, provider_id: str, day: date, service_id: str
    ) -> list[TimeSlot]:
        """Free start times for *service_id* with *provider_id* on *day*."""
        await self._require_provider(provider_id)
        service = await self._require_service(service_id, provider_id)
        if self.working_hours is None:
            return []
        window = self.working_hours.window_for(provider_id, day)
        if window is None:
            return []

        existing = await self.store.list_appointments(
            provider_id=provider_id,
            overlapping=(window.open_time, window.close_time),
            statuses=_ACTIVE,
        )
        return compute_available_slots(
            provider_id,
            service.span,
            window,
            existing,
            granularity_minutes=self.slot_granularity_minutes,
        )

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    async def create_appointment(
        self,
        service_id: str,
        provider_id: str,
        customer_id: str,
        start_time: datetime,
        actor: Actor,
        recurrence: Optional[RecurPattern] = None,
    ) -> list[Appointment]:
        """Book one appointment, or a whole recurring series, all-or-nothing.

        Raises ``SchedulingConflictError`` with the index of the first
        candidate that overlaps an existing booking; nothing is written in
        that case.
        """
        provider = await self._require_provider(provider_id)
        check_booking_scope(actor, provider_id, customer_id, provider.receptionist_ids)
        service = await self._require_service(service_id, provider_id)
        if await self.store.get_customer(customer_id) is None:
            raise NotFoundError("customer", customer_id)

        start_time = to_naive_utc(start_time)
        span = service.span
        if recurrence is not None:
            candidates = expand_recurrence(
                start_time,
                span,
                recurrence.frequency,
                recurrence.end_after,
                max_occurrences=self.max_recurrence_occurrences,
                end_after_limit=self.max_recurrence_end_after,
            )
        else:
            end, _ = span.effective_span(start_time)
            candidates = [(start_time, end)]

        series_id = str(uuid.uuid4()) if recurrence is not None else None
        window_start = candidates[0][0]
        window_end = span.effective_span(candidates[-1][0])[1]

        async with self.locks.acquire(provider_id), self.store.provider_transaction(provider_id):
            existing = await self.store.list_appointments(
                provider_id=provider_id,
                overlapping=(window_start, window_end),
                statuses=_ACTIVE,
            )

            now = _utcnow()
            accepted: list[Appointment] = []
            for index, (start, end) in enumerate(candidates):
                _, blocked_until = span.effective_span(start)
                clash = self.detector.find_conflict(
                    existing + accepted, provider_id, start, blocked_until
                )
                if clash is not None:
                    logger.info(
                        f"Booking rejected: provider={provider_id} candidate={index} "
                        f"start={start.isoformat()} overlaps appointment={clash.id}"
                    )
                    raise SchedulingConflictError(
                        candidate_index=index, conflicting_appointment_id=clash.id
                    )
                accepted.append(
                    Appointment(
                        service_id=service.id,
                        provider_id=provider_id,
                        customer_id=customer_id,
                        series_id=series_id,
                        start_time=start,
                        end_time=end,
                        duration_minutes=span.duration_minutes,
                        buffer_minutes=span.buffer_minutes,
                        status=AppointmentStatus.PENDING,
                        is_recurring=recurrence is not None,
                        recur_pattern=recurrence,
                        created_at=now,
                        updated_at=now,
                    )
                )

            await self.store.add_appointments(accepted)

        logger.info(
            f"Booked {len(accepted)} appointment(s): provider={provider_id} "
            f"customer={customer_id} service={service.id} series={series_id}"
        )
        self.events.publish(
            AppointmentCreated(
                provider_id=provider_id,
                customer_id=customer_id,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
                appointment_ids=[a.id for a in accepted],
                series_id=series_id,
                service_id=service.id,
                start_times=[a.start_time for a in accepted],
            )
        )
        return accepted

    # ------------------------------------------------------------------
    # Status lifecycle
    # ------------------------------------------------------------------

    async def change_status(
        self,
        appointment_id: str,
        new_status: Union[AppointmentStatus, str],
        actor: Actor,
    ) -> Appointment:
        """Move an appointment along an allowed lifecycle edge."""
        appt = await self._require_appointment(appointment_id)
        receptionists = await self._receptionists(appt.provider_id)
        check_scope(actor, appt, receptionists)

        try:
            requested = AppointmentStatus(new_status)
        except ValueError:
            raise InvalidTransitionError(appt.status.value, str(new_status))

        async with (
            self.locks.acquire(appt.provider_id),
            self.store.provider_transaction(appt.provider_id),
        ):
            appt = await self._require_appointment(appointment_id)
            previous = appt.status
            check_transition(previous, requested, actor)

            updated = appt.model_copy(update={"status": requested, "updated_at": _utcnow()})
            await self.store.save_appointment(updated)

        logger.info(
            f"Appointment {appointment_id}: {previous.value} -> {requested.value} "
            f"by {actor.role.value}={actor.user_id}"
        )
        self.events.publish(
            AppointmentStatusChanged(
                provider_id=updated.provider_id,
                customer_id=updated.customer_id,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
                appointment_id=updated.id,
                previous_status=previous,
                new_status=requested,
            )
        )
        return updated

    async def cancel_appointment(self, appointment_id: str, actor: Actor) -> Appointment:
        """Cancel an appointment. Canceling twice is an invalid transition."""
        return await self.change_status(appointment_id, AppointmentStatus.CANCELED, actor)

    # ------------------------------------------------------------------
    # Reschedule
    # ------------------------------------------------------------------

    async def reschedule_appointment(
        self, appointment_id: str, new_start: datetime, actor: Actor
    ) -> Appointment:
        """Move an open appointment to *new_start*, keeping its booked duration.

        On conflict the stored appointment is left exactly as it was.
        """
        check_capability(actor, "reschedule")
        appt = await self._require_appointment(appointment_id)
        new_start = to_naive_utc(new_start)
        check_scope(actor, appt, await self._receptionists(appt.provider_id))

        async with (
            self.locks.acquire(appt.provider_id),
            self.store.provider_transaction(appt.provider_id),
        ):
            appt = await self._require_appointment(appointment_id)
            check_reschedulable(appt)

            new_end, blocked_until = appt.span.effective_span(new_start)
            existing = await self.store.list_appointments(
                provider_id=appt.provider_id,
                overlapping=(new_start, blocked_until),
                statuses=_ACTIVE,
            )
            clash = self.detector.find_conflict(
                existing,
                appt.provider_id,
                new_start,
                blocked_until,
                exclude_appointment_id=appt.id,
            )
            if clash is not None:
                logger.info(
                    f"Reschedule rejected: appointment={appt.id} "
                    f"new_start={new_start.isoformat()} overlaps appointment={clash.id}"
                )
                raise SchedulingConflictError(conflicting_appointment_id=clash.id)

            updated = appt.model_copy(
                update={"start_time": new_start, "end_time": new_end, "updated_at": _utcnow()}
            )
            await self.store.save_appointment(updated)

        logger.info(
            f"Rescheduled appointment {appt.id}: {appt.start_time.isoformat()} -> "
            f"{new_start.isoformat()}"
        )
        self.events.publish(
            AppointmentRescheduled(
                provider_id=updated.provider_id,
                customer_id=updated.customer_id,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
                appointment_id=updated.id,
                previous_start=appt.start_time,
                previous_end=appt.end_time,
                new_start=updated.start_time,
                new_end=updated.end_time,
            )
        )
        return updated
