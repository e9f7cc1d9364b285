"""Appointment endpoints: booking, lifecycle, reschedule, availability and dashboards."""

from datetime import date, datetime
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, BeforeValidator

from booking_engine.api.dependencies import get_actor, get_scheduling_service
from booking_engine.scheduling.durations import minutes_to_nanoseconds
from booking_engine.scheduling.errors import InvalidRecurrenceError, PermissionDeniedError
from booking_engine.scheduling.models import (
    Actor,
    ActorRole,
    Appointment,
    AppointmentStatus,
    RecurPattern,
    utc_now_naive,
)
from booking_engine.scheduling.reports import (
    AppointmentStats,
    appointment_history,
    appointment_stats,
    split_upcoming_past,
    upcoming_appointments,
)
from booking_engine.scheduling.service import SchedulingService

router = APIRouter()

# The frontend sends numeric ids; the engine uses strings throughout.
EntityId = Annotated[str, BeforeValidator(str)]


# ---------------------------------------------------------------------------
# Pydantic request/response schemas
# ---------------------------------------------------------------------------

class RecurPatternIn(BaseModel):
    frequency: str
    end_after: Optional[int] = None


class AppointmentCreate(BaseModel):
    service_id: EntityId
    provider_id: EntityId
    customer_id: Optional[EntityId] = None
    start_time: datetime
    is_recurring: bool = False
    recur_pattern: Optional[RecurPatternIn] = None


class StatusUpdate(BaseModel):
    status: str


class RescheduleRequest(BaseModel):
    start_time: datetime


class ServiceSummary(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: Optional[float] = None
    duration: int


class ProviderSummary(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class CustomerSummary(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class SeriesOccurrence(BaseModel):
    id: str
    start_time: datetime
    end_time: datetime


class AppointmentResponse(BaseModel):
    id: str
    start_time: datetime
    end_time: datetime
    status: str
    is_recurring: bool
    recur_pattern: Optional[RecurPatternIn] = None
    series_id: Optional[str] = None
    service: ServiceSummary
    provider: ProviderSummary
    customer: CustomerSummary
    series: list[SeriesOccurrence] = []


class AppointmentActionResponse(BaseModel):
    message: str
    appointment: AppointmentResponse


class HistoryResponse(BaseModel):
    appointments: list[AppointmentResponse]
    total: int
    page: int
    limit: int
    pages: int
    range: str
    status: str


class UpcomingResponse(BaseModel):
    appointments: list[AppointmentResponse]
    count: int
    filter: str
    start_date: datetime
    end_date: Optional[datetime] = None


class AvailableSlotsResponse(BaseModel):
    slots: list[datetime]
    provider_id: str
    date: str
    service_id: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _present(svc: SchedulingService, appointments: list[Appointment]) -> list[AppointmentResponse]:
    """Expand appointments into the nested shape the dashboards render."""
    store = svc.store
    services: dict = {}
    providers: dict = {}
    customers: dict = {}
    results = []
    for appt in appointments:
        if appt.service_id not in services:
            services[appt.service_id] = await store.get_service(appt.service_id)
        if appt.provider_id not in providers:
            providers[appt.provider_id] = await store.get_provider(appt.provider_id)
        if appt.customer_id not in customers:
            customers[appt.customer_id] = await store.get_customer(appt.customer_id)
        service = services[appt.service_id]
        provider = providers[appt.provider_id]
        customer = customers[appt.customer_id]

        results.append(
            AppointmentResponse(
                id=appt.id,
                start_time=appt.start_time,
                end_time=appt.end_time,
                status=appt.status.value,
                is_recurring=appt.is_recurring,
                recur_pattern=(
                    RecurPatternIn(**appt.recur_pattern.model_dump()) if appt.recur_pattern else None
                ),
                series_id=appt.series_id,
                service=ServiceSummary(
                    id=appt.service_id,
                    name=service.name if service else "",
                    description=service.description if service else None,
                    price=float(service.cost) if service else None,
                    # Booked duration, not the service's current one.
                    duration=minutes_to_nanoseconds(appt.duration_minutes),
                ),
                provider=ProviderSummary(
                    id=appt.provider_id,
                    name=provider.name if provider else "",
                    email=provider.email if provider else None,
                    phone=provider.phone if provider else None,
                    address=provider.address if provider else None,
                ),
                customer=CustomerSummary(
                    id=appt.customer_id,
                    name=customer.name if customer else "",
                    email=customer.email if customer else None,
                    phone=customer.phone if customer else None,
                ),
            )
        )
    return results


async def _present_one(svc: SchedulingService, appt: Appointment) -> AppointmentResponse:
    return (await _present(svc, [appt]))[0]


def _require_staff(actor: Actor, action: str) -> None:
    if actor.role not in (ActorRole.PROVIDER, ActorRole.RECEPTIONIST):
        raise PermissionDeniedError(actor.role.value, action)


def _parse_status(value: Optional[str]) -> Optional[AppointmentStatus]:
    if not value:
        return None
    try:
        return AppointmentStatus(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown status: {value}")


# ---------------------------------------------------------------------------
# Booking and shared views
# ---------------------------------------------------------------------------

@router.post("/appointments", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    body: AppointmentCreate,
    actor: Actor = Depends(get_actor),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> AppointmentResponse:
    """Book a single appointment or a recurring series (all-or-nothing)."""
    if body.is_recurring and body.recur_pattern is None:
        raise InvalidRecurrenceError({"field": "recur_pattern", "value": None})
    if not body.is_recurring and body.recur_pattern is not None:
        raise InvalidRecurrenceError({"field": "is_recurring", "value": False})
    recurrence = RecurPattern(**body.recur_pattern.model_dump()) if body.is_recurring else None

    customer_id = body.customer_id
    if customer_id is None:
        if actor.role != ActorRole.CUSTOMER:
            raise HTTPException(status_code=422, detail="customer_id is required")
        customer_id = actor.user_id

    booked = await svc.create_appointment(
        service_id=body.service_id,
        provider_id=body.provider_id,
        customer_id=customer_id,
        start_time=body.start_time,
        actor=actor,
        recurrence=recurrence,
    )
    response = await _present_one(svc, booked[0])
    if len(booked) > 1:
        response.series = [
            SeriesOccurrence(id=a.id, start_time=a.start_time, end_time=a.end_time) for a in booked
        ]
    return response


@router.get("/appointments", response_model=list[AppointmentResponse])
async def list_my_appointments(
    actor: Actor = Depends(get_actor),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> list[AppointmentResponse]:
    return await _present(svc, await svc.list_appointments(actor))


@router.get("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    actor: Actor = Depends(get_actor),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> AppointmentResponse:
    return await _present_one(svc, await svc.get_appointment(appointment_id, actor))


@router.get("/providers/available-time-slots/{provider_id}", response_model=AvailableSlotsResponse)
async def get_available_slots(
    provider_id: str,
    date: date = Query(...),
    service_id: str = Query(...),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> AvailableSlotsResponse:
    """Free start times for a service on one day."""
    slots = await svc.get_available_slots(provider_id, date, service_id)
    return AvailableSlotsResponse(
        slots=[s.start_time for s in slots],
        provider_id=provider_id,
        date=date.isoformat(),
        service_id=service_id,
    )


# ---------------------------------------------------------------------------
# Consumer
# ---------------------------------------------------------------------------

@router.patch("/consumer/cancel-appointment/{appointment_id}", response_model=AppointmentActionResponse)
async def cancel_appointment(
    appointment_id: str,
    actor: Actor = Depends(get_actor),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> AppointmentActionResponse:
    appt = await svc.cancel_appointment(appointment_id, actor)
    return AppointmentActionResponse(
        message="Appointment canceled", appointment=await _present_one(svc, appt)
    )


@router.get("/consumer/upcomping-appointments", response_model=list[AppointmentResponse])
async def consumer_appointments_by_time(
    status: Literal["upcoming", "past"] = Query("upcoming"),
    actor: Actor = Depends(get_actor),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> list[AppointmentResponse]:
    if actor.role != ActorRole.CUSTOMER:
        raise PermissionDeniedError(actor.role.value, "consumer_appointments")
    upcoming, past = split_upcoming_past(await svc.list_appointments(actor), utc_now_naive())
    return await _present(svc, upcoming if status == "upcoming" else past)


# ---------------------------------------------------------------------------
# Provider / receptionist
# ---------------------------------------------------------------------------

@router.get("/provider/appointments", response_model=list[AppointmentResponse])
async def provider_appointments(
    status: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    actor: Actor = Depends(get_actor),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> list[AppointmentResponse]:
    _require_staff(actor, "provider_appointments")
    appts = await svc.list_appointments(actor, status=_parse_status(status))
    if limit is not None:
        appts = appts[:limit]
    return await _present(svc, appts)


@router.get("/provider/appointments/stats", response_model=AppointmentStats)
async def provider_appointment_stats(
    actor: Actor = Depends(get_actor),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> AppointmentStats:
    _require_staff(actor, "appointment_stats")
    return appointment_stats(await svc.list_appointments(actor), utc_now_naive().date())


@router.get("/provider/appointments/upcoming", response_model=UpcomingResponse)
async def provider_upcoming(
    filter: str = Query("month"),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> UpcomingResponse:
    _require_staff(actor, "upcoming_appointments")
    try:
        view = upcoming_appointments(
            await svc.list_appointments(actor), utc_now_naive(), filter_name=filter, limit=limit
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return UpcomingResponse(
        appointments=await _present(svc, view.appointments),
        count=view.count,
        filter=view.filter,
        start_date=view.start_date,
        end_date=view.end_date,
    )


@router.get("/provider/appointments/history", response_model=HistoryResponse)
async def provider_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    range: str = Query("month"),
    actor: Actor = Depends(get_actor),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> HistoryResponse:
    _require_staff(actor, "appointment_history")
    try:
        view = appointment_history(
            await svc.list_appointments(actor),
            utc_now_naive(),
            page=page,
            limit=limit,
            status=_parse_status(status),
            range_name=range,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return HistoryResponse(
        appointments=await _present(svc, view.appointments),
        total=view.total,
        page=view.page,
        limit=view.limit,
        pages=view.pages,
        range=view.range,
        status=view.status,
    )


@router.get("/provider/appointments/{appointment_id}", response_model=AppointmentResponse)
async def provider_appointment_details(
    appointment_id: str,
    actor: Actor = Depends(get_actor),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> AppointmentResponse:
    _require_staff(actor, "appointment_details")
    return await _present_one(svc, await svc.get_appointment(appointment_id, actor))


@router.patch("/provider/appointments/{appointment_id}/status", response_model=AppointmentActionResponse)
async def update_appointment_status(
    appointment_id: str,
    body: StatusUpdate,
    actor: Actor = Depends(get_actor),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> AppointmentActionResponse:
    appt = await svc.change_status(appointment_id, body.status, actor)
    return AppointmentActionResponse(
        message=f"Appointment {appt.status.value}", appointment=await _present_one(svc, appt)
    )


@router.patch("/provider/appointments/{appointment_id}/reschedule", response_model=AppointmentActionResponse)
async def reschedule_appointment(
    appointment_id: str,
    body: RescheduleRequest,
    actor: Actor = Depends(get_actor),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> AppointmentActionResponse:
    appt = await svc.reschedule_appointment(appointment_id, body.start_time, actor)
    return AppointmentActionResponse(
        message="Appointment rescheduled", appointment=await _present_one(svc, appt)
    )
