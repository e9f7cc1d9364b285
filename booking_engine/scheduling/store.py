"""Persistence collaborator for the scheduling engine.

``SchedulingStore`` is what the service needs from storage. The in-memory
implementation here backs tests and single-process deployments; the SQL
implementation lives in ``booking_engine.core.repository``.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncContextManager, AsyncIterator, Iterable, Optional, Protocol

from booking_engine.scheduling.models import (
    Appointment,
    AppointmentStatus,
    Customer,
    Provider,
    Service,
)


class SchedulingStore(Protocol):
    async def get_service(self, service_id: str) -> Optional[Service]: ...

    async def list_services(self, provider_id: str) -> list[Service]: ...

    async def add_service(self, service: Service) -> Service: ...

    async def save_service(self, service: Service) -> Service: ...

    async def get_provider(self, provider_id: str) -> Optional[Provider]: ...

    async def add_provider(self, provider: Provider) -> Provider: ...

    async def save_provider(self, provider: Provider) -> Provider: ...

    async def get_customer(self, customer_id: str) -> Optional[Customer]: ...

    async def add_customer(self, customer: Customer) -> Customer: ...

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]: ...

    async def list_appointments(
        self,
        provider_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        overlapping: Optional[tuple[datetime, datetime]] = None,
        statuses: Optional[Iterable[AppointmentStatus]] = None,
    ) -> list[Appointment]: ...

    async def add_appointments(self, appointments: list[Appointment]) -> None:
        """Persist all of *appointments* or none of them."""
        ...

    async def save_appointment(self, appointment: Appointment) -> None: ...

    def provider_transaction(self, provider_id: str) -> AsyncContextManager[None]:
        """Serialize calendar writes for *provider_id* across processes."""
        ...


class InMemorySchedulingStore:
    """Dictionary-backed store. Returned objects are copies."""

    def __init__(self) -> None:
        self.services: dict[str, Service] = {}
        self.providers: dict[str, Provider] = {}
        self.customers: dict[str, Customer] = {}
        self.appointments: dict[str, Appointment] = {}

    # Reference data

    async def get_service(self, service_id: str) -> Optional[Service]:
        service = self.services.get(service_id)
        return service.model_copy(deep=True) if service else None

    async def list_services(self, provider_id: str) -> list[Service]:
        return [
            s.model_copy(deep=True) for s in self.services.values() if s.provider_id == provider_id
        ]

    async def add_service(self, service: Service) -> Service:
        self.services[service.id] = service.model_copy(deep=True)
        return service

    async def save_service(self, service: Service) -> Service:
        self.services[service.id] = service.model_copy(deep=True)
        return service

    async def get_provider(self, provider_id: str) -> Optional[Provider]:
        provider = self.providers.get(provider_id)
        return provider.model_copy(deep=True) if provider else None

    async def add_provider(self, provider: Provider) -> Provider:
        self.providers[provider.id] = provider.model_copy(deep=True)
        return provider

    async def save_provider(self, provider: Provider) -> Provider:
        self.providers[provider.id] = provider.model_copy(deep=True)
        return provider

    async def get_customer(self, customer_id: str) -> Optional[Customer]:
        customer = self.customers.get(customer_id)
        return customer.model_copy(deep=True) if customer else None

    async def add_customer(self, customer: Customer) -> Customer:
        self.customers[customer.id] = customer.model_copy(deep=True)
        return customer

    # Appointments

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        appt = self.appointments.get(appointment_id)
        return appt.model_copy(deep=True) if appt else None

    async def list_appointments(
        self,
        provider_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        overlapping: Optional[tuple[datetime, datetime]] = None,
        statuses: Optional[Iterable[AppointmentStatus]] = None,
    ) -> list[Appointment]:
        wanted = set(statuses) if statuses is not None else None
        results = []
        for appt in self.appointments.values():
            if provider_id is not None and appt.provider_id != provider_id:
                continue
            if customer_id is not None and appt.customer_id != customer_id:
                continue
            if wanted is not None and appt.status not in wanted:
                continue
            if overlapping is not None:
                start, end = overlapping
                if not (appt.start_time < end and appt.blocked_until > start):
                    continue
            results.append(appt.model_copy(deep=True))
        results.sort(key=lambda a: a.start_time)
        return results

    @asynccontextmanager
    async def provider_transaction(self, provider_id: str) -> AsyncIterator[None]:
        # Single process: the provider lock registry already serializes writers.
        yield

    async def add_appointments(self, appointments: list[Appointment]) -> None:
        duplicates = [a.id for a in appointments if a.id in self.appointments]
        if duplicates:
            raise ValueError(f"Appointments already exist: {duplicates}")
        for appt in appointments:
            self.appointments[appt.id] = appt.model_copy(deep=True)

    async def save_appointment(self, appointment: Appointment) -> None:
        if appointment.id not in self.appointments:
            raise KeyError(appointment.id)
        self.appointments[appointment.id] = appointment.model_copy(deep=True)
