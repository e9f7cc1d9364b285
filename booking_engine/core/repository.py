"""SQL-backed scheduling store.

Writes commit immediately so that a booking is durable before the caller
releases the provider lock; a second request can never read the calendar
between another request's conflict check and its commit. Across processes
the same guarantee comes from a row lock on the provider, taken in the
transaction that reads the calendar and ends with the insert.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Iterable, Optional

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.models import (
    AppointmentDB,
    CustomerDB,
    ProviderDB,
    ReceptionistGrantDB,
    ServiceDB,
)
from booking_engine.scheduling.models import (
    Appointment,
    AppointmentStatus,
    Customer,
    Provider,
    RecurPattern,
    Service,
    to_naive_utc,
)


# ---------------------------------------------------------------------------
# Row <-> model conversion
# ---------------------------------------------------------------------------

def _service_to_model(row: ServiceDB) -> Service:
    return Service(
        id=row.id,
        provider_id=row.provider_id,
        name=row.name,
        description=row.description,
        duration_minutes=row.duration_minutes,
        buffer_minutes=row.buffer_minutes,
        cost=row.cost,
    )


def _provider_to_model(row: ProviderDB) -> Provider:
    return Provider(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        address=row.address,
        receptionist_ids=[g.receptionist_id for g in row.receptionists],
    )


def _customer_to_model(row: CustomerDB) -> Customer:
    return Customer(id=row.id, name=row.name, email=row.email, phone=row.phone)


def _appt_to_model(row: AppointmentDB) -> Appointment:
    pattern = None
    if row.is_recurring:
        pattern = RecurPattern(frequency=row.recur_frequency, end_after=row.recur_end_after)
    return Appointment(
        id=row.id,
        service_id=row.service_id,
        provider_id=row.provider_id,
        customer_id=row.customer_id,
        series_id=row.series_id,
        start_time=row.start_time,
        end_time=row.end_time,
        duration_minutes=row.duration_minutes,
        buffer_minutes=row.buffer_minutes,
        status=AppointmentStatus(row.status),
        is_recurring=row.is_recurring,
        recur_pattern=pattern,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _apply_appt(row: AppointmentDB, appt: Appointment) -> AppointmentDB:
    row.service_id = appt.service_id
    row.provider_id = appt.provider_id
    row.customer_id = appt.customer_id
    row.series_id = appt.series_id
    row.start_time = appt.start_time
    row.end_time = appt.end_time
    row.blocked_until = appt.blocked_until
    row.duration_minutes = appt.duration_minutes
    row.buffer_minutes = appt.buffer_minutes
    row.status = appt.status.value
    row.is_recurring = appt.is_recurring
    row.recur_frequency = appt.recur_pattern.frequency if appt.recur_pattern else None
    row.recur_end_after = appt.recur_pattern.end_after if appt.recur_pattern else None
    row.created_at = to_naive_utc(appt.created_at)
    row.updated_at = to_naive_utc(appt.updated_at)
    return row


def provider_lock_statement(provider_id: str) -> Select:
    """Row lock on the provider; SQLite renders it without FOR UPDATE."""
    return select(ProviderDB.id).where(ProviderDB.id == provider_id).with_for_update()


class SqlSchedulingStore:
    """``SchedulingStore`` over an ``AsyncSession``."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    @asynccontextmanager
    async def provider_transaction(self, provider_id: str) -> AsyncIterator[None]:
        """Hold the provider row lock until the enclosed write commits.

        Serializes calendar writes for one provider across processes. If the
        block raises, the transaction is rolled back and the lock released.
        """
        await self.session.execute(provider_lock_statement(provider_id))
        try:
            yield
        except Exception:
            await self.session.rollback()
            raise

    # --- Services ---

    async def get_service(self, service_id: str) -> Optional[Service]:
        row = await self.session.get(ServiceDB, service_id)
        return _service_to_model(row) if row else None

    async def list_services(self, provider_id: str) -> list[Service]:
        stmt = select(ServiceDB).where(ServiceDB.provider_id == provider_id).order_by(ServiceDB.name)
        result = await self.session.execute(stmt)
        return [_service_to_model(r) for r in result.scalars().all()]

    async def add_service(self, service: Service) -> Service:
        self.session.add(
            ServiceDB(
                id=service.id,
                provider_id=service.provider_id,
                name=service.name,
                description=service.description,
                duration_minutes=service.duration_minutes,
                buffer_minutes=service.buffer_minutes,
                cost=service.cost,
            )
        )
        await self._commit()
        return service

    async def save_service(self, service: Service) -> Service:
        row = await self.session.get(ServiceDB, service.id)
        if row is None:
            raise KeyError(service.id)
        row.name = service.name
        row.description = service.description
        row.duration_minutes = service.duration_minutes
        row.buffer_minutes = service.buffer_minutes
        row.cost = service.cost
        await self._commit()
        return service

    # --- Providers / customers ---

    async def get_provider(self, provider_id: str) -> Optional[Provider]:
        row = await self.session.get(ProviderDB, provider_id)
        return _provider_to_model(row) if row else None

    async def add_provider(self, provider: Provider) -> Provider:
        row = ProviderDB(
            id=provider.id,
            name=provider.name,
            email=provider.email,
            phone=provider.phone,
            address=provider.address,
        )
        row.receptionists = [ReceptionistGrantDB(receptionist_id=r) for r in provider.receptionist_ids]
        self.session.add(row)
        await self._commit()
        return provider

    async def save_provider(self, provider: Provider) -> Provider:
        row = await self.session.get(ProviderDB, provider.id)
        if row is None:
            raise KeyError(provider.id)
        row.name = provider.name
        row.email = provider.email
        row.phone = provider.phone
        row.address = provider.address

        current = {g.receptionist_id: g for g in row.receptionists}
        wanted = set(provider.receptionist_ids)
        for rid, grant in current.items():
            if rid not in wanted:
                row.receptionists.remove(grant)
        for rid in provider.receptionist_ids:
            if rid not in current:
                row.receptionists.append(ReceptionistGrantDB(receptionist_id=rid))
        await self._commit()
        return provider

    async def get_customer(self, customer_id: str) -> Optional[Customer]:
        row = await self.session.get(CustomerDB, customer_id)
        return _customer_to_model(row) if row else None

    async def add_customer(self, customer: Customer) -> Customer:
        self.session.add(
            CustomerDB(id=customer.id, name=customer.name, email=customer.email, phone=customer.phone)
        )
        await self._commit()
        return customer

    # --- Appointments ---

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        row = await self.session.get(AppointmentDB, appointment_id, populate_existing=True)
        return _appt_to_model(row) if row else None

    async def list_appointments(
        self,
        provider_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        overlapping: Optional[tuple[datetime, datetime]] = None,
        statuses: Optional[Iterable[AppointmentStatus]] = None,
    ) -> list[Appointment]:
        stmt = select(AppointmentDB)
        if provider_id is not None:
            stmt = stmt.where(AppointmentDB.provider_id == provider_id)
        if customer_id is not None:
            stmt = stmt.where(AppointmentDB.customer_id == customer_id)
        if statuses is not None:
            stmt = stmt.where(AppointmentDB.status.in_([s.value for s in statuses]))
        if overlapping is not None:
            start, end = overlapping
            stmt = stmt.where(
                AppointmentDB.start_time < to_naive_utc(end),
                AppointmentDB.blocked_until > to_naive_utc(start),
            )
        stmt = stmt.order_by(AppointmentDB.start_time).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return [_appt_to_model(r) for r in result.scalars().all()]

    async def add_appointments(self, appointments: list[Appointment]) -> None:
        """Insert the whole batch in one transaction."""
        self.session.add_all([_apply_appt(AppointmentDB(id=a.id), a) for a in appointments])
        await self._commit()

    async def save_appointment(self, appointment: Appointment) -> None:
        row = await self.session.get(AppointmentDB, appointment.id)
        if row is None:
            raise KeyError(appointment.id)
        _apply_appt(row, appointment)
        await self._commit()
