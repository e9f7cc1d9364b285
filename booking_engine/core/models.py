"""SQLAlchemy 2.0 async models for the booking schema."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class ProviderDB(Base):
    __tablename__ = "providers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(20))
    address: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    services: Mapped[list[ServiceDB]] = relationship(back_populates="provider", lazy="selectin")
    receptionists: Mapped[list[ReceptionistGrantDB]] = relationship(
        back_populates="provider", lazy="selectin", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_providers_email", "email"),
    )


class ReceptionistGrantDB(Base):
    """Delegated write access to a provider's appointments."""

    __tablename__ = "receptionist_grants"

    provider_id: Mapped[str] = mapped_column(String(36), ForeignKey("providers.id", ondelete="CASCADE"), primary_key=True)
    receptionist_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    granted_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    provider: Mapped[ProviderDB] = relationship(back_populates="receptionists")


class CustomerDB(Base):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)


class ServiceDB(Base):
    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    provider_id: Mapped[str] = mapped_column(String(36), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    buffer_minutes: Mapped[int] = mapped_column(Integer, default=0)
    cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    provider: Mapped[ProviderDB] = relationship(back_populates="services")

    __table_args__ = (
        Index("ix_services_provider_id", "provider_id"),
    )


class AppointmentDB(Base):
    """Stored appointment. Times are naive UTC; ``blocked_until`` is denormalized
    so overlap queries can run in SQL."""

    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    service_id: Mapped[str] = mapped_column(String(36), ForeignKey("services.id"), nullable=False)
    provider_id: Mapped[str] = mapped_column(String(36), ForeignKey("providers.id"), nullable=False)
    customer_id: Mapped[str] = mapped_column(String(36), ForeignKey("customers.id"), nullable=False)
    series_id: Mapped[str | None] = mapped_column(String(36))
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    blocked_until: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    buffer_minutes: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default="pending")
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False)
    recur_frequency: Mapped[str | None] = mapped_column(String(10))
    recur_end_after: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_appointments_provider_start", "provider_id", "start_time"),
        Index("ix_appointments_customer_id", "customer_id"),
        Index("ix_appointments_series_id", "series_id"),
        Index("ix_appointments_status", "status"),
    )
