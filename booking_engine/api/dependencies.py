"""FastAPI dependencies: caller identity and per-request engine wiring."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from booking_engine.config import get_settings
from booking_engine.core.database import _get_session_factory
from booking_engine.core.repository import SqlSchedulingStore
from booking_engine.scheduling.catalog import ServiceCatalog
from booking_engine.scheduling.models import Actor, ActorRole
from booking_engine.scheduling.service import SchedulingService
from booking_engine.scheduling.store import SchedulingStore


async def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
    x_provider_id: Optional[str] = Header(None),
) -> Actor:
    """Resolve the caller from headers set by the auth gateway.

    The engine trusts these values; authenticating the user is the gateway's
    job. Receptionists also send the provider they act for.
    """
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        role = ActorRole(x_actor_role.lower())
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown role: {x_actor_role}")
    return Actor(user_id=x_actor_id, role=role, provider_id=x_provider_id)


async def get_store(request: Request) -> AsyncGenerator[SchedulingStore, None]:
    """Yield the configured store: SQL when a database is set, else the shared in-memory one."""
    if not get_settings().uses_database:
        yield request.app.state.memory_store
        return
    async with _get_session_factory()() as session:
        yield SqlSchedulingStore(session)


async def get_scheduling_service(
    request: Request,
    store: SchedulingStore = Depends(get_store),
) -> SchedulingService:
    settings = get_settings()
    return SchedulingService(
        store,
        locks=request.app.state.locks,
        events=request.app.state.events,
        working_hours=request.app.state.working_hours,
        slot_granularity_minutes=settings.slot_granularity_minutes,
        max_recurrence_occurrences=settings.max_recurrence_occurrences,
        max_recurrence_end_after=settings.max_recurrence_end_after,
    )


async def get_catalog(store: SchedulingStore = Depends(get_store)) -> ServiceCatalog:
    return ServiceCatalog(store)
