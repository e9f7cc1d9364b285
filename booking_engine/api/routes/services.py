"""Service catalog, receptionist grants and the provider/customer directory."""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from booking_engine.api.dependencies import get_actor, get_catalog, get_store
from booking_engine.scheduling.catalog import ServiceCatalog
from booking_engine.scheduling.durations import minutes_to_nanoseconds, nanoseconds_to_minutes
from booking_engine.scheduling.errors import NotFoundError, PermissionDeniedError
from booking_engine.scheduling.models import Actor, ActorRole, Customer, Provider, Service
from booking_engine.scheduling.store import SchedulingStore

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas (durations travel as nanoseconds, prices as decimal dollars)
# ---------------------------------------------------------------------------

class ServiceCreate(BaseModel):
    name: str
    description: Optional[str] = None
    duration: int = Field(gt=0, description="Duration in nanoseconds")
    buffer_time: int = Field(default=0, ge=0, description="Buffer in nanoseconds")
    price: Decimal = Field(default=Decimal("0"), ge=0)


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0)
    buffer_time: Optional[int] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)


class ServiceResponse(BaseModel):
    id: str
    provider_id: str
    name: str
    description: Optional[str] = None
    duration: int
    buffer_time: int
    price: float


class ReceptionistGrant(BaseModel):
    receptionist_id: str


class ProviderCreate(BaseModel):
    id: Optional[str] = None
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class CustomerCreate(BaseModel):
    id: Optional[str] = None
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


def _service_to_response(service: Service) -> ServiceResponse:
    return ServiceResponse(
        id=service.id,
        provider_id=service.provider_id,
        name=service.name,
        description=service.description,
        duration=minutes_to_nanoseconds(service.duration_minutes),
        buffer_time=minutes_to_nanoseconds(service.buffer_minutes),
        price=float(service.cost),
    )


def _to_minutes(nanoseconds: Optional[int]) -> Optional[int]:
    if nanoseconds is None:
        return None
    try:
        return nanoseconds_to_minutes(nanoseconds)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@router.get("/provider/services", response_model=list[ServiceResponse])
async def list_own_services(
    actor: Actor = Depends(get_actor),
    catalog: ServiceCatalog = Depends(get_catalog),
) -> list[ServiceResponse]:
    return [_service_to_response(s) for s in await catalog.list_services(actor.user_id)]


@router.post("/provider/services", response_model=ServiceResponse, status_code=201)
async def create_service(
    body: ServiceCreate,
    actor: Actor = Depends(get_actor),
    catalog: ServiceCatalog = Depends(get_catalog),
) -> ServiceResponse:
    service = await catalog.create_service(
        actor,
        name=body.name,
        description=body.description,
        duration_minutes=_to_minutes(body.duration),
        buffer_minutes=_to_minutes(body.buffer_time),
        cost=body.price,
    )
    return _service_to_response(service)


@router.patch("/provider/services/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: str,
    body: ServiceUpdate,
    actor: Actor = Depends(get_actor),
    catalog: ServiceCatalog = Depends(get_catalog),
) -> ServiceResponse:
    try:
        service = await catalog.update_service(
            actor,
            service_id,
            name=body.name,
            description=body.description,
            duration_minutes=_to_minutes(body.duration),
            buffer_minutes=_to_minutes(body.buffer_time),
            cost=body.price,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _service_to_response(service)


@router.get("/providers/{provider_id}/services", response_model=list[ServiceResponse])
async def list_provider_services(
    provider_id: str,
    catalog: ServiceCatalog = Depends(get_catalog),
) -> list[ServiceResponse]:
    return [_service_to_response(s) for s in await catalog.list_services(provider_id)]


@router.get("/appointments/service/{service_id}", response_model=ServiceResponse)
async def get_service_details(
    service_id: str,
    catalog: ServiceCatalog = Depends(get_catalog),
) -> ServiceResponse:
    return _service_to_response(await catalog.get_service(service_id))


# ---------------------------------------------------------------------------
# Receptionists
# ---------------------------------------------------------------------------

@router.get("/provider/receptionist", response_model=list[str])
async def list_receptionists(
    actor: Actor = Depends(get_actor),
    catalog: ServiceCatalog = Depends(get_catalog),
) -> list[str]:
    return await catalog.list_receptionists(actor)


@router.post("/provider/receptionist", response_model=list[str], status_code=201)
async def grant_receptionist(
    body: ReceptionistGrant,
    actor: Actor = Depends(get_actor),
    catalog: ServiceCatalog = Depends(get_catalog),
) -> list[str]:
    provider = await catalog.grant_receptionist(actor, body.receptionist_id)
    return provider.receptionist_ids


@router.delete("/provider/receptionist/{receptionist_id}", response_model=list[str])
async def revoke_receptionist(
    receptionist_id: str,
    actor: Actor = Depends(get_actor),
    catalog: ServiceCatalog = Depends(get_catalog),
) -> list[str]:
    provider = await catalog.revoke_receptionist(actor, receptionist_id)
    return provider.receptionist_ids


# ---------------------------------------------------------------------------
# Directory (identities come from the auth gateway; this mirrors them locally)
# ---------------------------------------------------------------------------

@router.post("/providers", response_model=Provider, status_code=201)
async def register_provider(
    body: ProviderCreate,
    actor: Actor = Depends(get_actor),
    store: SchedulingStore = Depends(get_store),
) -> Provider:
    """Mirror the calling provider into the directory."""
    if actor.role != ActorRole.PROVIDER or body.id not in (None, actor.user_id):
        raise PermissionDeniedError(actor.role.value, "register_provider")
    provider = Provider(**{**body.model_dump(exclude_none=True), "id": actor.user_id})
    if await store.get_provider(provider.id) is not None:
        raise HTTPException(status_code=409, detail="Provider already exists")
    return await store.add_provider(provider)


@router.get("/providers/{provider_id}", response_model=Provider)
async def get_provider(
    provider_id: str,
    store: SchedulingStore = Depends(get_store),
) -> Provider:
    provider = await store.get_provider(provider_id)
    if provider is None:
        raise NotFoundError("provider", provider_id)
    return provider


@router.post("/customers", response_model=Customer, status_code=201)
async def register_customer(
    body: CustomerCreate,
    actor: Actor = Depends(get_actor),
    store: SchedulingStore = Depends(get_store),
) -> Customer:
    """Customers register themselves; staff may register walk-in customers."""
    data = body.model_dump(exclude_none=True)
    if actor.role == ActorRole.CUSTOMER:
        if body.id not in (None, actor.user_id):
            raise PermissionDeniedError(actor.role.value, "register_customer")
        data["id"] = actor.user_id
    customer = Customer(**data)
    if await store.get_customer(customer.id) is not None:
        raise HTTPException(status_code=409, detail="Customer already exists")
    return await store.add_customer(customer)
