"""Service catalog and receptionist grants, managed by the owning provider."""

import logging
from decimal import Decimal
from typing import Optional

from booking_engine.scheduling.errors import NotFoundError, PermissionDeniedError
from booking_engine.scheduling.models import Actor, ActorRole, Provider, Service
from booking_engine.scheduling.store import SchedulingStore

logger = logging.getLogger(__name__)

# Fields a provider may edit on an existing service. Existing appointments
# keep their own copy of duration and buffer, so edits only affect new
# bookings.
EDITABLE_FIELDS = frozenset({"name", "description", "duration_minutes", "buffer_minutes", "cost"})


class ServiceCatalog:
    """CRUD over a provider's services and receptionist list.

    Only the provider itself may manage either; receptionists have write
    access to appointments, not to the catalog.
    """

    def __init__(self, store: SchedulingStore) -> None:
        self.store = store

    async def _require_owner(self, actor: Actor, provider_id: str, action: str) -> Provider:
        if actor.role != ActorRole.PROVIDER or actor.user_id != provider_id:
            raise PermissionDeniedError(actor.role.value, action)
        provider = await self.store.get_provider(provider_id)
        if provider is None:
            raise NotFoundError("provider", provider_id)
        return provider

    # Services

    async def get_service(self, service_id: str) -> Service:
        service = await self.store.get_service(service_id)
        if service is None:
            raise NotFoundError("service", service_id)
        return service

    async def list_services(self, provider_id: str) -> list[Service]:
        if await self.store.get_provider(provider_id) is None:
            raise NotFoundError("provider", provider_id)
        return await self.store.list_services(provider_id)

    async def create_service(
        self,
        actor: Actor,
        name: str,
        duration_minutes: int,
        buffer_minutes: int = 0,
        cost: Decimal = Decimal("0"),
        description: Optional[str] = None,
    ) -> Service:
        await self._require_owner(actor, actor.user_id, "manage_services")
        service = Service(
            provider_id=actor.user_id,
            name=name,
            description=description,
            duration_minutes=duration_minutes,
            buffer_minutes=buffer_minutes,
            cost=cost,
        )
        await self.store.add_service(service)
        logger.info(f"Created service {service.id} ({name}) for provider={actor.user_id}")
        return service

    async def update_service(self, actor: Actor, service_id: str, **changes) -> Service:
        """Apply a partial edit; ``None`` values are ignored."""
        service = await self.get_service(service_id)
        await self._require_owner(actor, service.provider_id, "manage_services")

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit service fields: {sorted(unknown)}")

        update = {k: v for k, v in changes.items() if v is not None}
        # Re-validate through the model so bounds on duration/cost still hold.
        updated = Service.model_validate({**service.model_dump(), **update})
        await self.store.save_service(updated)
        logger.info(f"Updated service {service_id}: {sorted(update)}")
        return updated

    # Receptionists

    async def list_receptionists(self, actor: Actor) -> list[str]:
        provider = await self._require_owner(actor, actor.user_id, "manage_receptionists")
        return list(provider.receptionist_ids)

    async def grant_receptionist(self, actor: Actor, receptionist_id: str) -> Provider:
        provider = await self._require_owner(actor, actor.user_id, "manage_receptionists")
        if receptionist_id not in provider.receptionist_ids:
            provider.receptionist_ids.append(receptionist_id)
            await self.store.save_provider(provider)
            logger.info(f"Provider {provider.id} granted receptionist {receptionist_id}")
        return provider

    async def revoke_receptionist(self, actor: Actor, receptionist_id: str) -> Provider:
        provider = await self._require_owner(actor, actor.user_id, "manage_receptionists")
        if receptionist_id not in provider.receptionist_ids:
            raise NotFoundError("receptionist", receptionist_id)
        provider.receptionist_ids.remove(receptionist_id)
        await self.store.save_provider(provider)
        logger.info(f"Provider {provider.id} revoked receptionist {receptionist_id}")
        return provider
