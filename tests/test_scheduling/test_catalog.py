"""Tests for the service catalog and receptionist grants."""

from decimal import Decimal

import pytest

from booking_engine.scheduling.catalog import ServiceCatalog
from booking_engine.scheduling.errors import NotFoundError, PermissionDeniedError


@pytest.fixture
def catalog(seeded_store):
    return ServiceCatalog(seeded_store)


class TestServices:
    async def test_create_and_list(self, catalog, provider_actor):
        service = await catalog.create_service(
            provider_actor, name="Beard trim", duration_minutes=20, buffer_minutes=5, cost=Decimal("12.50")
        )

        assert service.provider_id == "prov-1"
        names = [s.name for s in await catalog.list_services("prov-1")]
        assert "Beard trim" in names

    async def test_only_providers_manage_services(self, catalog, customer_actor, receptionist_actor):
        for actor in (customer_actor, receptionist_actor):
            with pytest.raises(PermissionDeniedError):
                await catalog.create_service(actor, name="Nope", duration_minutes=10)

    async def test_update_partial(self, catalog, provider_actor):
        updated = await catalog.update_service(
            provider_actor, "svc-haircut", duration_minutes=45, name=None
        )
        assert updated.duration_minutes == 45
        assert updated.name == "Haircut"
        assert (await catalog.get_service("svc-haircut")).duration_minutes == 45

    async def test_update_rejects_invalid_values(self, catalog, provider_actor):
        with pytest.raises(ValueError):
            await catalog.update_service(provider_actor, "svc-haircut", duration_minutes=0)
        with pytest.raises(ValueError):
            await catalog.update_service(provider_actor, "svc-haircut", provider_id="prov-2")

    async def test_cannot_edit_another_providers_service(self, catalog, provider_actor):
        with pytest.raises(PermissionDeniedError):
            await catalog.update_service(provider_actor, "svc-other", name="Mine now")

    async def test_missing(self, catalog):
        with pytest.raises(NotFoundError):
            await catalog.get_service("svc-missing")
        with pytest.raises(NotFoundError):
            await catalog.list_services("prov-missing")


class TestReceptionists:
    async def test_grant_and_revoke(self, catalog, provider_actor):
        provider = await catalog.grant_receptionist(provider_actor, "recep-2")
        assert provider.receptionist_ids == ["recep-1", "recep-2"]

        # granting twice is a no-op
        await catalog.grant_receptionist(provider_actor, "recep-2")
        assert await catalog.list_receptionists(provider_actor) == ["recep-1", "recep-2"]

        await catalog.revoke_receptionist(provider_actor, "recep-1")
        assert await catalog.list_receptionists(provider_actor) == ["recep-2"]

    async def test_revoke_unknown(self, catalog, provider_actor):
        with pytest.raises(NotFoundError):
            await catalog.revoke_receptionist(provider_actor, "recep-9")

    async def test_receptionist_cannot_grant(self, catalog, receptionist_actor):
        with pytest.raises(PermissionDeniedError):
            await catalog.grant_receptionist(receptionist_actor, "recep-2")
