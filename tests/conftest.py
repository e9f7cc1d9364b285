"""Pytest configuration and fixtures."""

from decimal import Decimal

import pytest

from booking_engine.scheduling.models import (
    Actor,
    ActorRole,
    Customer,
    Provider,
    Service,
)
from booking_engine.scheduling.store import InMemorySchedulingStore

PROVIDER_ID = "prov-1"
OTHER_PROVIDER_ID = "prov-2"
CUSTOMER_ID = "cust-1"
OTHER_CUSTOMER_ID = "cust-2"
RECEPTIONIST_ID = "recep-1"


@pytest.fixture
def provider_actor() -> Actor:
    return Actor(user_id=PROVIDER_ID, role=ActorRole.PROVIDER)


@pytest.fixture
def customer_actor() -> Actor:
    return Actor(user_id=CUSTOMER_ID, role=ActorRole.CUSTOMER)


@pytest.fixture
def receptionist_actor() -> Actor:
    return Actor(user_id=RECEPTIONIST_ID, role=ActorRole.RECEPTIONIST, provider_id=PROVIDER_ID)


@pytest.fixture
def store() -> InMemorySchedulingStore:
    return InMemorySchedulingStore()


@pytest.fixture
async def seeded_store(store: InMemorySchedulingStore) -> InMemorySchedulingStore:
    """Two providers, two customers and a few services."""
    await store.add_provider(
        Provider(id=PROVIDER_ID, name="Dr. Rivera", email="rivera@example.com", receptionist_ids=[RECEPTIONIST_ID])
    )
    await store.add_provider(Provider(id=OTHER_PROVIDER_ID, name="Dr. Okafor"))
    await store.add_customer(Customer(id=CUSTOMER_ID, name="Jane Doe", email="jane@example.com"))
    await store.add_customer(Customer(id=OTHER_CUSTOMER_ID, name="John Roe"))
    await store.add_service(
        Service(id="svc-haircut", provider_id=PROVIDER_ID, name="Haircut", duration_minutes=30, buffer_minutes=10, cost=Decimal("25.00"))
    )
    await store.add_service(
        Service(id="svc-consult", provider_id=PROVIDER_ID, name="Consultation", duration_minutes=60, cost=Decimal("80.00"))
    )
    await store.add_service(
        Service(id="svc-quick", provider_id=PROVIDER_ID, name="Quick check", duration_minutes=15)
    )
    await store.add_service(
        Service(id="svc-other", provider_id=OTHER_PROVIDER_ID, name="Massage", duration_minutes=45)
    )
    return store
