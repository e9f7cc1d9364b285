"""Tests for catalog, receptionist and directory endpoints."""

import pytest
from fastapi.testclient import TestClient

from booking_engine.api.app import create_app

NS_PER_MIN = 60_000_000_000
PROVIDER = {"X-Actor-Id": "prov-1", "X-Actor-Role": "provider"}
CUSTOMER = {"X-Actor-Id": "cust-1", "X-Actor-Role": "customer"}


@pytest.fixture
def client():
    client = TestClient(create_app())
    client.post("/api/providers", json={"id": "prov-1", "name": "Dr. Rivera"}, headers=PROVIDER)
    return client


def create_service(client, **overrides):
    body = {"name": "Haircut", "duration": 30 * NS_PER_MIN, "buffer_time": 10 * NS_PER_MIN, "price": "25.00"}
    body.update(overrides)
    return client.post("/api/provider/services", json=body, headers=PROVIDER)


class TestServiceEndpoints:
    def test_create_and_list(self, client):
        created = create_service(client)
        assert created.status_code == 201
        data = created.json()
        assert data["duration"] == 30 * NS_PER_MIN
        assert data["buffer_time"] == 10 * NS_PER_MIN
        assert data["price"] == 25.0

        own = client.get("/api/provider/services", headers=PROVIDER).json()
        public = client.get("/api/providers/prov-1/services").json()
        assert own == public
        assert [s["name"] for s in public] == ["Haircut"]

    def test_partial_minute_duration_rejected(self, client):
        response = create_service(client, duration=30 * NS_PER_MIN + 1)
        assert response.status_code == 422

    def test_negative_price_rejected(self, client):
        assert create_service(client, price="-1").status_code == 422

    def test_customer_cannot_create(self, client):
        response = client.post(
            "/api/provider/services",
            json={"name": "X", "duration": NS_PER_MIN},
            headers=CUSTOMER,
        )
        assert response.status_code == 403

    def test_update(self, client):
        service_id = create_service(client).json()["id"]
        response = client.patch(
            f"/api/provider/services/{service_id}",
            json={"duration": 45 * NS_PER_MIN, "price": "30"},
            headers=PROVIDER,
        )
        assert response.status_code == 200
        assert response.json()["duration"] == 45 * NS_PER_MIN
        assert response.json()["name"] == "Haircut"

        details = client.get(f"/api/appointments/service/{service_id}").json()
        assert details["price"] == 30.0

    def test_unknown_service(self, client):
        response = client.get("/api/appointments/service/missing")
        assert response.status_code == 404


class TestReceptionistEndpoints:
    def test_grant_list_revoke(self, client):
        assert client.post(
            "/api/provider/receptionist", json={"receptionist_id": "recep-1"}, headers=PROVIDER
        ).json() == ["recep-1"]
        assert client.get("/api/provider/receptionist", headers=PROVIDER).json() == ["recep-1"]
        assert client.delete("/api/provider/receptionist/recep-1", headers=PROVIDER).json() == []

    def test_revoke_unknown(self, client):
        response = client.delete("/api/provider/receptionist/recep-9", headers=PROVIDER)
        assert response.status_code == 404


class TestDirectoryEndpoints:
    def test_duplicate_provider(self, client):
        response = client.post("/api/providers", json={"id": "prov-1", "name": "Again"}, headers=PROVIDER)
        assert response.status_code == 409

    def test_get_provider(self, client):
        assert client.get("/api/providers/prov-1").json()["name"] == "Dr. Rivera"
        assert client.get("/api/providers/missing").status_code == 404

    def test_staff_registers_walk_in_with_generated_id(self, client):
        response = client.post("/api/customers", json={"name": "Jane Doe"}, headers=PROVIDER)
        assert response.status_code == 201
        assert response.json()["id"]

    def test_customer_registers_self(self, client):
        response = client.post("/api/customers", json={"name": "Jane Doe"}, headers=CUSTOMER)
        assert response.status_code == 201
        assert response.json()["id"] == "cust-1"

    def test_registration_requires_actor(self, client):
        assert client.post("/api/providers", json={"id": "prov-2", "name": "Dr. Two"}).status_code == 401
        assert client.post("/api/customers", json={"id": "cust-9", "name": "Anon"}).status_code == 401
        assert client.get("/api/providers/prov-2").status_code == 404

    def test_provider_cannot_register_another_id(self, client):
        response = client.post("/api/providers", json={"id": "prov-2", "name": "Dr. Two"}, headers=PROVIDER)
        assert response.status_code == 403
        assert response.json()["code"] == "permission_denied"

    def test_customer_cannot_register_provider_or_other_customer(self, client):
        assert client.post("/api/providers", json={"name": "Dr. Fake"}, headers=CUSTOMER).status_code == 403
        response = client.post("/api/customers", json={"id": "cust-9", "name": "Other"}, headers=CUSTOMER)
        assert response.status_code == 403
