"""Integration tests for the patient directory REST endpoints.

Runs the full FastAPI app (routers, error handlers, response models)
through an in-process ASGI transport.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.app import create_app


@pytest.fixture
async def client():
    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ---------------------------------------------------------------------------
# GET /api/v1/patients
# ---------------------------------------------------------------------------


async def test_list_all_patients(client):
    resp = await client.get("/api/v1/patients")
    assert resp.status_code == 200
    data = resp.json()
    assert len(data) == 10
    assert data[0] == {
        "id": "P001",
        "name": "John Smith",
        "diagnosis": "Type 2 Diabetes",
        "date": "2023-04-15",
    }


async def test_search_by_diagnosis(client):
    resp = await client.get("/api/v1/patients", params={"q": "THYROID"})
    assert [p["id"] for p in resp.json()] == ["P002", "P006", "P008"]


async def test_search_by_name(client):
    resp = await client.get("/api/v1/patients", params={"q": "garcia"})
    assert [p["id"] for p in resp.json()] == ["P010"]


async def test_search_by_id(client):
    resp = await client.get("/api/v1/patients", params={"q": "p00"})
    assert len(resp.json()) == 9


async def test_search_without_match(client):
    resp = await client.get("/api/v1/patients", params={"q": "zzz"})
    assert resp.status_code == 200
    assert resp.json() == []


async def test_search_query_too_long(client):
    resp = await client.get("/api/v1/patients", params={"q": "x" * 201})
    assert resp.status_code == 422
    assert resp.json()["code"] == "VALIDATION_ERROR"


# ---------------------------------------------------------------------------
# GET /api/v1/patients/{id}
# ---------------------------------------------------------------------------


async def test_get_patient(client):
    resp = await client.get("/api/v1/patients/P005")
    assert resp.status_code == 200
    assert resp.json()["name"] == "Robert Wilson"


async def test_get_patient_not_found(client):
    resp = await client.get("/api/v1/patients/P999")
    assert resp.status_code == 404
    body = resp.json()
    assert body["code"] == "PATIENT_NOT_FOUND"
    assert "P999" in body["detail"]
    assert "timestamp" in body


async def test_patient_id_is_case_sensitive(client):
    resp = await client.get("/api/v1/patients/p001")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# POST /api/v1/patients
# ---------------------------------------------------------------------------


async def test_add_patient_is_acknowledged_not_stored(client):
    resp = await client.post(
        "/api/v1/patients",
        json={"id": "P011", "name": "Ada Lovelace", "diagnosis": "Hypothyroidism"},
    )
    assert resp.status_code == 202
    body = resp.json()
    assert body["accepted"] is True
    assert body["message"] == "Patient would be added here. This is just a demo."
    assert body["patient"]["id"] == "P011"

    listing = await client.get("/api/v1/patients")
    assert len(listing.json()) == 10


async def test_add_patient_requires_name(client):
    resp = await client.post("/api/v1/patients", json={"id": "P011", "name": ""})
    assert resp.status_code == 422
    assert resp.json()["code"] == "VALIDATION_ERROR"
