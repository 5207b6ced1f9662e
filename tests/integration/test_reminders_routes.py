"""Integration tests for /reminders endpoints."""

import uuid
from datetime import date, timedelta

from fastapi.testclient import TestClient

DEPARTURE = date.today() + timedelta(days=30)
TICKET = f"Flight AB123, departs {DEPARTURE.isoformat()} 14:00, Gate 5".encode()


def _upload_ticket(client: TestClient) -> dict:
    response = client.post("/documents", files={"file": ("ticket.txt", TICKET, "text/plain")})
    assert response.status_code == 201
    return response.json()


def test_create_manual_reminder(api_client: TestClient) -> None:
    response = api_client.post(
        "/reminders",
        json={"title": "Buy travel adapter", "date": "2027-02-20", "time": "09:15"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["source"] == "manual"
    assert data["document_id"] is None
    assert data["priority"] == "Medium"
    assert api_client.get("/reminders").json() == [data]


def test_create_rejects_bad_time(api_client: TestClient) -> None:
    response = api_client.post(
        "/reminders", json={"title": "Call embassy", "date": "2027-02-20", "time": "25:00"}
    )

    assert response.status_code == 422


def test_list_sorted_by_date_then_time(api_client: TestClient) -> None:
    _upload_ticket(api_client)
    api_client.post("/reminders", json={"title": "Pack", "date": DEPARTURE.isoformat()})
    api_client.post(
        "/reminders", json={"title": "Earlier", "date": (DEPARTURE - timedelta(days=1)).isoformat()}
    )

    reminders = api_client.get("/reminders").json()

    assert [r["title"] for r in reminders] == [
        "Earlier",
        "Pack",
        "Check-in / boarding: Flight AB123",
        "Departure: Flight AB123",
    ]


def test_update_manual_reminder(api_client: TestClient) -> None:
    created = api_client.post(
        "/reminders", json={"title": "Pack", "date": "2027-02-20"}
    ).json()

    response = api_client.put(
        f"/reminders/{created['reminder_id']}",
        json={"title": "Pack bags", "date": "2027-02-21", "time": "20:00", "priority": "High"},
    )

    assert response.status_code == 200
    assert response.json()["title"] == "Pack bags"
    assert api_client.get("/reminders").json()[0]["time"] == "20:00"


def test_update_document_reminder_keeps_parent(api_client: TestClient) -> None:
    doc = _upload_ticket(api_client)
    reminder = doc["reminders"][0]

    response = api_client.put(
        f"/reminders/{reminder['reminder_id']}",
        json={"title": "Leave for airport", "date": reminder["date"], "time": "10:30"},
    )

    assert response.status_code == 200
    assert response.json()["document_id"] == doc["document_id"]
    refreshed = api_client.get(f"/documents/{doc['document_id']}").json()
    assert "Leave for airport" in [r["title"] for r in refreshed["reminders"]]


def test_delete_reminder(api_client: TestClient) -> None:
    created = api_client.post("/reminders", json={"title": "Pack", "date": "2027-02-20"}).json()

    assert api_client.delete(f"/reminders/{created['reminder_id']}").status_code == 204
    assert api_client.delete(f"/reminders/{created['reminder_id']}").status_code == 404


def test_missing_reminder_returns_404(api_client: TestClient) -> None:
    response = api_client.put(
        f"/reminders/{uuid.uuid4()}", json={"title": "x", "date": "2027-01-01"}
    )

    assert response.status_code == 404


def test_manual_reminders_survive_document_delete(api_client: TestClient) -> None:
    doc = _upload_ticket(api_client)
    manual = api_client.post("/reminders", json={"title": "Renew passport", "date": "2027-01-05"})

    api_client.delete(f"/documents/{doc['document_id']}")

    remaining = api_client.get("/reminders").json()
    assert [r["reminder_id"] for r in remaining] == [manual.json()["reminder_id"]]
