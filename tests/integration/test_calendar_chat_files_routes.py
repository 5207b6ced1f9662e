"""Integration tests for calendar export, chat and signed file retrieval."""

from datetime import date, timedelta
from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

DEPARTURE = date.today() + timedelta(days=30)
TICKET = f"Flight AB123, departs {DEPARTURE.isoformat()} 14:00, Gate 5".encode()


def _upload_ticket(client: TestClient) -> dict:
    response = client.post("/documents", files={"file": ("ticket.txt", TICKET, "text/plain")})
    assert response.status_code == 201
    return response.json()


class TestCalendar:
    """Tests for GET /calendar.ics."""

    def test_export_headers(self, api_client: TestClient) -> None:
        response = api_client.get("/calendar.ics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/calendar")
        assert 'filename="travault_schedule.ics"' in response.headers["content-disposition"]
        assert response.text.startswith("BEGIN:VCALENDAR\r\n")

    def test_export_contains_documents_and_reminders(self, api_client: TestClient) -> None:
        doc = _upload_ticket(api_client)
        api_client.post("/reminders", json={"title": "Pack", "date": "2027-02-20"})

        ics = api_client.get("/calendar.ics").text

        assert f"UID:{doc['document_id']}-event@travault.app" in ics
        assert f"DTSTART;VALUE=DATE:{DEPARTURE.strftime('%Y%m%d')}" in ics
        assert f"DTSTART:{DEPARTURE.strftime('%Y%m%d')}T120000" in ics
        assert ics.count("BEGIN:VEVENT") == 4

    def test_uids_stable_between_exports(self, api_client: TestClient) -> None:
        _upload_ticket(api_client)

        def uids() -> list[str]:
            text = api_client.get("/calendar.ics").text
            return [line for line in text.split("\r\n") if line.startswith("UID:")]

        assert uids() == uids()


class TestChat:
    """Tests for POST /chat."""

    def test_chat_without_documents(self, api_client: TestClient) -> None:
        response = api_client.post("/chat", json={"query": "When is my flight?"})

        assert response.status_code == 200
        assert "no documents" in response.json()["reply"]

    def test_chat_uses_documents_and_history(self, api_client: TestClient) -> None:
        _upload_ticket(api_client)

        response = api_client.post(
            "/chat",
            json={
                "query": "when is my flight",
                "history": [
                    {"id": "1", "role": "user", "text": "hello", "timestamp": 1},
                    {"id": "2", "role": "model", "text": "Hi!", "timestamp": 2},
                ],
            },
        )

        reply = response.json()["reply"]
        assert "You have 1 document(s)." in reply
        assert f"Flight AB123 (Ticket) on {DEPARTURE.isoformat()}." in reply

    def test_chat_rejects_unknown_role(self, api_client: TestClient) -> None:
        response = api_client.post(
            "/chat",
            json={
                "query": "hi",
                "history": [{"id": "1", "role": "system", "text": "x", "timestamp": 1}],
            },
        )

        assert response.status_code == 422


class TestFiles:
    """Tests for GET /files/{path} with signed URLs."""

    def test_signed_url_serves_original_bytes(self, api_client: TestClient) -> None:
        doc = _upload_ticket(api_client)

        response = api_client.get(doc["file_url"])

        assert response.status_code == 200
        assert response.content == TICKET
        assert response.headers["content-type"].startswith("text/plain")

    def test_tampered_signature_forbidden(self, api_client: TestClient) -> None:
        url = urlparse(_upload_ticket(api_client)["file_url"])
        expires = parse_qs(url.query)["expires"][0]

        response = api_client.get(f"{url.path}?expires={expires}&signature=deadbeef")

        assert response.status_code == 403

    def test_expired_url_forbidden(self, api_client: TestClient) -> None:
        url = urlparse(_upload_ticket(api_client)["file_url"])
        signature = parse_qs(url.query)["signature"][0]

        response = api_client.get(f"{url.path}?expires=1&signature={signature}")

        assert response.status_code == 403
