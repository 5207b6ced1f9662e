"""Helper functions for UI - API client calls and dashboard view builders."""

from datetime import date, timedelta
from typing import Any

import httpx

from ui.state import AppState

DEV_USER_ID = "00000000-0000-0000-0000-000000000002"

# Dashboard tabs and the categories each one shows
FILTERS: dict[str, set[str] | None] = {
    "All Documents": None,
    "Flights": {"Ticket"},
    "Hotels": {"Reservation", "Contract"},
    "Visas": {"Visa"},
    "Insurance": {"Insurance"},
    "Others": {"Other"},
}

CATEGORIES = ["Ticket", "Reservation", "Contract", "Visa", "Passport", "ID", "Insurance", "Other"]


def get_auth_header(user_id: str = DEV_USER_ID) -> dict[str, str]:
    """Get auth header for API calls.

    Uses the development user unless another id is given.
    """
    return {"Authorization": f"Bearer {user_id}"}


def _api_error(response: httpx.Response) -> str:
    """Best-effort human message from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, list):
        return "; ".join(str(item.get("msg", item)) for item in detail)
    return str(detail or body)


class ApiError(Exception):
    """API call failed; message is suitable for an inline alert."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(message)


REQUEST_ERRORS = (ApiError, httpx.HTTPError)


def _check(response: httpx.Response) -> httpx.Response:
    if response.is_error:
        raise ApiError(response.status_code, _api_error(response))
    return response


def upload_document(
    backend_url: str,
    file_name: str,
    content: bytes,
    mime_type: str | None,
    target_language: str | None = None,
) -> dict[str, Any]:
    """Upload a file to POST /documents.

    Args:
        backend_url: Backend base URL (e.g. http://localhost:8000)
        file_name: Original file name
        content: File bytes
        mime_type: Declared media type
        target_language: Translation target

    Returns:
        {"status": "created", "document": {...}} or
        {"status": "duplicate", "fingerprint": "..."}

    Raises:
        ApiError: On any other failure
    """
    data = {"target_language": target_language} if target_language else None
    response = httpx.post(
        f"{backend_url}/documents",
        files={"file": (file_name, content, mime_type or "application/octet-stream")},
        data=data,
        headers=get_auth_header(),
        timeout=120.0,  # Extraction can be slow on large scans
    )
    if response.status_code == 409:
        result: dict[str, Any] = response.json()
        return result
    _check(response)
    return {"status": "created", "document": response.json()}


def fetch_documents(backend_url: str) -> list[dict[str, Any]]:
    """GET /documents."""
    response = _check(httpx.get(f"{backend_url}/documents", headers=get_auth_header(), timeout=30.0))
    docs: list[dict[str, Any]] = response.json()
    return docs


def fetch_reminders(backend_url: str) -> list[dict[str, Any]]:
    """GET /reminders."""
    response = _check(httpx.get(f"{backend_url}/reminders", headers=get_auth_header(), timeout=30.0))
    reminders: list[dict[str, Any]] = response.json()
    return reminders


def update_document(backend_url: str, document_id: str, changes: dict[str, Any]) -> dict[str, Any]:
    """PATCH /documents/{id}."""
    response = _check(
        httpx.patch(
            f"{backend_url}/documents/{document_id}",
            json=changes,
            headers=get_auth_header(),
            timeout=30.0,
        )
    )
    doc: dict[str, Any] = response.json()
    return doc


def delete_document(backend_url: str, document_id: str) -> None:
    """DELETE /documents/{id}."""
    _check(
        httpx.delete(
            f"{backend_url}/documents/{document_id}", headers=get_auth_header(), timeout=30.0
        )
    )


def analyze_risk(backend_url: str, document_id: str) -> dict[str, Any]:
    """POST /documents/{id}/risk; returns the updated document."""
    response = _check(
        httpx.post(
            f"{backend_url}/documents/{document_id}/risk",
            headers=get_auth_header(),
            timeout=60.0,
        )
    )
    doc: dict[str, Any] = response.json()
    return doc


def create_reminder(backend_url: str, reminder: dict[str, Any]) -> dict[str, Any]:
    """POST /reminders (manual reminder)."""
    response = _check(
        httpx.post(
            f"{backend_url}/reminders", json=reminder, headers=get_auth_header(), timeout=30.0
        )
    )
    created: dict[str, Any] = response.json()
    return created


def delete_reminder(backend_url: str, reminder_id: str) -> None:
    """DELETE /reminders/{id}."""
    _check(
        httpx.delete(
            f"{backend_url}/reminders/{reminder_id}", headers=get_auth_header(), timeout=30.0
        )
    )


def fetch_calendar(backend_url: str) -> bytes:
    """GET /calendar.ics."""
    response = _check(
        httpx.get(f"{backend_url}/calendar.ics", headers=get_auth_header(), timeout=30.0)
    )
    return response.content


def send_chat(backend_url: str, query: str, history: list[dict[str, Any]]) -> str:
    """POST /chat; history is the locally stored conversation."""
    response = _check(
        httpx.post(
            f"{backend_url}/chat",
            json={"query": query, "history": history},
            headers=get_auth_header(),
            timeout=60.0,
        )
    )
    reply: str = response.json()["reply"]
    return reply


def build_document_patch(
    title: str, category: str, summary: str, event_date: str, expiry_date: str
) -> dict[str, Any]:
    """PATCH body from the editor form; blank dates clear the field."""
    return {
        "title": title.strip(),
        "category": category,
        "summary": summary.strip(),
        "event_date": event_date.strip() or None,
        "expiry_date": expiry_date.strip() or None,
    }


def apply_upload_result(
    app: AppState, backend_url: str, file_name: str, result: dict[str, Any]
) -> None:
    """Fold an upload result into the app state.

    A created document is added straight away; the reminder list is then
    reloaded, and a failure there becomes the error banner.
    """
    if result["status"] == "duplicate":
        app.set_notice(f"{file_name} is already in your vault.")
        return

    document = result["document"]
    app.add_document(document)
    try:
        app.replace_reminders(fetch_reminders(backend_url))
    except REQUEST_ERRORS as e:
        app.set_error(f"Added {document['metadata']['title']}, but reminders did not reload: {e}")
        return
    app.clear_error()
    app.set_notice(f"Added {document['metadata']['title']}.")


# --- Dashboard view builders ---


def merge_reminders(
    documents: list[dict[str, Any]], manual: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Manual reminders plus every document's reminders, sorted by date then time.

    Args:
        documents: Documents with their "reminders" lists
        manual: Standalone reminders

    Returns:
        One list, de-duplicated by reminder id
    """
    merged: dict[str, dict[str, Any]] = {}
    for reminder in manual:
        merged[reminder["reminder_id"]] = reminder
    for doc in documents:
        for reminder in doc.get("reminders", []):
            merged[reminder["reminder_id"]] = reminder
    return sorted(merged.values(), key=lambda r: (r.get("date") or "9999-12-31", r.get("time") or ""))


def build_timeline(documents: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Documents that have an event or expiry date, soonest first.

    Args:
        documents: Documents as returned by the API

    Returns:
        Timeline entries with id, title, date, category and summary
    """
    events = []
    for doc in documents:
        meta = doc.get("metadata", {})
        when = meta.get("event_date") or meta.get("expiry_date")
        if not when:
            continue
        events.append(
            {
                "document_id": doc["document_id"],
                "title": meta.get("title", ""),
                "date": when,
                "category": meta.get("category", "Other"),
                "summary": meta.get("summary", ""),
            }
        )
    return sorted(events, key=lambda e: e["date"])


def filter_documents(
    documents: list[dict[str, Any]], tab: str, search: str = ""
) -> list[dict[str, Any]]:
    """Apply a dashboard tab and a title search."""
    categories = FILTERS.get(tab)
    needle = search.strip().lower()
    result = []
    for doc in documents:
        meta = doc.get("metadata", {})
        if needle and needle not in meta.get("title", "").lower():
            continue
        if categories is not None and meta.get("category") not in categories:
            continue
        result.append(doc)
    return result


def build_stats(
    documents: list[dict[str, Any]],
    reminders: list[dict[str, Any]],
    today: date | None = None,
) -> dict[str, int]:
    """Headline numbers for the dashboard.

    Returns:
        Dict with documents, upcoming_reminders and expiring_soon (30 days)
    """
    today = today or date.today()
    horizon = today + timedelta(days=30)

    upcoming = sum(1 for r in reminders if r.get("date") and date.fromisoformat(r["date"]) >= today)

    expiring = 0
    for doc in documents:
        expiry = doc.get("metadata", {}).get("expiry_date")
        if expiry and today <= date.fromisoformat(expiry) <= horizon:
            expiring += 1

    return {
        "documents": len(documents),
        "upcoming_reminders": upcoming,
        "expiring_soon": expiring,
    }


def relative_day(value: str, today: date | None = None) -> str:
    """TODAY / TOMORROW / IN N DAYS / N DAYS AGO."""
    today = today or date.today()
    days = (date.fromisoformat(value) - today).days
    if days == 0:
        return "TODAY"
    if days == 1:
        return "TOMORROW"
    if days < 0:
        return f"{abs(days)} DAYS AGO"
    return f"IN {days} DAYS"
