"""iCalendar export of document dates and reminders.

UIDs are derived from document and reminder ids, so calendar clients treat a
re-import as an update rather than creating duplicate events.
"""

from datetime import date, datetime, timezone

from backend.app.models.common import Priority
from backend.app.models.documents import Document, Reminder

CALENDAR_FILENAME = "travault_schedule.ics"
PRODID = "-//Travault//Nomad Assistant//EN"
UID_DOMAIN = "travault.app"

PRIORITY_ICONS = {
    Priority.high: "🔴",
    Priority.medium: "🟡",
    Priority.low: "🔵",
}


def escape_text(value: str) -> str:
    """Escape a TEXT value (backslash, semicolon, comma, newline)."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def format_dtstart(day: date, time: str | None = None) -> str:
    """All-day DTSTART for a bare date, floating local DTSTART with a time."""
    stamp = day.strftime("%Y%m%d")
    if time:
        return f"DTSTART:{stamp}T{time.replace(':', '')}00"
    return f"DTSTART;VALUE=DATE:{stamp}"


def _event(uid: str, dtstamp: str, dtstart: str, summary: str, description: str) -> list[str]:
    return [
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"DTSTAMP:{dtstamp}",
        dtstart,
        f"SUMMARY:{escape_text(summary)}",
        f"DESCRIPTION:{escape_text(description)}",
        "END:VEVENT",
    ]


def build_calendar(
    documents: list[Document],
    reminders: list[Reminder],
    *,
    now: datetime | None = None,
) -> str:
    """Render documents and reminders as one VCALENDAR.

    Each document contributes an all-day event for its event date and one for
    its expiry date; each reminder contributes one event at its date and time.

    Args:
        documents: The user's documents
        reminders: Manual and document reminders
        now: DTSTAMP value (defaults to current UTC time)

    Returns:
        CRLF-delimited iCalendar text
    """
    dtstamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%SZ")

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
    ]

    for doc in documents:
        meta = doc.metadata
        if meta.event_date:
            lines += _event(
                f"{doc.document_id}-event@{UID_DOMAIN}",
                dtstamp,
                format_dtstart(meta.event_date),
                f"✈️ {meta.title}",
                f"{meta.summary} (Type: {meta.category.value})",
            )
        if meta.expiry_date:
            lines += _event(
                f"{doc.document_id}-expiry@{UID_DOMAIN}",
                dtstamp,
                format_dtstart(meta.expiry_date),
                f"⚠️ Expiring: {meta.title}",
                f"Document Expiry. {meta.summary}",
            )

    for reminder in reminders:
        lines += _event(
            f"{reminder.reminder_id}@{UID_DOMAIN}",
            dtstamp,
            format_dtstart(reminder.date, reminder.time),
            f"{PRIORITY_ICONS[reminder.priority]} {reminder.title}",
            f"Travault Reminder. Priority: {reminder.priority.value}",
        )

    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"
