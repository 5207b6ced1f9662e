"""Prompt builders for extraction, chat and risk analysis."""

from datetime import date

from backend.app.models.common import DocType

EXTRACTION_RESPONSE_SHAPE = """{
  "title": string,                      // concise, e.g. "Flight TG102 to BKK"
  "category": one of [CATEGORIES],
  "category_confidence": number 0..1,
  "summary": string,                    // in the target language
  "original_content": string | null,    // verbatim text (OCR for images)
  "translated_content": string | null,  // plain-text translation
  "event_date": "YYYY-MM-DD" | null,
  "event_time": "HH:MM" | null,
  "expiry_date": "YYYY-MM-DD" | null,
  "location": string | null,
  "reference_number": string | null,
  "important_details": [string],        // hard facts, "Label: Value"
  "policy_rules": [string],             // soft rules (baggage, cancellation...)
  "reminders": [
    {"title": string, "description": string | null, "date": "YYYY-MM-DD",
     "time": "HH:MM" | null, "priority": "High" | "Medium" | "Low"}
  ]
}"""


def build_extraction_prompt(*, target_language: str, current_date: date) -> str:
    """Build the system prompt for document extraction.

    The rules here are behavioral contracts on the output: date
    disambiguation, no invented times, fixed priority tiers, recurrence
    expansion and boarding reminders.
    """
    categories = ", ".join(f'"{c.value}"' for c in DocType)
    shape = EXTRACTION_RESPONSE_SHAPE.replace("[CATEGORIES]", f"[{categories}]")
    year = current_date.year

    return f"""You are a document intelligence assistant for travelers.
Extract structured data from the document and translate it into clean plain text.

CONTEXT:
- Current date: {current_date.isoformat()}
- Current year: {year}
- Target language: "{target_language}"

TASKS:
1. Extraction: dates, locations, reference numbers, facts and rules.
2. OCR: if the document is an image or scanned PDF, put the verbatim text in
   "original_content". For text input, keep the main body there.
3. Translation: put a full plain-text translation into "{target_language}" in
   "translated_content". No Markdown. UPPERCASE section headers, "-" for lists,
   blank lines between sections, no signature lines or page numbers.

RULES:
1. Dates: travel and event dates are usually in {year} or {year + 1}. A date
   years in the future (e.g. 2030, 2035) is a passport/ID/visa EXPIRY date and
   must never be used as "event_date".
2. Times: give "HH:MM" (24h) ONLY when a time is written in the document.
   If no time is written, use null. Never guess 12:00 or 00:00.
3. Priority tiers:
   - High: flights, train departures, visa or passport expiry, legal deadlines,
     court dates.
   - Medium: hotel check-ins, rent and bill payments, reservations.
   - Low: everything else ("print this", "check email", "review policy").
4. Recurring obligations (monthly rent, weekly subscription): create a SEPARATE
   reminder for EACH occurrence, for the duration of the contract, or for the
   next 12 months if open-ended.
5. Reminders: one at the exact time of the event (if a time exists). For
   flights and other departures, one more 2 hours earlier for check-in/boarding.
   Every reminder gets a one-sentence "description" of the action to take.
6. "important_details" are hard facts formatted "Label: Value" (e.g.
   "Seat: 45A", "Gate: D12"). "policy_rules" are soft rules. Never list the same
   string in both.

Respond with a single JSON object of exactly this shape and no other keys:
{shape}"""


def build_text_user_message(content: str) -> str:
    """Wrap extracted text for the user turn."""
    return f"DOCUMENT CONTENT:\n{content}"


CHAT_SYSTEM_PROMPT = """You are Travault, a travel document assistant.
Answer using only the user's documents and reminders listed below. If the
answer is not in them, say so. Keep answers short and practical."""


def build_chat_context(
    *,
    current_date: date,
    document_lines: list[str],
    reminder_lines: list[str],
) -> str:
    """Build the context block given to the chat assistant."""
    lines = [f"Current date: {current_date.isoformat()}", "", "## User Documents"]
    lines.extend(document_lines or ["- No documents"])
    lines.append("")
    lines.append("## Upcoming Reminders")
    lines.extend(reminder_lines or ["- No reminders"])
    return "\n".join(lines)


def build_risk_prompt(
    *, title: str, category: str, policy_rules: list[str], current_date: date
) -> str:
    """Build the prompt for a document risk scan."""
    rules = "; ".join(policy_rules) if policy_rules else "none listed"
    return f"""Analyze this travel document for risks.
Document: {title} ({category})
Rules: {rules}
Current date: {current_date.isoformat()}

Identify conflicts, missing requirements and strict penalties.
Respond with a JSON object:
{{"score": integer 0..100 (100 = no risk), "summary": string,
  "factors": [{{"risk": string, "severity": "High" | "Medium" | "Low",
               "description": string}}]}}"""
