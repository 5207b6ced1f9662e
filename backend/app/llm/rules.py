"""Rule-based document understanding.

Used when no extraction model is configured. Deterministic for a given
text and current date, so tests and local development get stable results.
"""

import calendar
import re
from datetime import date, datetime, timedelta

from backend.app.models.common import DocType, Priority
from backend.app.models.documents import ExtractionResult, ReminderDraft, RiskAnalysis, RiskFactor

CATEGORY_KEYWORDS: list[tuple[DocType, tuple[str, ...]]] = [
    (DocType.ticket, ("flight", "boarding", "airline", "departs", "departure", "gate", "train", "e-ticket")),
    (DocType.visa, ("visa",)),
    (DocType.passport, ("passport",)),
    (DocType.insurance, ("insurance", "insured", "coverage", "policy number")),
    (DocType.contract, ("lease", "contract", "tenancy", "rent", "agreement", "landlord")),
    (DocType.reservation, ("hotel", "reservation", "booking", "check-in", "check in")),
    (DocType.id, ("identity card", "id card", "national id", "driver's license", "driving licence")),
]

EXPIRY_CUE_RE = re.compile(r"expir|valid (until|thru)|\buntil\b|\bends?\b|end date", re.IGNORECASE)
RECURRENCE_CUES = ("monthly", "per month", "each month", "every month")
POLICY_CUES = (
    "must",
    "not permitted",
    "not allowed",
    "prohibited",
    "cancellation",
    "refund",
    "baggage",
    "luggage",
    "penalty",
    "no later than",
    "required",
)
INLINE_FACTS = ("Gate", "Seat", "Terminal", "Platform", "Room", "Coach")
LABELED_FIELDS = {
    "location": ("location", "address", "destination"),
    "reference_number": ("booking reference", "reference", "pnr", "confirmation", "policy number", "ref"),
}

DATE_RE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
# Time right after a date: "2025-03-01 14:00", "2025-03-01T14:00", "2025-03-01 at 2:30"
TIME_AFTER_DATE_RE = re.compile(
    r"^(?:T|,?\s*(?:at\s+|@\s*)?)"
    r"([01]?\d|2[0-3]):([0-5]\d)(?::[0-5]\d)?(?![\d:])(?!\s*(?:h|hrs?|hours?)\b)",
    re.IGNORECASE,
)
FLIGHT_RE = re.compile(r"\b([A-Z]{2})\s?(\d{2,4})\b")
LABEL_RE = re.compile(r"^\s*([A-Za-z][A-Za-z ']{1,30}):\s*(\S.*)$")
SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+|\n+")

MAX_RECURRENCES = 12
MAX_CONTRACT_RECURRENCES = 120
BOARDING_LEAD = timedelta(hours=2)


def add_months(start: date, months: int) -> date:
    """Shift a date by whole months, clamping to the last day of the month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def classify(text: str) -> tuple[DocType, float]:
    """Pick the category with the most keyword hits."""
    lowered = text.lower()
    best, best_hits = DocType.other, 0
    for category, keywords in CATEGORY_KEYWORDS:
        hits = sum(lowered.count(keyword) for keyword in keywords)
        if hits > best_hits:
            best, best_hits = category, hits
    if best_hits == 0:
        return DocType.other, 0.3
    return best, min(0.5 + 0.1 * best_hits, 0.95)


def _line_around(text: str, start: int, end: int) -> tuple[str, str]:
    """Return (text before, text after) the span, within its line."""
    line_start = text.rfind("\n", 0, start) + 1
    line_end = text.find("\n", end)
    if line_end == -1:
        line_end = len(text)
    return text[line_start:start], text[end:line_end]


def find_dates(text: str, current_date: date) -> tuple[list[tuple[date, str]], list[date]]:
    """Split the dates in a text into event candidates and expiry candidates.

    Returns:
        (event candidates with the rest of their line, expiry candidates)
    """
    events: list[tuple[date, str]] = []
    expiries: list[date] = []
    for match in DATE_RE.finditer(text):
        try:
            found = date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            continue
        before, after = _line_around(text, match.start(), match.end())
        cue_window = before[-40:]
        if found.year > current_date.year + 1 or EXPIRY_CUE_RE.search(cue_window):
            expiries.append(found)
        else:
            events.append((found, after))
    return events, expiries


def find_time(line_rest: str) -> str | None:
    """Return the HH:MM that directly follows a date, if any.

    A duration such as "10:45 hours", or a time further along the line, is not
    the event time.
    """
    match = TIME_AFTER_DATE_RE.match(line_rest)
    if match is None:
        return None
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def find_details(text: str, category: DocType) -> tuple[list[str], dict[str, str]]:
    """Collect "Label: Value" facts and the labeled fields we map to metadata."""
    details: list[str] = []
    fields: dict[str, str] = {}

    for line in text.splitlines():
        match = LABEL_RE.match(line)
        if match is None:
            continue
        label, value = match.group(1).strip(), match.group(2).strip()
        details.append(f"{label}: {value}")
        lowered = label.lower()
        for field, labels in LABELED_FIELDS.items():
            if field not in fields and lowered in labels:
                fields[field] = value

    for name in INLINE_FACTS:
        match = re.search(rf"\b{name}\s+([A-Z0-9]{{1,5}})\b", text)
        if match is not None:
            details.append(f"{name}: {match.group(1)}")

    flight = FLIGHT_RE.search(text) if category == DocType.ticket else None
    if flight is not None:
        details.append(f"Flight: {flight.group(1)}{flight.group(2)}")

    seen: set[str] = set()
    unique = []
    for item in details:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique, fields


def find_policy_rules(text: str) -> list[str]:
    """Sentences that read like rules (baggage, cancellation, must...)."""
    rules = []
    for sentence in SENTENCE_SPLIT_RE.split(text):
        sentence = sentence.strip()
        if sentence and LABEL_RE.match(sentence) is None:
            lowered = sentence.lower()
            if any(cue in lowered for cue in POLICY_CUES) and sentence not in rules:
                rules.append(sentence)
    return rules


def build_title(text: str, category: DocType) -> str:
    if category == DocType.ticket:
        flight = FLIGHT_RE.search(text)
        if flight is not None:
            return f"Flight {flight.group(1)}{flight.group(2)}"
    for line in text.splitlines():
        line = line.strip().rstrip(",.;:")
        if line:
            return line if len(line) <= 80 else line[:77] + "..."
    return f"{category.value} document"


def build_summary(text: str, category: DocType) -> str:
    collapsed = " ".join(text.split())
    if len(collapsed) > 200:
        collapsed = collapsed[:197] + "..."
    return f"{category.value} document. {collapsed}" if collapsed else f"{category.value} document."


def event_priority(category: DocType) -> Priority:
    if category == DocType.ticket:
        return Priority.high
    if category in (DocType.reservation, DocType.contract):
        return Priority.medium
    return Priority.low


def expiry_priority(category: DocType) -> Priority:
    if category in (DocType.visa, DocType.passport, DocType.id):
        return Priority.high
    return Priority.low


def build_reminders(
    *,
    text: str,
    title: str,
    category: DocType,
    event_date: date | None,
    event_time: str | None,
    expiry_date: date | None,
) -> list[ReminderDraft]:
    """Derive reminders: event, boarding, recurring payments and expiry."""
    reminders: list[ReminderDraft] = []
    lowered = text.lower()
    recurring = category == DocType.contract and any(cue in lowered for cue in RECURRENCE_CUES)

    if event_date is not None and recurring:
        # Contract duration when an end date is known, otherwise the next 12 months
        limit = MAX_CONTRACT_RECURRENCES if expiry_date is not None else MAX_RECURRENCES
        for count in range(limit):
            due = add_months(event_date, count)
            if expiry_date is not None and due > expiry_date:
                break
            reminders.append(
                ReminderDraft(
                    title=f"Payment due: {title}",
                    description=f"Pay the monthly amount for {title}.",
                    date=due,
                    priority=Priority.medium,
                )
            )
    elif event_date is not None:
        if category == DocType.ticket:
            event_title = f"Departure: {title}"
            description = f"{title} departs."
        elif category == DocType.reservation:
            event_title = f"Check-in: {title}"
            description = f"Check in for {title}."
        else:
            event_title = title
            description = f"{title} is scheduled for this date."
        reminders.append(
            ReminderDraft(
                title=event_title,
                description=description,
                date=event_date,
                time=event_time,
                priority=event_priority(category),
            )
        )
        if category == DocType.ticket and event_time is not None:
            departure = datetime.combine(event_date, datetime.strptime(event_time, "%H:%M").time())
            boarding = departure - BOARDING_LEAD
            reminders.append(
                ReminderDraft(
                    title=f"Check-in / boarding: {title}",
                    description=f"Head to check-in and boarding for {title}.",
                    date=boarding.date(),
                    time=boarding.strftime("%H:%M"),
                    priority=Priority.high,
                )
            )

    if expiry_date is not None:
        reminders.append(
            ReminderDraft(
                title=f"{title} expires",
                description=f"{title} expires on this date; renew it if still needed.",
                date=expiry_date,
                priority=expiry_priority(category),
            )
        )
    return reminders


def extract_from_text(text: str, *, current_date: date) -> ExtractionResult:
    """Build an extraction result from plain text."""
    category, confidence = classify(text)
    events, expiries = find_dates(text, current_date)

    event_date, event_time = None, None
    if events:
        event_date, line_rest = events[0]
        event_time = find_time(line_rest)
    expiry_date = expiries[0] if expiries else None

    title = build_title(text, category)
    details, fields = find_details(text, category)

    return ExtractionResult(
        title=title,
        category=category,
        category_confidence=confidence,
        summary=build_summary(text, category),
        event_date=event_date,
        event_time=event_time,
        expiry_date=expiry_date,
        location=fields.get("location"),
        reference_number=fields.get("reference_number"),
        important_details=details,
        policy_rules=find_policy_rules(text),
        original_content=text,
        translated_content=None,
        reminders=build_reminders(
            text=text,
            title=title,
            category=category,
            event_date=event_date,
            event_time=event_time,
            expiry_date=expiry_date,
        ),
    )


def scanned_document_result() -> ExtractionResult:
    """Result for image-only input, which rules cannot read."""
    return ExtractionResult(
        title="Scanned document",
        category=DocType.other,
        category_confidence=0.0,
        summary="Image-only document. Configure an extraction model to read scans.",
    )


RISK_WEIGHTS = (
    (("non-refundable", "no refund", "penalty", "forfeit"), Priority.high, 30),
    (("must", "required", "no later than"), Priority.medium, 15),
    (("not allowed", "not permitted", "prohibited"), Priority.medium, 15),
    (("cancellation", "baggage", "luggage"), Priority.low, 5),
)


def assess_rules(policy_rules: list[str]) -> RiskAnalysis:
    """Score a document's rules by how strict they read."""
    factors: list[RiskFactor] = []
    penalty = 0
    for rule in policy_rules:
        lowered = rule.lower()
        for cues, severity, weight in RISK_WEIGHTS:
            cue = next((c for c in cues if c in lowered), None)
            if cue is not None:
                factors.append(RiskFactor(risk=cue.capitalize(), severity=severity, description=rule))
                penalty += weight
                break

    score = max(0, 100 - penalty)
    if not factors:
        summary = "No notable risks found in the document's rules."
    else:
        summary = f"{len(factors)} rule(s) need attention."
    return RiskAnalysis(score=score, summary=summary, factors=factors)
