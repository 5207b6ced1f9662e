"""Document and reminder domain models."""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from backend.app.models.common import (
    DocType,
    OptionalDate,
    OptionalText,
    OptionalTime,
    Priority,
    ReminderSource,
)


class RiskFactor(BaseModel):
    """One risk found in a document's rules."""

    risk: str
    severity: Priority
    description: str


class RiskAnalysis(BaseModel):
    """Risk assessment of a document. Score 100 means no concerns."""

    score: int = Field(..., ge=0, le=100)
    summary: str
    factors: list[RiskFactor] = Field(default_factory=list)


class ReminderDraft(BaseModel):
    """Reminder proposed by the extraction service, before ids are assigned."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1)
    description: OptionalText = None
    date: date
    time: OptionalTime = None
    priority: Priority = Priority.low


class DocumentMetadata(BaseModel):
    """Extracted understanding of a document.

    Stored verbatim as the document's JSON metadata blob; the filter and sort
    fields are also flattened into columns.
    """

    title: str
    category: DocType = DocType.other
    category_confidence: float | None = None
    summary: str = ""
    event_date: OptionalDate = None
    event_time: OptionalTime = None
    expiry_date: OptionalDate = None
    location: OptionalText = None
    reference_number: OptionalText = None
    important_details: list[str] = Field(default_factory=list)
    policy_rules: list[str] = Field(default_factory=list)
    original_content: OptionalText = None
    translated_content: OptionalText = None
    risk_analysis: RiskAnalysis | None = None


class ExtractionResult(BaseModel):
    """Strict shape of the extraction service response.

    Unknown keys, bad enum values, malformed dates and times are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1)
    category: DocType
    category_confidence: float | None = Field(None, ge=0, le=1)
    summary: str
    event_date: OptionalDate = None
    event_time: OptionalTime = None
    expiry_date: OptionalDate = None
    location: OptionalText = None
    reference_number: OptionalText = None
    important_details: list[str] = Field(default_factory=list)
    policy_rules: list[str] = Field(default_factory=list)
    original_content: OptionalText = None
    translated_content: OptionalText = None
    reminders: list[ReminderDraft] = Field(default_factory=list)

    @field_validator("important_details", "policy_rules", "reminders", mode="before")
    @classmethod
    def _null_list(cls, value: object) -> object:
        return [] if value is None else value

    @model_validator(mode="after")
    def _disjoint_lists(self) -> "ExtractionResult":
        """A hard fact is never repeated as a policy rule."""
        facts = {item.strip().lower() for item in self.important_details}
        self.policy_rules = [
            rule for rule in self.policy_rules if rule.strip().lower() not in facts
        ]
        return self

    def to_metadata(self) -> DocumentMetadata:
        """Drop the reminder drafts; they become Reminder rows."""
        return DocumentMetadata.model_validate(self.model_dump(exclude={"reminders"}))


class Reminder(BaseModel):
    """A dated obligation, either document-derived or manual."""

    reminder_id: UUID
    title: str
    description: str | None = None
    date: date
    time: OptionalTime = None
    priority: Priority = Priority.medium
    source: ReminderSource = ReminderSource.manual
    document_id: UUID | None = None

    @model_validator(mode="after")
    def _source_matches_parent(self) -> "Reminder":
        if self.source == ReminderSource.document and self.document_id is None:
            raise ValueError("document reminders need a document_id")
        if self.source == ReminderSource.manual and self.document_id is not None:
            raise ValueError("manual reminders cannot have a document_id")
        return self


class Document(BaseModel):
    """One uploaded file and its derived understanding."""

    document_id: UUID
    user_id: UUID
    file_name: str
    mime_type: str
    is_text_based: bool = False
    inline_content: str | None = None  # extracted text, or data URL when no storage object
    preview_image: str | None = None  # data URL
    file_path: str | None = None  # object store path
    file_url: str | None = None  # signed URL, resolved on read
    content_hash: str
    metadata: DocumentMetadata
    reminders: list[Reminder] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None


class DocumentPatch(BaseModel):
    """User edits to a document's metadata."""

    title: str | None = Field(None, min_length=1, max_length=200)
    category: DocType | None = None
    summary: str | None = None
    event_date: OptionalDate = None
    event_time: OptionalTime = None
    expiry_date: OptionalDate = None
    location: OptionalText = None


class ReminderInput(BaseModel):
    """Body for creating or replacing a reminder."""

    title: str = Field(..., min_length=1, max_length=200)
    description: OptionalText = None
    date: date
    time: OptionalTime = None
    priority: Priority = Priority.medium


class ChatMessage(BaseModel):
    """One turn of the assistant conversation (kept client-side)."""

    id: str
    role: Literal["user", "model"]
    text: str
    timestamp: int  # epoch milliseconds
