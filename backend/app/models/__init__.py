"""Models package - re-exports for convenience."""

from backend.app.models.common import DocType, Priority, ReminderSource
from backend.app.models.documents import (
    ChatMessage,
    Document,
    DocumentMetadata,
    DocumentPatch,
    ExtractionResult,
    Reminder,
    ReminderDraft,
    ReminderInput,
    RiskAnalysis,
    RiskFactor,
)

__all__ = [
    # Common
    "DocType",
    "Priority",
    "ReminderSource",
    # Documents
    "Document",
    "DocumentMetadata",
    "DocumentPatch",
    "ExtractionResult",
    "ReminderDraft",
    "RiskAnalysis",
    "RiskFactor",
    # Reminders
    "Reminder",
    "ReminderInput",
    # Chat
    "ChatMessage",
]
