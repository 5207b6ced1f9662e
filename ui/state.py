"""Application state container for the Streamlit client.

One AppState lives in the Streamlit session. Components read from it and
change it only through the named operations below; lists are replaced
wholesale after each server round trip.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AppState:
    """Documents, manual reminders and the current error banner."""

    documents: list[dict[str, Any]] = field(default_factory=list)
    reminders: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None
    notice: str | None = None

    def replace_documents(self, documents: list[dict[str, Any]]) -> None:
        self.documents = list(documents)

    def add_document(self, document: dict[str, Any]) -> None:
        """Put a newly created document at the top."""
        self.documents = [document] + [
            d for d in self.documents if d["document_id"] != document["document_id"]
        ]

    def replace_document(self, document: dict[str, Any]) -> None:
        """Swap in an edited document, keeping its position."""
        self.documents = [
            document if d["document_id"] == document["document_id"] else d
            for d in self.documents
        ]

    def remove_document(self, document_id: str) -> None:
        """Drop a document and the reminders it owned."""
        self.documents = [d for d in self.documents if d["document_id"] != document_id]
        self.reminders = [r for r in self.reminders if r.get("document_id") != document_id]

    def replace_reminders(self, reminders: list[dict[str, Any]]) -> None:
        self.reminders = list(reminders)

    def set_error(self, message: str) -> None:
        self.error = message
        self.notice = None

    def set_notice(self, message: str) -> None:
        self.notice = message

    def clear_error(self) -> None:
        self.error = None

    def manual_reminders(self) -> list[dict[str, Any]]:
        """Reminders without a parent document."""
        return [r for r in self.reminders if r.get("source") == "manual"]
