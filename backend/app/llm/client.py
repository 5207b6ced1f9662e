"""Extraction service client with OpenAI integration.

Security: Reads API key from environment only, never hardcoded.
Provides a deterministic rule-based fallback when no key is present.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Protocol

from openai import AsyncOpenAI, OpenAIError
from openai.types.chat import ChatCompletion
from pydantic import ValidationError

from backend.app.config import Settings, get_settings
from backend.app.errors import ExtractionError
from backend.app.llm import rules
from backend.app.llm.prompts import (
    CHAT_SYSTEM_PROMPT,
    build_chat_context,
    build_extraction_prompt,
    build_risk_prompt,
    build_text_user_message,
)
from backend.app.models.documents import (
    ChatMessage,
    Document,
    ExtractionResult,
    Reminder,
    RiskAnalysis,
)

logger = logging.getLogger(__name__)

CHAT_FAILURE_REPLY = "Sorry, I'm having trouble connecting to the AI right now."
CHAT_EMPTY_REPLY = "I couldn't generate a response."
RISK_FAILURE = RiskAnalysis(score=0, summary="Analysis failed", factors=[])

# Context size limits
MAX_TEXT_CHARS = 60000
MAX_HISTORY_TURNS = 20


def _reply_text(response: ChatCompletion) -> str:
    """Content of the first choice, or "" when the model returned none."""
    if not response.choices:
        return ""
    return response.choices[0].message.content or ""


@dataclass(frozen=True)
class ExtractionRequest:
    """What the pipeline hands to the extraction service."""

    content: str  # plain text, or base64 image bytes
    mime_type: str
    is_text: bool
    target_language: str = "English"
    current_date: date = field(default_factory=date.today)


class ExtractionClient(Protocol):
    """Protocol for extraction service implementations."""

    async def extract_metadata(self, request: ExtractionRequest) -> ExtractionResult:
        """Turn normalized content into a validated extraction result.

        Raises:
            ExtractionError: Network failure, empty reply or schema violation
        """
        ...

    async def chat_with_documents(
        self,
        *,
        message: str,
        history: list[ChatMessage],
        documents: list[Document],
        reminders: list[Reminder],
        current_date: date,
    ) -> str:
        """Answer a question about the user's documents. Never raises."""
        ...

    async def assess_risk(self, document: Document, *, current_date: date) -> RiskAnalysis:
        """Scan a document's rules for risks. Never raises."""
        ...


def document_context_lines(documents: list[Document]) -> list[str]:
    """One line per document for the chat context."""
    lines = []
    for doc in documents:
        meta = doc.metadata
        parts = [f"- {meta.title} ({meta.category.value})"]
        if meta.event_date:
            when = meta.event_date.isoformat()
            if meta.event_time:
                when += f" {meta.event_time}"
            parts.append(f"date {when}")
        if meta.expiry_date:
            parts.append(f"expires {meta.expiry_date.isoformat()}")
        if meta.location:
            parts.append(f"at {meta.location}")
        if meta.summary:
            parts.append(f"summary: {meta.summary}")
        if meta.important_details:
            parts.append("details: " + "; ".join(meta.important_details[:8]))
        lines.append(", ".join(parts))
    return lines


def reminder_context_lines(reminders: list[Reminder], current_date: date) -> list[str]:
    """Upcoming reminders, soonest first."""
    upcoming = [r for r in reminders if r.date >= current_date]
    return [
        f"- {r.date.isoformat()}{' ' + r.time if r.time else ''}: {r.title} [{r.priority.value}]"
        for r in upcoming[:15]
    ]


class DeterministicStubClient:
    """Rule-based client for tests and keyless development."""

    async def extract_metadata(self, request: ExtractionRequest) -> ExtractionResult:
        """Extract with keyword and pattern rules."""
        if not request.is_text:
            return rules.scanned_document_result()
        return rules.extract_from_text(request.content, current_date=request.current_date)

    async def chat_with_documents(
        self,
        *,
        message: str,
        history: list[ChatMessage],
        documents: list[Document],
        reminders: list[Reminder],
        current_date: date,
    ) -> str:
        """Answer from document titles and the next reminder."""
        if not documents:
            return "You have no documents yet. Upload one and ask me again."

        words = {w for w in message.lower().split() if len(w) > 2}
        matches = [
            doc for doc in documents if words & set(doc.metadata.title.lower().split())
        ]
        lines = [f"You have {len(documents)} document(s)."]
        for doc in matches[:3]:
            meta = doc.metadata
            when = f" on {meta.event_date.isoformat()}" if meta.event_date else ""
            lines.append(f"{meta.title} ({meta.category.value}){when}.")

        upcoming = [r for r in reminders if r.date >= current_date]
        if upcoming:
            nxt = upcoming[0]
            lines.append(f"Next reminder: {nxt.title} on {nxt.date.isoformat()}.")
        return " ".join(lines)

    async def assess_risk(self, document: Document, *, current_date: date) -> RiskAnalysis:
        """Score the document's policy rules."""
        return rules.assess_rules(document.metadata.policy_rules)


class OpenAIClient:
    """OpenAI-backed extraction service client."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def extract_metadata(self, request: ExtractionRequest) -> ExtractionResult:
        """Extract document metadata as strict JSON."""
        system_prompt = build_extraction_prompt(
            target_language=request.target_language, current_date=request.current_date
        )

        if request.is_text:
            user_content: object = build_text_user_message(request.content[:MAX_TEXT_CHARS])
        else:
            user_content = [
                {"type": "text", "text": "Analyze this document image."},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{request.mime_type};base64,{request.content}"},
                },
            ]

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                response_format={"type": "json_object"},
                temperature=0,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI extraction call failed: {e}")
            raise ExtractionError(f"Extraction service call failed: {e}") from e

        raw = _reply_text(response)
        if not raw.strip():
            raise ExtractionError("Extraction service returned an empty response")

        try:
            return ExtractionResult.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Extraction response failed validation: {e.error_count()} error(s)")
            raise ExtractionError(f"Extraction response failed validation: {e}") from e

    async def chat_with_documents(
        self,
        *,
        message: str,
        history: list[ChatMessage],
        documents: list[Document],
        reminders: list[Reminder],
        current_date: date,
    ) -> str:
        """Answer using the document and reminder context."""
        context = build_chat_context(
            current_date=current_date,
            document_lines=document_context_lines(documents),
            reminder_lines=reminder_context_lines(reminders, current_date),
        )
        messages: list[dict[str, str]] = [
            {"role": "system", "content": f"{CHAT_SYSTEM_PROMPT}\n\n{context}"}
        ]
        for turn in history[-MAX_HISTORY_TURNS:]:
            role = "assistant" if turn.role == "model" else "user"
            messages.append({"role": role, "content": turn.text})
        messages.append({"role": "user", "content": message})

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.3,
                max_tokens=800,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI chat call failed: {e}")
            return CHAT_FAILURE_REPLY

        reply = _reply_text(response)
        return reply.strip() or CHAT_EMPTY_REPLY

    async def assess_risk(self, document: Document, *, current_date: date) -> RiskAnalysis:
        """Ask the model for a risk score; failures degrade to a zero score."""
        meta = document.metadata
        prompt = build_risk_prompt(
            title=meta.title,
            category=meta.category.value,
            policy_rules=meta.policy_rules,
            current_date=current_date,
        )
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
                temperature=0,
            )
            return RiskAnalysis.model_validate_json(_reply_text(response))
        except (OpenAIError, ValidationError) as e:
            logger.error(f"Risk analysis failed: {e}")
            return RISK_FAILURE.model_copy(deep=True)


def create_extraction_client(settings: Settings) -> ExtractionClient:
    """Pick OpenAIClient when an API key is configured, the stub otherwise."""
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI client for extraction")
        return OpenAIClient(api_key=api_key.get_secret_value(), model=settings.openai_model)
    else:
        logger.warning("No OpenAI API key configured, using deterministic stub client")
        return DeterministicStubClient()


async def get_extraction_client() -> ExtractionClient:
    """FastAPI dependency returning the configured extraction client."""
    return create_extraction_client(get_settings())
