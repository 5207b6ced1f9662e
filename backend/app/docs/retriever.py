"""Document retriever - pick the documents given to the chat assistant."""

from pydantic import BaseModel

from backend.app.models.documents import Document


class DocumentMatch(BaseModel):
    """Document with relevance score."""

    document: Document
    score: float


def _searchable_text(doc: Document) -> str:
    meta = doc.metadata
    parts = [
        meta.title,
        meta.category.value,
        meta.summary,
        meta.location or "",
        meta.reference_number or "",
        *meta.important_details,
        *meta.policy_rules,
    ]
    return " ".join(parts).lower()


def rank_documents(query: str, documents: list[Document], *, limit: int = 5) -> list[DocumentMatch]:
    """Rank documents by simple token matching.

    Scoring strategy:
    - Tokenize query on spaces (lowercase), ignoring 1-2 letter tokens
    - For each document, count how many query tokens appear as substrings
      of its title, category, summary, details and rules
    - Sort by score descending, then newest first (for determinism)
    - Apply limit

    Documents with score 0 are kept so a vague question still gets the most
    recent documents as context.

    Args:
        query: Chat question
        documents: Candidate documents (already tenancy-scoped)
        limit: Maximum number of documents to return

    Returns:
        List of DocumentMatch sorted by relevance
    """
    query_tokens = [token.strip() for token in query.lower().split() if len(token.strip()) > 2]

    scored: list[tuple[Document, float]] = []
    for doc in documents:
        text = _searchable_text(doc)
        match_count = sum(1 for token in query_tokens if token in text)
        scored.append((doc, float(match_count)))

    scored.sort(key=lambda x: (-x[1], -x[0].created_at.timestamp()))

    return [DocumentMatch(document=doc, score=score) for doc, score in scored[:limit]]
