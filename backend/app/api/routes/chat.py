"""Chat assistant endpoint."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from backend.app.api.auth import get_current_context
from backend.app.api.deps import get_gateway
from backend.app.api.routes.documents import raise_http
from backend.app.config import Settings, get_settings
from backend.app.db.context import RequestContext
from backend.app.docs.gateway import DocumentGateway
from backend.app.docs.retriever import rank_documents
from backend.app.errors import TravaultError
from backend.app.llm.client import ExtractionClient, get_extraction_client
from backend.app.models.documents import ChatMessage

router = APIRouter(tags=["chat"])


class ChatRequest(BaseModel):
    """Request body for POST /chat. History is kept client-side."""

    query: str = Field(..., min_length=1, max_length=2000)
    history: list[ChatMessage] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Response for POST /chat."""

    reply: str


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
    client: Annotated[ExtractionClient, Depends(get_extraction_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ChatResponse:
    """Answer a question using the most relevant documents as context.

    Args:
        request: Question and prior turns
        ctx: Request context (user_id)
        gateway: Persistence gateway
        client: Extraction service client
        settings: Application settings

    Returns:
        The assistant's reply
    """
    try:
        documents = await gateway.list_documents(ctx)
        reminders = await gateway.list_reminders(ctx)
    except TravaultError as e:
        raise_http(e)

    matches = rank_documents(request.query, documents, limit=settings.chat_context_docs)
    reply = await client.chat_with_documents(
        message=request.query,
        history=request.history,
        documents=[m.document for m in matches],
        reminders=reminders,
        current_date=date.today(),
    )
    return ChatResponse(reply=reply)
