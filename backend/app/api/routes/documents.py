"""Document endpoints - upload, list, edit, delete, risk scan."""

from datetime import date
from typing import Annotated, NoReturn
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend.app.api.auth import get_current_context
from backend.app.api.deps import get_gateway
from backend.app.config import Settings, get_settings
from backend.app.db.context import RequestContext
from backend.app.docs.dedupe import is_duplicate
from backend.app.docs.gateway import DocumentGateway
from backend.app.docs.ingest import ingest_upload
from backend.app.errors import (
    ExtractionError,
    FileReadError,
    FileTooLargeError,
    PersistenceError,
    TravaultError,
    UnsupportedFormatError,
)
from backend.app.llm.client import ExtractionClient, get_extraction_client
from backend.app.models.common import DocType
from backend.app.models.documents import Document, DocumentPatch

router = APIRouter(prefix="/documents", tags=["documents"])


class DuplicateResponse(BaseModel):
    """Body of a 409 for a re-uploaded file."""

    status: str = "duplicate"
    fingerprint: str


class DuplicateCheckResponse(BaseModel):
    """Response for GET /documents/duplicates."""

    duplicate: bool


def raise_http(error: TravaultError) -> NoReturn:
    """Translate a pipeline error into an HTTPException."""
    if isinstance(error, UnsupportedFormatError):
        raise HTTPException(status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(error)) from error
    if isinstance(error, FileTooLargeError):
        raise HTTPException(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(error)) from error
    if isinstance(error, FileReadError):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(error)) from error
    if isinstance(error, ExtractionError):
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, detail=str(error)) from error
    if isinstance(error, PersistenceError):
        # Raw backend detail is returned to help diagnose schema problems
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Database error: {error.detail}"
        ) from error
    raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error)) from error


@router.post(
    "",
    response_model=Document,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": DuplicateResponse}},
)
async def upload_document(
    file: Annotated[UploadFile, File()],
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
    client: Annotated[ExtractionClient, Depends(get_extraction_client)],
    settings: Annotated[Settings, Depends(get_settings)],
    target_language: Annotated[str | None, Form()] = None,
) -> Document | JSONResponse:
    """Upload a file and run it through the intake pipeline.

    Args:
        file: Uploaded file (PDF, image, DOCX or plain text)
        ctx: Request context (user_id)
        gateway: Persistence gateway
        client: Extraction service client
        settings: Application settings
        target_language: Translation target (defaults to settings)

    Returns:
        Created document, or a 409 duplicate body
    """
    content = await file.read()
    try:
        outcome = await ingest_upload(
            ctx=ctx,
            file_name=file.filename or "upload",
            mime_type=file.content_type,
            content=content,
            gateway=gateway,
            client=client,
            settings=settings,
            target_language=target_language,
        )
    except TravaultError as e:
        raise_http(e)

    if outcome.status == "duplicate":
        body = DuplicateResponse(fingerprint=outcome.fingerprint)
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body.model_dump())

    assert outcome.document is not None
    return outcome.document


@router.get("/duplicates", response_model=DuplicateCheckResponse)
async def check_duplicate(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
    fingerprint: Annotated[str, Query(min_length=1, max_length=128)],
) -> DuplicateCheckResponse:
    """Check whether a fingerprint is already stored for the user."""
    try:
        duplicate = await is_duplicate(gateway.repo, ctx, fingerprint)
    except TravaultError as e:
        raise_http(e)
    return DuplicateCheckResponse(duplicate=duplicate)


@router.get("", response_model=list[Document])
async def list_documents(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
    category: Annotated[DocType | None, Query()] = None,
    q: Annotated[str | None, Query(max_length=200)] = None,
) -> list[Document]:
    """List the user's documents, newest first.

    Args:
        ctx: Request context (user_id)
        gateway: Persistence gateway
        category: Optional category filter
        q: Optional case-insensitive title search

    Returns:
        Documents with reminders attached and signed file URLs
    """
    try:
        return await gateway.list_documents(ctx, category=category, query=q)
    except TravaultError as e:
        raise_http(e)


@router.get("/{document_id}", response_model=Document)
async def get_document(
    document_id: UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
) -> Document:
    try:
        document = await gateway.get_document(ctx, document_id)
    except TravaultError as e:
        raise_http(e)
    if document is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Document not found")
    return document


@router.patch("/{document_id}", response_model=Document)
async def update_document(
    document_id: UUID,
    patch: DocumentPatch,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
) -> Document:
    """Edit title, category, summary, dates or location."""
    try:
        document = await gateway.update_document(ctx, document_id, patch)
    except TravaultError as e:
        raise_http(e)
    if document is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Document not found")
    return document


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
) -> Response:
    """Delete a document, its reminders and (best effort) its storage object."""
    try:
        deleted = await gateway.delete_document(ctx, document_id)
    except TravaultError as e:
        raise_http(e)
    if not deleted:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Document not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{document_id}/risk", response_model=Document)
async def analyze_risk(
    document_id: UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
    client: Annotated[ExtractionClient, Depends(get_extraction_client)],
) -> Document:
    """Run a risk scan over the document's rules and store the result on it."""
    try:
        document = await gateway.get_document(ctx, document_id)
        if document is None:
            raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Document not found")

        analysis = await client.assess_risk(document, current_date=date.today())
        updated = await gateway.store_risk(ctx, document_id, analysis)
    except TravaultError as e:
        raise_http(e)
    if updated is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Document not found")
    return updated
