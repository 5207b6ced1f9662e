"""Shared FastAPI dependencies for the document routes."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_session
from backend.app.db.repositories import DocumentRepository
from backend.app.db.sql_repositories import SqlDocumentRepository
from backend.app.docs.gateway import DocumentGateway
from backend.app.storage.object_store import ObjectStore, create_object_store


async def get_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DocumentRepository:
    """SQL repository bound to the request's session."""
    return SqlDocumentRepository(session)


def get_object_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ObjectStore:
    """Object store configured from settings."""
    return create_object_store(settings)


async def get_gateway(
    repo: Annotated[DocumentRepository, Depends(get_repository)],
    store: Annotated[ObjectStore, Depends(get_object_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> DocumentGateway:
    """Persistence gateway for the request."""
    return DocumentGateway(repo, store, settings)
