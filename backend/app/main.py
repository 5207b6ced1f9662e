"""FastAPI application."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.app.api.routes.calendar import router as calendar_router
from backend.app.api.routes.chat import router as chat_router
from backend.app.api.routes.documents import router as documents_router
from backend.app.api.routes.files import router as files_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.api.routes.reminders import router as reminders_router
from backend.app.config import get_settings
from backend.app.db.engine import create_schema, get_async_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create tables on startup when configured (dev/sqlite only)."""
    if get_settings().auto_create_schema:
        logger.info("Creating database schema")
        await create_schema(get_async_engine())
    yield


app = FastAPI(title="Travault API", version="0.1.0", lifespan=lifespan)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(documents_router, tags=["documents"])
app.include_router(reminders_router, tags=["reminders"])
app.include_router(calendar_router, tags=["calendar"])
app.include_router(chat_router, tags=["chat"])
app.include_router(files_router, tags=["files"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Travault API", "version": "0.1.0"}
