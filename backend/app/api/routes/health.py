"""Health check endpoints.

- /health: liveness, always 200 while the process runs
- /healthz: database and object store readiness with component details
"""

import json
import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_async_engine

logger = logging.getLogger(__name__)

router = APIRouter()


async def check_db() -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    try:
        engine = get_async_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (True, "ok")
    except (SQLAlchemyError, ValueError, OSError) as e:
        logger.warning(f"Database health check failed: {e}")
        return (False, f"error: {type(e).__name__}")


async def check_storage(settings: Settings) -> tuple[bool, str]:
    """Check the object store root is usable.

    Returns:
        (is_ok, status_message)
    """
    root = Path(settings.storage_root)
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return (False, f"error: {type(e).__name__}")
    return (True, "ok")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | Response:
    """Readiness check.

    Returns:
        200 with component status if core systems ok
        503 if a component fails
    """
    settings = get_settings()

    db_ok, db_status = await check_db()
    storage_ok, storage_status = await check_storage(settings)
    extraction_status = "openai" if settings.openai_api_key else "stub"

    core_ok = db_ok and storage_ok

    response_body = {
        "status": "ok" if core_ok else "degraded",
        "components": {
            "db": db_status,
            "storage": storage_status,
            "extraction": extraction_status,
        },
    }

    if not core_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body
