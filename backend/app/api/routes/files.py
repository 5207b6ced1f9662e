"""Signed file retrieval endpoint."""

import asyncio
import mimetypes
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from backend.app.api.deps import get_object_store
from backend.app.errors import StorageError
from backend.app.storage.object_store import ObjectStore

router = APIRouter(tags=["files"])


@router.get("/files/{path:path}")
async def get_file(
    path: str,
    store: Annotated[ObjectStore, Depends(get_object_store)],
    expires: Annotated[int, Query()],
    signature: Annotated[str, Query(min_length=1)],
) -> Response:
    """Serve a stored object to the holder of a valid, unexpired signed URL.

    Returns:
        The object bytes; 403 on a bad or expired signature, 404 if missing
    """
    if not store.verify(path, expires, signature):
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Invalid or expired signature")

    try:
        if not store.exists(path):
            raise HTTPException(status.HTTP_404_NOT_FOUND, detail="File not found")
        data = await asyncio.to_thread(store.read, path)
    except StorageError as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="File not found") from e

    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)
