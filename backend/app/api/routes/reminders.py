"""Reminder endpoints - manual and document reminders."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from backend.app.api.auth import get_current_context
from backend.app.api.deps import get_gateway
from backend.app.api.routes.documents import raise_http
from backend.app.db.context import RequestContext
from backend.app.docs.gateway import DocumentGateway
from backend.app.errors import TravaultError
from backend.app.models.documents import Reminder, ReminderInput

router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("", response_model=list[Reminder])
async def list_reminders(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
) -> list[Reminder]:
    """List manual and document reminders, sorted by date then time."""
    try:
        return await gateway.list_reminders(ctx)
    except TravaultError as e:
        raise_http(e)


@router.post("", response_model=Reminder, status_code=status.HTTP_201_CREATED)
async def create_reminder(
    data: ReminderInput,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
) -> Reminder:
    """Create a manual reminder."""
    try:
        return await gateway.create_reminder(ctx, data)
    except TravaultError as e:
        raise_http(e)


@router.put("/{reminder_id}", response_model=Reminder)
async def update_reminder(
    reminder_id: UUID,
    data: ReminderInput,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
) -> Reminder:
    try:
        reminder = await gateway.update_reminder(ctx, reminder_id, data)
    except TravaultError as e:
        raise_http(e)
    if reminder is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Reminder not found")
    return reminder


@router.delete("/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reminder(
    reminder_id: UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
) -> Response:
    try:
        deleted = await gateway.delete_reminder(ctx, reminder_id)
    except TravaultError as e:
        raise_http(e)
    if not deleted:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Reminder not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
