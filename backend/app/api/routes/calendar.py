"""Calendar export endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from backend.app.api.auth import get_current_context
from backend.app.api.deps import get_gateway
from backend.app.api.routes.documents import raise_http
from backend.app.calendar.ics import CALENDAR_FILENAME, build_calendar
from backend.app.db.context import RequestContext
from backend.app.docs.gateway import DocumentGateway
from backend.app.errors import TravaultError

router = APIRouter(tags=["calendar"])


@router.get("/calendar.ics")
async def export_calendar(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
) -> Response:
    """Download the user's documents and reminders as an iCalendar file."""
    try:
        documents = await gateway.list_documents(ctx)
        reminders = await gateway.list_reminders(ctx)
    except TravaultError as e:
        raise_http(e)

    return Response(
        content=build_calendar(documents, reminders),
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{CALENDAR_FILENAME}"'},
    )
