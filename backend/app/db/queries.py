"""Tenancy-safe query helpers."""

from sqlalchemy import Select, select

from backend.app.db.context import RequestContext
from backend.app.db.models import Document, Reminder


def select_documents(ctx: RequestContext) -> Select[tuple[Document]]:
    """Select from the document table with owner scoping enforced.

    Args:
        ctx: Request context with user_id

    Returns:
        Select filtered by user_id
    """
    return select(Document).where(Document.user_id == ctx.user_id)


def select_reminders(ctx: RequestContext) -> Select[tuple[Reminder]]:
    """Select from the reminder table with owner scoping enforced.

    Args:
        ctx: Request context with user_id

    Returns:
        Select filtered by user_id
    """
    return select(Reminder).where(Reminder.user_id == ctx.user_id)
