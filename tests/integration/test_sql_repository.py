"""Integration tests for the SQL document repository.

Runs against in-memory sqlite. The JSONB test at the bottom needs a real
PostgreSQL instance; run it with: DATABASE_URL='postgresql://...' pytest -m postgres
"""

import uuid
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from backend.app.db.context import RequestContext
from backend.app.db.models import Document as DocumentDB
from backend.app.db.sql_repositories import SqlDocumentRepository
from backend.app.errors import DuplicateDocumentError
from backend.app.models.common import DocType, Priority, ReminderSource
from backend.app.models.documents import Document, Reminder, RiskAnalysis, RiskFactor


def _manual(title: str, day: date, time: str | None = None) -> Reminder:
    return Reminder(
        reminder_id=uuid.uuid4(),
        title=title,
        date=day,
        time=time,
        priority=Priority.low,
        source=ReminderSource.manual,
    )


@pytest.mark.asyncio
async def test_save_and_get_round_trip(
    sqlite_session: AsyncSession, ctx: RequestContext, document_factory: Callable[..., Document]
) -> None:
    repo = SqlDocumentRepository(sqlite_session)
    doc = document_factory(
        expiry_date=date(2030, 1, 1), reminder_dates=(date(2027, 3, 1), date(2027, 2, 28))
    )
    doc.metadata.risk_analysis = RiskAnalysis(
        score=70,
        summary="Strict refund terms",
        factors=[RiskFactor(risk="Refund", severity=Priority.high, description="No refunds.")],
    )

    await repo.save_document(ctx, doc)
    loaded = await repo.get_document(ctx, doc.document_id)

    assert loaded is not None
    assert loaded.metadata.title == doc.metadata.title
    assert loaded.metadata.expiry_date == date(2030, 1, 1)
    assert loaded.metadata.important_details == ["Gate: 5"]
    assert loaded.metadata.risk_analysis == doc.metadata.risk_analysis
    assert [r.date for r in loaded.reminders] == [date(2027, 2, 28), date(2027, 3, 1)]
    assert all(r.document_id == doc.document_id for r in loaded.reminders)


@pytest.mark.asyncio
async def test_flattened_columns_follow_metadata(
    sqlite_session: AsyncSession, ctx: RequestContext, document_factory: Callable[..., Document]
) -> None:
    repo = SqlDocumentRepository(sqlite_session)
    doc = document_factory(title="Schengen visa", category=DocType.visa)

    await repo.save_document(ctx, doc)

    row = (
        await sqlite_session.execute(
            select(DocumentDB).where(DocumentDB.document_id == doc.document_id)
        )
    ).scalar_one()
    assert row.title == "Schengen visa"
    assert row.category == "Visa"
    assert row.event_date == date(2027, 3, 1)
    assert row.extracted_data["category"] == "Visa"


@pytest.mark.asyncio
async def test_same_fingerprint_rejected_per_user(
    sqlite_session: AsyncSession,
    ctx: RequestContext,
    other_ctx: RequestContext,
    document_factory: Callable[..., Document],
) -> None:
    """Test (user, fingerprint) is unique, but other users may hold the same file."""
    repo = SqlDocumentRepository(sqlite_session)
    await repo.save_document(ctx, document_factory(content_hash="abc"))

    with pytest.raises(DuplicateDocumentError) as exc_info:
        await repo.save_document(ctx, document_factory(content_hash="abc"))

    assert exc_info.value.fingerprint == "abc"
    assert await repo.fingerprint_exists(ctx, "abc") is True
    assert await repo.fingerprint_exists(other_ctx, "abc") is False

    await repo.save_document(other_ctx, document_factory(other_ctx.user_id, content_hash="abc"))
    assert len(await repo.list_documents(other_ctx)) == 1


@pytest.mark.asyncio
async def test_list_newest_first_with_category_filter(
    sqlite_session: AsyncSession, ctx: RequestContext, document_factory: Callable[..., Document]
) -> None:
    repo = SqlDocumentRepository(sqlite_session)
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    await repo.save_document(ctx, document_factory(title="Old flight", created_at=base))
    await repo.save_document(
        ctx, document_factory(title="New flight", created_at=base + timedelta(days=1))
    )
    await repo.save_document(
        ctx, document_factory(title="Visa", category=DocType.visa, created_at=base)
    )

    tickets = await repo.list_documents(ctx, category=DocType.ticket)

    assert [d.metadata.title for d in tickets] == ["New flight", "Old flight"]
    assert all(len(d.reminders) == 1 for d in tickets)


@pytest.mark.asyncio
async def test_resave_replaces_reminder_set(
    sqlite_session: AsyncSession, ctx: RequestContext, document_factory: Callable[..., Document]
) -> None:
    repo = SqlDocumentRepository(sqlite_session)
    doc = await repo.save_document(
        ctx, document_factory(reminder_dates=(date(2027, 3, 1), date(2027, 4, 1)))
    )

    kept = doc.reminders[0].model_copy(update={"title": "Edited"})
    await repo.save_document(ctx, doc.model_copy(update={"reminders": [kept]}))

    loaded = await repo.get_document(ctx, doc.document_id)
    assert loaded is not None
    assert [(r.reminder_id, r.title) for r in loaded.reminders] == [(kept.reminder_id, "Edited")]
    assert len(await repo.list_reminders(ctx)) == 1


@pytest.mark.asyncio
async def test_delete_cascades_to_document_reminders_only(
    sqlite_session: AsyncSession, ctx: RequestContext, document_factory: Callable[..., Document]
) -> None:
    repo = SqlDocumentRepository(sqlite_session)
    doc = await repo.save_document(ctx, document_factory(file_path="u/x.pdf"))
    manual = await repo.save_reminder(ctx, _manual("Renew passport", date(2027, 1, 5)))

    deleted = await repo.delete_document(ctx, doc.document_id)

    assert deleted is not None
    assert deleted.file_path == "u/x.pdf"
    assert await repo.get_document(ctx, doc.document_id) is None
    assert [r.reminder_id for r in await repo.list_reminders(ctx)] == [manual.reminder_id]
    assert await repo.delete_document(ctx, doc.document_id) is None


@pytest.mark.asyncio
async def test_reminders_scoped_and_sorted(
    sqlite_session: AsyncSession,
    ctx: RequestContext,
    other_ctx: RequestContext,
) -> None:
    repo = SqlDocumentRepository(sqlite_session)
    late = await repo.save_reminder(ctx, _manual("Late", date(2027, 1, 5), "18:00"))
    untimed = await repo.save_reminder(ctx, _manual("Untimed", date(2027, 1, 5)))
    early = await repo.save_reminder(ctx, _manual("Early", date(2027, 1, 4), "09:00"))
    await repo.save_reminder(other_ctx, _manual("Someone else", date(2027, 1, 1)))

    reminders = await repo.list_reminders(ctx)

    assert [r.reminder_id for r in reminders] == [
        early.reminder_id,
        untimed.reminder_id,
        late.reminder_id,
    ]
    assert await repo.get_reminder(other_ctx, late.reminder_id) is None
    assert await repo.delete_reminder(other_ctx, late.reminder_id) is False
    assert await repo.delete_reminder(ctx, late.reminder_id) is True


@pytest.mark.postgres
@pytest.mark.asyncio
async def test_jsonb_metadata_round_trip(
    postgres_engine: AsyncEngine, document_factory: Callable[..., Document]
) -> None:
    """Test the metadata blob survives a JSONB round trip on PostgreSQL."""
    ctx = RequestContext(user_id=uuid.uuid4())
    doc = document_factory(ctx.user_id, expiry_date=date(2031, 12, 31))

    async with AsyncSession(postgres_engine, expire_on_commit=False) as session:
        repo = SqlDocumentRepository(session)
        await repo.save_document(ctx, doc)
        loaded = await repo.get_document(ctx, doc.document_id)

    assert loaded is not None
    assert loaded.metadata == doc.metadata
    assert len(loaded.reminders) == 1
