"""Shared pytest fixtures for all test suites."""

import io
import os
import uuid
from collections.abc import AsyncGenerator, Callable, Generator
from datetime import date, datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from docx import Document as DocxDocument
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from backend.app.api.deps import get_object_store
from backend.app.config import Settings, get_settings
from backend.app.db.context import RequestContext
from backend.app.db.engine import create_schema, get_session
from backend.app.db.inmemory import InMemoryDocumentRepository
from backend.app.db.models import Base
from backend.app.docs.gateway import DocumentGateway
from backend.app.llm.client import DeterministicStubClient, get_extraction_client
from backend.app.main import app
from backend.app.models.common import DocType, Priority, ReminderSource
from backend.app.models.documents import Document, DocumentMetadata, Reminder
from backend.app.storage.object_store import LocalObjectStore

USER_A = uuid.UUID("00000000-0000-0000-0000-00000000000a")
USER_B = uuid.UUID("00000000-0000-0000-0000-00000000000b")


def build_text_pdf(lines: list[str]) -> bytes:
    """Build a one-page PDF with a real text layer (Helvetica, one line per entry)."""
    ops = ["BT", "/F1 12 Tf", "14 TL", "72 720 Td"]
    for line in lines:
        escaped = line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        ops.append(f"({escaped}) Tj T*")
    ops.append("ET")
    stream = "\n".join(ops).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref_at,
    )
    return bytes(out)


def build_scanned_pdf(size: tuple[int, int] = (300, 400)) -> bytes:
    """Build an image-only PDF (no text layer), like a scan."""
    image = Image.new("RGB", size, color=(240, 240, 240))
    for x in range(20, size[0] - 20):
        image.putpixel((x, 50), (0, 0, 0))
    buf = io.BytesIO()
    image.save(buf, format="PDF")
    return buf.getvalue()


def build_png(size: tuple[int, int] = (64, 48), noise: bool = False) -> bytes:
    """Build a PNG. With noise=True it does not compress, so it stays large."""
    if noise:
        image = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    else:
        image = Image.new("RGB", size, color=(30, 120, 200))
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def build_docx(paragraphs: list[str]) -> bytes:
    """Build a .docx with one paragraph per entry."""
    doc = DocxDocument()
    for text in paragraphs:
        doc.add_paragraph(text)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def make_document(
    user_id: uuid.UUID = USER_A,
    *,
    title: str = "Flight AB123",
    category: DocType = DocType.ticket,
    content_hash: str | None = None,
    event_date: date | None = date(2027, 3, 1),
    expiry_date: date | None = None,
    file_path: str | None = None,
    reminder_dates: tuple[date, ...] = (date(2027, 3, 1),),
    created_at: datetime | None = None,
) -> Document:
    """Build a persisted-shape Document with document-sourced reminders."""
    document_id = uuid.uuid4()
    return Document(
        document_id=document_id,
        user_id=user_id,
        file_name="ticket.txt",
        mime_type="text/plain",
        is_text_based=True,
        inline_content="Flight AB123",
        file_path=file_path,
        content_hash=content_hash or uuid.uuid4().hex,
        metadata=DocumentMetadata(
            title=title,
            category=category,
            summary=f"{title} summary",
            event_date=event_date,
            expiry_date=expiry_date,
            important_details=["Gate: 5"],
        ),
        reminders=[
            Reminder(
                reminder_id=uuid.uuid4(),
                title=f"{title} reminder",
                date=day,
                priority=Priority.high,
                source=ReminderSource.document,
                document_id=document_id,
            )
            for day in reminder_dates
        ],
        created_at=created_at or datetime.now(timezone.utc),
    )


@pytest.fixture
def text_pdf() -> Callable[[list[str]], bytes]:
    return build_text_pdf


@pytest.fixture
def scanned_pdf() -> bytes:
    return build_scanned_pdf()


@pytest.fixture
def png_bytes() -> Callable[..., bytes]:
    return build_png


@pytest.fixture
def docx_bytes() -> Callable[[list[str]], bytes]:
    return build_docx


@pytest.fixture
def document_factory() -> Callable[..., Document]:
    return make_document


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(user_id=USER_A)


@pytest.fixture
def other_ctx() -> RequestContext:
    return RequestContext(user_id=USER_B)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing storage at a temp directory."""
    return Settings(
        database_url="sqlite+aiosqlite://",
        storage_root=str(tmp_path / "objects"),
        public_base_url="http://testserver",
    )


@pytest.fixture
def object_store(settings: Settings) -> LocalObjectStore:
    return LocalObjectStore(
        root=settings.storage_root,
        secret=settings.signing_secret.get_secret_value(),
        base_url=settings.public_base_url,
    )


@pytest.fixture
def memory_repo() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture
def gateway(
    memory_repo: InMemoryDocumentRepository, object_store: LocalObjectStore, settings: Settings
) -> DocumentGateway:
    return DocumentGateway(memory_repo, object_store, settings)


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory sqlite engine with the schema created.

    StaticPool keeps one connection, so every session sees the same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_session(sqlite_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def api_client(
    settings: Settings, object_store: LocalObjectStore
) -> Generator[TestClient, None, None]:
    """TestClient wired to a private sqlite database, temp storage and the stub client.

    The schema is created on the client's own event loop so the single
    StaticPool connection is never shared across loops.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_object_store] = lambda: object_store
    app.dependency_overrides[get_extraction_client] = DeterministicStubClient

    with TestClient(app) as client:
        client.portal.call(create_schema, engine)
        yield client
        client.portal.call(engine.dispose)

    app.dependency_overrides.clear()
