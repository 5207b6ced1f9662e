"""Unit tests for structured pipeline logging and the record assembler."""

import logging
import uuid
from datetime import date, datetime, timezone

import pytest

from backend.app.docs.assembler import assemble_document, inline_content_for
from backend.app.docs.normalizer import NormalizedFile
from backend.app.models.common import DocType, ReminderSource
from backend.app.models.documents import ExtractionResult, ReminderDraft
from backend.app.utils.logging import StructuredPipelineLogger

USER_ID = uuid.UUID("00000000-0000-0000-0000-00000000000a")


def _normalized(is_text: bool) -> NormalizedFile:
    return NormalizedFile(
        is_text=is_text,
        text="Flight AB123" if is_text else None,
        image_base64=None if is_text else "aGk=",
        image_mime_type=None if is_text else "image/png",
        preview="" if is_text else "data:image/jpeg;base64,cHJl",
        storage_bytes=b"hi",
        storage_file_name="ticket.txt" if is_text else "ticket.png",
        storage_mime_type="text/plain" if is_text else "image/png",
    )


def test_log_stage_success_is_info(caplog: pytest.LogCaptureFixture) -> None:
    log = StructuredPipelineLogger(USER_ID, "ticket.pdf")

    with caplog.at_level(logging.INFO, logger="backend.app.utils.logging"):
        log.log_stage("extract", "success", 12.3456, fingerprint="abc")

    record = caplog.records[-1]
    assert record.levelno == logging.INFO
    assert record.getMessage() == "Pipeline stage: extract - success"
    assert record.structured == {
        "user_id": str(USER_ID),
        "file_name": "ticket.pdf",
        "stage": "extract",
        "outcome": "success",
        "latency_ms": 12.35,
        "fingerprint": "abc",
    }


def test_log_stage_failure_is_warning(caplog: pytest.LogCaptureFixture) -> None:
    log = StructuredPipelineLogger(USER_ID, "scan.png")

    with caplog.at_level(logging.INFO, logger="backend.app.utils.logging"):
        log.log_stage("normalize", "failure", 1.0, error_reason="Unsupported file format")

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.structured["error_reason"] == "Unsupported file format"
    assert "fingerprint" not in record.structured


def test_inline_content_for() -> None:
    assert inline_content_for(_normalized(True), "u/a.txt") == "Flight AB123"
    assert inline_content_for(_normalized(False), "u/a.png") is None
    assert inline_content_for(_normalized(False), None) == "data:image/png;base64,aGk="


def test_assemble_document_binds_reminders() -> None:
    extraction = ExtractionResult(
        title="Flight AB123",
        category=DocType.ticket,
        summary="Flight",
        event_date=date(2027, 3, 1),
        reminders=[ReminderDraft(title="Departure", date=date(2027, 3, 1), time="14:00")],
    )
    document_id = uuid.uuid4()
    now = datetime(2025, 1, 15, tzinfo=timezone.utc)

    doc = assemble_document(
        user_id=USER_ID,
        fingerprint="f" * 64,
        normalized=_normalized(False),
        extraction=extraction,
        file_path="u/ticket.png",
        document_id=document_id,
        now=now,
    )

    assert doc.document_id == document_id
    assert doc.content_hash == "f" * 64
    assert doc.file_name == "ticket.png"
    assert doc.preview_image == "data:image/jpeg;base64,cHJl"
    assert doc.is_text_based is False
    assert doc.created_at == now
    assert doc.metadata.event_date == date(2027, 3, 1)
    (reminder,) = doc.reminders
    assert reminder.source == ReminderSource.document
    assert reminder.document_id == document_id
    assert reminder.time == "14:00"
