"""Structured logging for document pipeline stages."""

import logging
from typing import Any
from uuid import UUID

logger = logging.getLogger(__name__)


class StructuredPipelineLogger:
    """Structured logger for intake pipeline stages."""

    def __init__(self, user_id: UUID, file_name: str) -> None:
        self.user_id = user_id
        self.file_name = file_name

    def log_stage(
        self,
        stage: str,
        outcome: str,
        latency_ms: float,
        fingerprint: str | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log one pipeline stage with structured data."""
        log_data: dict[str, Any] = {
            "user_id": str(self.user_id),
            "file_name": self.file_name,
            "stage": stage,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if fingerprint:
            log_data["fingerprint"] = fingerprint
        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Pipeline stage: {stage} - {outcome}"

        if outcome in ("success", "duplicate", "skipped"):
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
