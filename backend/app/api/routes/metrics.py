"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - pipeline_stage_latency_ms{stage, outcome}
    - documents_ingested_total{outcome}
    - storage_orphans_total
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
