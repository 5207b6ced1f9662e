"""Prometheus metrics for the document pipeline."""

from prometheus_client import Counter, Histogram

# Pipeline metrics
pipeline_stage_latency_ms = Histogram(
    "pipeline_stage_latency_ms",
    "Document pipeline stage latency in milliseconds",
    ["stage", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000, 16000],
)

documents_ingested_total = Counter(
    "documents_ingested_total",
    "Total uploads by final outcome",
    ["outcome"],
)

storage_orphans_total = Counter(
    "storage_orphans_total",
    "Storage objects left behind after a failed removal",
)


class PrometheusPipelineMetrics:
    """Prometheus-based pipeline metrics implementation."""

    def record_latency(self, stage: str, outcome: str, latency_ms: float) -> None:
        """Record stage latency."""
        pipeline_stage_latency_ms.labels(stage=stage, outcome=outcome).observe(latency_ms)

    def inc_ingested(self, outcome: str) -> None:
        """Count a finished upload."""
        documents_ingested_total.labels(outcome=outcome).inc()

    def inc_orphan(self) -> None:
        """Count an object that could not be removed."""
        storage_orphans_total.inc()
