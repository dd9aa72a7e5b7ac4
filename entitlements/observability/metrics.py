"""
Metrics Collection with Prometheus.

Batch runs have no scrape endpoint, so metrics live on a dedicated registry
that the CLI can dump in textfile-collector format at the end of a run.
"""

from enum import Enum
from pathlib import Path

from prometheus_client import CollectorRegistry, Counter, Histogram, Info, write_to_textfile

from entitlements.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    OUTCOME = "outcome"
    RESULT = "result"
    MODE = "mode"


class MigrationMetrics:
    """
    Centralized metrics for reconciliation and migration runs.

    - Subjects processed by terminal outcome
    - Receipt import attempts and their duration
    - Legacy lifetime restore validations
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize all Prometheus metrics on the given registry."""
        self.registry = registry or CollectorRegistry()

        self.service_info = Info(
            "entitlement_migration_service",
            "Service information",
            registry=self.registry,
        )
        self.service_info.info(
            {
                "version": settings.service_version,
                "service_name": settings.service_name,
            }
        )

        self.subjects_total = Counter(
            "entitlement_migration_subjects_total",
            "Subjects reaching a terminal state",
            [MetricLabels.OUTCOME, MetricLabels.MODE],
            registry=self.registry,
        )

        self.receipt_attempts_total = Counter(
            "entitlement_migration_receipt_attempts_total",
            "Receipt import attempts against the receipts API",
            [MetricLabels.RESULT],
            registry=self.registry,
        )

        self.receipt_duration_seconds = Histogram(
            "entitlement_migration_receipt_duration_seconds",
            "Receipt import request duration in seconds",
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self.registry,
        )

        self.restore_validations_total = Counter(
            "entitlement_restore_validations_total",
            "Legacy lifetime restore validations",
            [MetricLabels.OUTCOME],
            registry=self.registry,
        )

    def record_subject(self, outcome: str, dry_run: bool) -> None:
        """Record a subject's terminal outcome (succeeded, failed, skipped)."""
        self.subjects_total.labels(outcome=outcome, mode="dry_run" if dry_run else "live").inc()

    def record_receipt_attempt(self, success: bool, duration: float) -> None:
        """Record one receipt import attempt."""
        self.receipt_attempts_total.labels(result="success" if success else "error").inc()
        self.receipt_duration_seconds.observe(duration)

    def record_restore_validation(self, outcome: str) -> None:
        """Record a restore validation outcome (confirmed, rejected, transport_error)."""
        self.restore_validations_total.labels(outcome=outcome).inc()

    def write_textfile(self, path: str | Path) -> None:
        """Write all metrics in Prometheus text format (node exporter textfile collector)."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        write_to_textfile(str(path), self.registry)


# Global metrics instance
metrics = MigrationMetrics()
