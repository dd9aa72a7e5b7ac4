"""
Subscriber Migration Driver.

Moves entitled subscribers onto the new billing backend one at a time,
resumable across restarts.

Per-subject state machine:
    already in checkpoint and not force  -> skipped (already_processed)
    dry run                              -> succeeded (nothing sent, nothing persisted)
    import succeeds within the attempts  -> succeeded, checkpoint saved, pacing delay
    attempts exhausted                   -> failed, checkpoint saved, no delay

OPERATOR NOTE: failed subjects are written to the checkpoint too. A re-run
without --force will NOT retry them; pass --force to reprocess failures.
"""

import asyncio
import json
from pathlib import Path
from typing import Protocol

from structlog import get_logger

from entitlements.models.api import ReportDocument
from entitlements.models.domain import MigrationReport, MigrationSubject, SkipReason
from entitlements.observability.logging import log_context
from entitlements.observability.metrics import MigrationMetrics, metrics
from entitlements.services.checkpoint import CheckpointStore
from entitlements.services.retry import Sleep, linear_backoff, retry_async
from entitlements.services.subscriber_export import SubscriberStore, export_active_subscribers

logger = get_logger(__name__)


class ReceiptImporter(Protocol):
    """Remote mutation performed for each subject."""

    async def post_receipt(self, subject: MigrationSubject) -> None:
        """Import the subject's purchase; raise on failure."""
        ...


class MigrationDriver:
    """
    Sequential, checkpointed migration of exported subscribers.

    Subjects are processed strictly in export order, one at a time. The only
    waits are the import call itself, retry backoff, and pacing after a
    successful import.
    """

    def __init__(
        self,
        subscriber_store: SubscriberStore,
        checkpoint: CheckpointStore,
        importer: ReceiptImporter | None,
        supported_product_ids: frozenset[str],
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        pacing_seconds: float = 0.3,
        sleep: Sleep = asyncio.sleep,
        metrics_recorder: MigrationMetrics | None = None,
    ) -> None:
        self.subscriber_store = subscriber_store
        self.checkpoint = checkpoint
        self.importer = importer
        self.supported_product_ids = supported_product_ids
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.pacing_seconds = pacing_seconds
        self.sleep = sleep
        self.metrics = metrics_recorder or metrics

    async def run(
        self,
        dry_run: bool = False,
        force: bool = False,
        limit: int | None = None,
    ) -> MigrationReport:
        """
        Run one migration pass.

        Raises:
            SubscriberExportError: If the export fails (before any subject runs)
            ValueError: If no importer is configured outside a dry run
        """
        if self.importer is None and not dry_run:
            raise ValueError("A receipt importer is required unless dry_run is set")

        report = MigrationReport()
        processed_user_ids = self.checkpoint.load()
        subjects = export_active_subscribers(
            self.subscriber_store, self.supported_product_ids, limit
        )

        logger.info(
            "eligible_subscribers_found",
            count=len(subjects),
            already_processed=len(processed_user_ids),
            dry_run=dry_run,
        )
        if force:
            logger.info("force_mode_enabled", detail="reprocessing checkpointed users")

        for subject in subjects:
            with log_context(user_id=subject.user_id):
                await self._process_subject(subject, processed_user_ids, report, dry_run, force)

        return report

    async def _process_subject(
        self,
        subject: MigrationSubject,
        processed_user_ids: set[str],
        report: MigrationReport,
        dry_run: bool,
        force: bool,
    ) -> None:
        if not force and subject.user_id in processed_user_ids:
            logger.info("subscriber_skipped", reason=SkipReason.ALREADY_PROCESSED.value)
            report.record_skip(subject.user_id, SkipReason.ALREADY_PROCESSED)
            self.metrics.record_subject("skipped", dry_run)
            return

        if dry_run:
            # In-memory only: a dry run never writes the checkpoint file
            logger.info("subscriber_would_migrate", product_id=subject.product_id)
            report.record_success(subject.user_id)
            processed_user_ids.add(subject.user_id)
            self.metrics.record_subject("succeeded", dry_run)
            return

        importer = self.importer
        assert importer is not None

        try:
            await retry_async(
                lambda: importer.post_receipt(subject),
                max_attempts=self.max_attempts,
                delay=linear_backoff(self.backoff_seconds),
                sleep=self.sleep,
            )
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            logger.error("subscriber_migration_failed", reason=reason)
            report.record_failure(subject.user_id, reason)
            processed_user_ids.add(subject.user_id)
            self.checkpoint.save(processed_user_ids)
            self.metrics.record_subject("failed", dry_run)
            return

        logger.info("subscriber_migrated", product_id=subject.product_id)
        report.record_success(subject.user_id)
        processed_user_ids.add(subject.user_id)
        self.checkpoint.save(processed_user_ids)
        self.metrics.record_subject("succeeded", dry_run)
        await self.sleep(self.pacing_seconds)


def write_report(path: str | Path, report: MigrationReport) -> Path:
    """Write the run report as JSON, creating parent directories."""
    report_path = Path(path)
    report_path.parent.mkdir(parents=True, exist_ok=True)
    document = ReportDocument.from_report(report)
    report_path.write_text(
        json.dumps(document.model_dump(by_alias=True), indent=2), encoding="utf-8"
    )
    logger.info("migration_report_written", path=str(report_path))
    return report_path
