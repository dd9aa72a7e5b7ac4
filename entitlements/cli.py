"""
Migrate active subscribers to RevenueCat.

Exports premium users with a supported subscription product from Firestore
and posts each purchase token to the RevenueCat receipts API. Progress is
checkpointed after every user so the run can be killed and resumed.

Usage:
    # Preview who would be migrated (no API key needed, checkpoint untouched)
    migrate-subscribers --dry-run

    # Migrate the first 50 eligible users
    REVENUECAT_API_KEY=sk_... migrate-subscribers --limit=50

    # Reprocess everyone, including users already in the checkpoint
    migrate-subscribers --force --checkpoint=/var/lib/migration/checkpoint.json

Failed users are checkpointed as processed: re-running without --force
will not retry them. Check the report's "failed" list and re-run with
--force to reprocess.
"""

import argparse
import asyncio
import sys
from collections.abc import Sequence

from structlog import get_logger

from entitlements.config import Settings, get_settings
from entitlements.models.domain import MigrationReport
from entitlements.observability.logging import setup_logging
from entitlements.observability.metrics import metrics
from entitlements.services.checkpoint import FileCheckpointStore
from entitlements.services.migration import MigrationDriver, ReceiptImporter, write_report
from entitlements.services.retry import Sleep
from entitlements.services.revenuecat import RevenueCatReceiptsClient
from entitlements.services.subscriber_export import FirestoreSubscriberStore, SubscriberStore

logger = get_logger(__name__)


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid limit: {value!r}") from None
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"limit must be positive: {parsed}")
    return parsed


def build_parser(config: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="migrate-subscribers",
        description="Migrate active subscribers to RevenueCat",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Failed users are marked processed in the checkpoint. Use --force to retry them.

Examples:
  migrate-subscribers --dry-run --limit=10
  migrate-subscribers --checkpoint=/tmp/cp.json --output=/tmp/report.json
        """,
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Don't call RevenueCat or write the checkpoint"
    )
    parser.add_argument(
        "--force", action="store_true", help="Reprocess users already in the checkpoint"
    )
    parser.add_argument(
        "--limit", type=_positive_int, default=None, help="Cap the number of exported users"
    )
    parser.add_argument(
        "--checkpoint",
        default=config.default_checkpoint_file,
        help=f"Checkpoint file (default: {config.default_checkpoint_file})",
    )
    parser.add_argument(
        "--output",
        default=config.default_report_file,
        help=f"Report file (default: {config.default_report_file})",
    )
    parser.add_argument(
        "--metrics-file", default=None, help="Write Prometheus metrics to this textfile"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def print_summary(report: MigrationReport, output_file: str) -> None:
    print("Migration finished.")
    print(f"Succeeded: {len(report.succeeded)}")
    print(f"Failed: {len(report.failed)}")
    print(f"Skipped: {len(report.skipped)}")
    print(f"Report: {output_file}")


async def run_migration(
    args: argparse.Namespace,
    config: Settings,
    subscriber_store: SubscriberStore,
    importer: ReceiptImporter | None,
    sleep: Sleep = asyncio.sleep,
) -> MigrationReport:
    """Run the driver, then write the report and print the summary."""
    driver = MigrationDriver(
        subscriber_store=subscriber_store,
        checkpoint=FileCheckpointStore(args.checkpoint),
        importer=importer,
        supported_product_ids=config.supported_products,
        max_attempts=config.migration_max_attempts,
        backoff_seconds=config.migration_backoff_seconds,
        pacing_seconds=config.migration_pacing_seconds,
        sleep=sleep,
    )

    report = await driver.run(dry_run=args.dry_run, force=args.force, limit=args.limit)

    write_report(args.output, report)
    print_summary(report, args.output)
    return report


async def _main(args: argparse.Namespace, config: Settings) -> None:
    api_key = config.require_api_key(args.dry_run)

    FirestoreSubscriberStore.initialize_app(config.firebase_credentials_file or None)
    store = FirestoreSubscriberStore()

    importer = None if args.dry_run else RevenueCatReceiptsClient(api_key)
    try:
        await run_migration(args, config, store, importer)
    finally:
        if importer is not None:
            await importer.close()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point; returns the process exit code."""
    config = get_settings()
    args = build_parser(config).parse_args(argv)

    setup_logging(level="DEBUG" if args.verbose else None)

    try:
        asyncio.run(_main(args, config))
    except Exception as exc:
        logger.exception("migration_script_failed", error=str(exc))
        return 1
    finally:
        if args.metrics_file:
            metrics.write_textfile(args.metrics_file)

    return 0


if __name__ == "__main__":
    sys.exit(main())
