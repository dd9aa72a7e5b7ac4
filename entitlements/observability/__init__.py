"""
Observability module - Logging and Metrics.
"""

from entitlements.observability.logging import get_logger, log_context, redact_token, setup_logging
from entitlements.observability.metrics import MigrationMetrics, metrics

__all__ = [
    "get_logger",
    "log_context",
    "redact_token",
    "setup_logging",
    "MigrationMetrics",
    "metrics",
]
