"""
Purchase deduplication and prioritization.

Sources overlap: the same purchase token can be reported by the active and
the historical listing with different states. One record survives per token
and the survivors are ordered so that position 0 is the legacy purchase.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from entitlements.models.domain import PurchaseRecord, PurchaseState
from entitlements.observability.logging import redact_token


def _supersedes(candidate: PurchaseRecord, existing: PurchaseRecord) -> bool:
    if candidate.priority != existing.priority:
        return candidate.priority > existing.priority
    return candidate.transaction_date > existing.transaction_date


def merge_purchases(purchases: Iterable[PurchaseRecord]) -> list[PurchaseRecord]:
    """
    Keep one record per purchase token.

    Higher priority wins, then the later transaction date; on a full tie the
    first record seen is kept.
    """
    by_token: dict[str, PurchaseRecord] = {}
    for purchase in purchases:
        existing = by_token.get(purchase.purchase_token)
        if existing is None or _supersedes(purchase, existing):
            by_token[purchase.purchase_token] = purchase
    return list(by_token.values())


def sort_purchases(purchases: Iterable[PurchaseRecord]) -> list[PurchaseRecord]:
    """Order by priority desc, transaction date desc, then token for a total order."""
    return sorted(
        purchases,
        key=lambda p: (-p.priority, -p.transaction_date, p.purchase_token),
    )


def reconcile_purchases(*sources: Iterable[PurchaseRecord]) -> list[PurchaseRecord]:
    """Merge normalized records from all sources into the ordered candidate list."""
    merged = merge_purchases(purchase for source in sources for purchase in source)
    return sort_purchases(merged)


def primary_candidate(candidates: list[PurchaseRecord]) -> PurchaseRecord | None:
    return candidates[0] if candidates else None


@dataclass(frozen=True)
class CandidateSummary:
    """Log-safe summary of a candidate list."""

    total: int
    purchased: int
    unknown: int
    pending: int
    token_prefixes: tuple[str, ...]


def summarize_candidates(candidates: list[PurchaseRecord]) -> CandidateSummary:
    """Count candidates per state; tokens are reduced to redacted prefixes."""
    counts = Counter(candidate.purchase_state for candidate in candidates)
    return CandidateSummary(
        total=len(candidates),
        purchased=counts[PurchaseState.PURCHASED],
        unknown=counts[PurchaseState.UNKNOWN],
        pending=counts[PurchaseState.PENDING],
        token_prefixes=tuple(redact_token(c.purchase_token) for c in candidates),
    )
