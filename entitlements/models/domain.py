"""
Domain Models - Internal business logic models using dataclasses.

NO DICTIONARIES - All data structures are strongly typed dataclasses.
"""

from dataclasses import dataclass, field
from enum import Enum


class PurchaseState(str, Enum):
    """Lifecycle state reported by the billing platform."""

    PURCHASED = "purchased"
    PENDING = "pending"
    UNKNOWN = "unknown"

    @property
    def priority(self) -> int:
        """Ranking used to pick between records: purchased > unknown > pending."""
        return _STATE_PRIORITY[self]


# An ambiguous state is more likely a real historical purchase than an
# explicitly pending one, which may never complete.
_STATE_PRIORITY = {
    PurchaseState.PURCHASED: 3,
    PurchaseState.UNKNOWN: 2,
    PurchaseState.PENDING: 1,
}


@dataclass(frozen=True)
class PurchaseRecord:
    """One observed purchase as reported by a billing source."""

    product_id: str
    purchase_token: str
    purchase_state: PurchaseState
    transaction_date: int  # epoch millis, tie-break only
    transaction_id: str | None = None

    def __post_init__(self) -> None:
        """Validate purchase record fields."""
        if not self.purchase_token:
            raise ValueError("Purchase token required")
        if not self.product_id:
            raise ValueError("Product ID required")

    @property
    def priority(self) -> int:
        return self.purchase_state.priority


@dataclass(frozen=True)
class ValidationVerdict:
    """Backend verdict for a restore validation request."""

    entitlement_type: str | None
    is_premium: bool
    success: bool

    @property
    def confirms(self) -> bool:
        """Only an explicit premium success grants the entitlement."""
        return self.success and self.is_premium


@dataclass(frozen=True)
class MigrationSubject:
    """An entitled subscriber exported from the subscriber store."""

    user_id: str
    product_id: str
    purchase_token: str

    def __post_init__(self) -> None:
        """Validate migration subject fields."""
        if not self.user_id:
            raise ValueError("User ID required")
        if not self.purchase_token:
            raise ValueError("Purchase token required")


@dataclass(frozen=True)
class ReportEntry:
    """A failed or skipped subject with the reason."""

    user_id: str
    reason: str


class SkipReason(str, Enum):
    """Reasons a subject was skipped without an attempt."""

    ALREADY_PROCESSED = "already_processed"


@dataclass
class MigrationReport:
    """
    Outcome of one migration run.

    Written once at the end of the run; the tool never reads it back.
    """

    succeeded: list[str] = field(default_factory=list)
    failed: list[ReportEntry] = field(default_factory=list)
    skipped: list[ReportEntry] = field(default_factory=list)

    def record_success(self, user_id: str) -> None:
        self.succeeded.append(user_id)

    def record_failure(self, user_id: str, reason: str) -> None:
        self.failed.append(ReportEntry(user_id=user_id, reason=reason))

    def record_skip(self, user_id: str, reason: SkipReason) -> None:
        self.skipped.append(ReportEntry(user_id=user_id, reason=reason.value))
