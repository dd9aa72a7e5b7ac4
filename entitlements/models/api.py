"""
API Models - Pydantic models for wire and file formats.

NO DICTIONARIES - All data structures are strongly typed.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool

from entitlements.models.domain import MigrationReport, ValidationVerdict

# ============================================================================
# validatePurchase callable
# ============================================================================


class ValidatePurchaseRequest(BaseModel):
    """validatePurchase callable request payload."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., min_length=1, alias="productId")
    purchase_token: str = Field(..., min_length=1, alias="purchaseToken")
    purchase_type: Literal["in-app"] = Field("in-app", alias="purchaseType")
    source: Literal["restore"] = "restore"


class ValidatePurchaseResponse(BaseModel):
    """
    validatePurchase callable response payload.

    Booleans are strict: only a JSON true counts, never a truthy string or 1.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    entitlement_type: str | None = Field(None, alias="entitlementType")
    is_premium: StrictBool | None = Field(None, alias="isPremium")
    success: StrictBool | None = None

    def to_verdict(self) -> ValidationVerdict:
        """Convert to domain verdict."""
        return ValidationVerdict(
            entitlement_type=self.entitlement_type,
            is_premium=self.is_premium is True,
            success=self.success is True,
        )


# ============================================================================
# RevenueCat receipts API
# ============================================================================


class ReceiptImportRequest(BaseModel):
    """POST /v1/receipts request body."""

    app_user_id: str = Field(..., min_length=1)
    fetch_token: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)


# ============================================================================
# Checkpoint and report files
# ============================================================================


class CheckpointDocument(BaseModel):
    """Checkpoint file: {"processedUserIds": [...]}."""

    model_config = ConfigDict(populate_by_name=True)

    processed_user_ids: list[str] = Field(default_factory=list, alias="processedUserIds")


class ReportEntryDocument(BaseModel):
    """A failed or skipped entry in the report file."""

    model_config = ConfigDict(populate_by_name=True)

    reason: str
    user_id: str = Field(..., alias="userId")


class ReportDocument(BaseModel):
    """Report file written at the end of a migration run."""

    succeeded: list[str] = Field(default_factory=list)
    failed: list[ReportEntryDocument] = Field(default_factory=list)
    skipped: list[ReportEntryDocument] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: MigrationReport) -> "ReportDocument":
        """Build the file representation of a migration report."""
        return cls(
            succeeded=list(report.succeeded),
            failed=[
                ReportEntryDocument(reason=entry.reason, user_id=entry.user_id)
                for entry in report.failed
            ],
            skipped=[
                ReportEntryDocument(reason=entry.reason, user_id=entry.user_id)
                for entry in report.skipped
            ],
        )
