"""
Legacy Lifetime Restore Service.

Finds the authoritative legacy lifetime purchase on the device and asks the
backend to validate it. Candidate selection is deterministic regardless of
which source reported a purchase first.
"""

from pydantic import ValidationError
from structlog import get_logger

from entitlements.config import settings
from entitlements.exceptions import LegacyValidationError
from entitlements.models.api import ValidatePurchaseRequest, ValidatePurchaseResponse
from entitlements.models.domain import PurchaseRecord
from entitlements.observability.logging import redact_token
from entitlements.observability.metrics import MigrationMetrics, metrics
from entitlements.services.callable_client import CallableFunction
from entitlements.services.dedup import primary_candidate, reconcile_purchases, summarize_candidates
from entitlements.services.normalizer import normalize_purchases
from entitlements.services.purchase_sources import PurchaseSourceAdapter

logger = get_logger(__name__)


class LegacyLifetimeRestoreService:
    """
    Restores a legacy lifetime (one-time) purchase onto the entitlement backend.

    Usage:
        service = LegacyLifetimeRestoreService(adapter, client.function("validatePurchase"))
        purchase = await service.find_legacy_lifetime_purchase()
        if purchase is not None:
            await service.restore_legacy_lifetime_via_callable(user_id, purchase)
    """

    def __init__(
        self,
        sources: PurchaseSourceAdapter,
        validate_purchase: CallableFunction,
        product_id: str | None = None,
        metrics_recorder: MigrationMetrics | None = None,
    ) -> None:
        self.sources = sources
        self.validate_purchase = validate_purchase
        self.product_id = product_id or settings.legacy_lifetime_product_id
        self.metrics = metrics_recorder or metrics

    async def find_legacy_lifetime_purchases(self) -> list[PurchaseRecord]:
        """
        Collect, deduplicate and order legacy lifetime purchases.

        Raises:
            Exception: If the billing connection or active-purchase query fails
        """
        try:
            async with self.sources.billing_connection():
                active = await self.sources.list_active_purchases()
                historical = await self.sources.list_historical_purchases()
        except Exception as exc:
            logger.error("legacy_purchase_query_failed", error=str(exc))
            raise

        candidates = reconcile_purchases(
            normalize_purchases(active, self.product_id),
            normalize_purchases(historical, self.product_id),
        )

        summary = summarize_candidates(candidates)
        logger.info(
            "legacy_purchase_query_completed",
            active_purchases=len(active),
            historical_purchases=len(historical),
            candidates=summary.total,
            purchased=summary.purchased,
            unknown=summary.unknown,
            pending=summary.pending,
            token_prefixes=list(summary.token_prefixes),
        )

        return candidates

    async def find_legacy_lifetime_purchase(self) -> PurchaseRecord | None:
        """Return the top candidate, or None when the user has no legacy purchase."""
        return primary_candidate(await self.find_legacy_lifetime_purchases())

    async def restore_legacy_lifetime_via_callable(
        self, user_id: str, purchase: PurchaseRecord
    ) -> bool:
        """
        Validate one candidate with the backend. No retries here; the caller decides.

        Returns:
            True when the backend confirms a premium entitlement

        Raises:
            LegacyValidationError: For any other outcome, including transport errors
        """
        request = ValidatePurchaseRequest(
            product_id=self.product_id,
            purchase_token=purchase.purchase_token,
        )

        logger.info(
            "validating_legacy_lifetime_purchase",
            user_id=user_id,
            product_id=self.product_id,
            token_prefix=redact_token(purchase.purchase_token),
        )

        try:
            payload = await self.validate_purchase(request.model_dump(by_alias=True))
        except Exception as exc:
            logger.error("legacy_validation_transport_error", user_id=user_id, error=str(exc))
            self.metrics.record_restore_validation("transport_error")
            raise LegacyValidationError() from exc

        try:
            verdict = ValidatePurchaseResponse.model_validate(payload or {}).to_verdict()
        except ValidationError as exc:
            logger.warning("legacy_validation_malformed_response", user_id=user_id)
            self.metrics.record_restore_validation("rejected")
            raise LegacyValidationError() from exc

        if not verdict.confirms:
            logger.warning(
                "legacy_validation_not_confirmed",
                user_id=user_id,
                success=verdict.success,
                is_premium=verdict.is_premium,
                entitlement_type=verdict.entitlement_type,
            )
            self.metrics.record_restore_validation("rejected")
            raise LegacyValidationError()

        logger.info(
            "legacy_lifetime_restored",
            user_id=user_id,
            entitlement_type=verdict.entitlement_type,
        )
        self.metrics.record_restore_validation("confirmed")
        return True
