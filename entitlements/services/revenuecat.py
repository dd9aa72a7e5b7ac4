"""
RevenueCat receipts API client.

Posting a Google Play purchase token to /v1/receipts makes RevenueCat fetch
and attach the subscription to the given app user.
"""

import time

import httpx
from structlog import get_logger

from entitlements.config import settings
from entitlements.exceptions import ReceiptImportError
from entitlements.models.api import ReceiptImportRequest
from entitlements.models.domain import MigrationSubject
from entitlements.observability.logging import redact_token
from entitlements.observability.metrics import MigrationMetrics, metrics

logger = get_logger(__name__)


class RevenueCatReceiptsClient:
    """Imports store receipts into RevenueCat."""

    def __init__(
        self,
        api_key: str,
        receipts_url: str | None = None,
        platform: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        metrics_recorder: MigrationMetrics | None = None,
    ) -> None:
        self.api_key = api_key
        self.receipts_url = receipts_url or settings.revenuecat_receipts_url
        self.platform = platform or settings.revenuecat_platform
        self.metrics = metrics_recorder or metrics
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        return self._http_client

    async def post_receipt(self, subject: MigrationSubject) -> None:
        """
        Import one subscriber's purchase token.

        Raises:
            ReceiptImportError: On a non-2xx response
            httpx.HTTPError: On transport failure
        """
        body = ReceiptImportRequest(
            app_user_id=subject.user_id,
            fetch_token=subject.purchase_token,
            product_id=subject.product_id,
        )

        logger.debug(
            "posting_receipt",
            user_id=subject.user_id,
            product_id=subject.product_id,
            token_prefix=redact_token(subject.purchase_token),
        )

        start = time.monotonic()
        try:
            response = await self.http_client.post(
                self.receipts_url,
                json=body.model_dump(),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "X-Platform": self.platform,
                },
            )
        except httpx.HTTPError:
            self.metrics.record_receipt_attempt(False, time.monotonic() - start)
            raise

        success = response.is_success
        self.metrics.record_receipt_attempt(success, time.monotonic() - start)

        if not success:
            logger.warning(
                "receipt_import_rejected",
                user_id=subject.user_id,
                status=response.status_code,
            )
            raise ReceiptImportError(response.status_code, response.text)

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
