"""
Purchase Source Adapter.

Wraps the device billing client. The active-purchase listing is the source
of truth and fails closed; the historical listing is an optional enrichment
and fails open.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any, Protocol

from structlog import get_logger

logger = get_logger(__name__)


class BillingClient(Protocol):
    """Device billing client (connection lifecycle plus active purchases)."""

    async def init_connection(self) -> Any:
        """Open a billing connection."""
        ...

    async def end_connection(self) -> Any:
        """Release the billing connection."""
        ...

    async def get_available_purchases(self, include_suspended: bool = True) -> Sequence[Any]:
        """List active purchases, including suspended ones."""
        ...


class HistoricalPurchaseSource(Protocol):
    """Optional capability: purchase history (Android only on most builds)."""

    async def get_purchases_including_history(
        self, include_suspended: bool = True
    ) -> Sequence[Any]:
        """List purchases including history and suspended items."""
        ...


class PurchaseSourceAdapter:
    """
    Query adapter over a billing client and an optional history source.

    Usage:
        adapter = PurchaseSourceAdapter(client, history_source)
        async with adapter.billing_connection():
            active = await adapter.list_active_purchases()
            history = await adapter.list_historical_purchases()
    """

    def __init__(
        self,
        billing_client: BillingClient,
        historical_source: HistoricalPurchaseSource | None = None,
    ) -> None:
        self.billing_client = billing_client
        self.historical_source = historical_source

    @asynccontextmanager
    async def billing_connection(self) -> AsyncIterator["PurchaseSourceAdapter"]:
        """
        Hold a billing connection for the duration of the block.

        The connection is released exactly once on every exit path. If
        init_connection itself fails there is nothing to release.
        """
        await self.billing_client.init_connection()
        try:
            yield self
        finally:
            try:
                await self.billing_client.end_connection()
            except Exception as exc:
                # Must not mask the query result or the original error
                logger.warning("billing_connection_release_failed", error=str(exc))

    async def list_active_purchases(self) -> list[Any]:
        """
        List active and suspended purchases.

        Raises:
            Exception: Whatever the billing client raised, unchanged
        """
        purchases = await self.billing_client.get_available_purchases(include_suspended=True)
        return list(purchases)

    async def list_historical_purchases(self) -> list[Any]:
        """List purchase history; degrades to an empty list when unavailable."""
        if self.historical_source is None:
            logger.warning(
                "historical_purchase_source_unavailable",
                detail="using active purchases only",
            )
            return []

        try:
            purchases = await self.historical_source.get_purchases_including_history(
                include_suspended=True
            )
        except Exception as exc:
            logger.warning("historical_purchase_query_failed", error=str(exc))
            return []

        return list(purchases)
