"""
Tests for the purchase source adapter.

Covers connection lifecycle and fail-closed / fail-open source behaviour.
"""

from unittest.mock import AsyncMock

import pytest

from entitlements.services.purchase_sources import PurchaseSourceAdapter


class TestBillingConnection:
    """Tests for the scoped billing connection."""

    async def test_release_called_once_on_success(self, billing_client: AsyncMock):
        """Connection is opened and released exactly once."""
        adapter = PurchaseSourceAdapter(billing_client)

        async with adapter.billing_connection():
            await adapter.list_active_purchases()

        billing_client.init_connection.assert_awaited_once()
        billing_client.end_connection.assert_awaited_once()

    async def test_release_called_once_when_query_raises(self, billing_client: AsyncMock):
        """Release still happens when the query inside the block fails."""
        billing_client.get_available_purchases.side_effect = RuntimeError("query failed")
        adapter = PurchaseSourceAdapter(billing_client)

        with pytest.raises(RuntimeError, match="query failed"):
            async with adapter.billing_connection():
                await adapter.list_active_purchases()

        billing_client.end_connection.assert_awaited_once()

    async def test_no_release_when_init_fails(self, billing_client: AsyncMock):
        """Nothing to release if the connection never opened."""
        billing_client.init_connection.side_effect = RuntimeError("billing unavailable")
        adapter = PurchaseSourceAdapter(billing_client)

        with pytest.raises(RuntimeError, match="billing unavailable"):
            async with adapter.billing_connection():
                pass

        billing_client.end_connection.assert_not_awaited()

    async def test_release_failure_does_not_mask_result(self, billing_client: AsyncMock):
        """A failing end_connection is logged, not raised."""
        billing_client.end_connection.side_effect = RuntimeError("end failed")
        billing_client.get_available_purchases.return_value = [{"productId": "x"}]
        adapter = PurchaseSourceAdapter(billing_client)

        async with adapter.billing_connection():
            purchases = await adapter.list_active_purchases()

        assert purchases == [{"productId": "x"}]

    async def test_release_failure_does_not_mask_original_error(self, billing_client: AsyncMock):
        """The query error propagates even when release also fails."""
        billing_client.end_connection.side_effect = RuntimeError("end failed")
        billing_client.get_available_purchases.side_effect = ValueError("query failed")
        adapter = PurchaseSourceAdapter(billing_client)

        with pytest.raises(ValueError, match="query failed"):
            async with adapter.billing_connection():
                await adapter.list_active_purchases()


class TestActivePurchases:
    """Tests for the primary (fail-closed) source."""

    async def test_requests_suspended_purchases(self, billing_client: AsyncMock):
        adapter = PurchaseSourceAdapter(billing_client)

        await adapter.list_active_purchases()

        billing_client.get_available_purchases.assert_awaited_once_with(include_suspended=True)

    async def test_error_propagates_unchanged(self, billing_client: AsyncMock):
        """The same exception instance reaches the caller."""
        error = ConnectionError("play services down")
        billing_client.get_available_purchases.side_effect = error
        adapter = PurchaseSourceAdapter(billing_client)

        with pytest.raises(ConnectionError) as exc_info:
            await adapter.list_active_purchases()

        assert exc_info.value is error


class TestHistoricalPurchases:
    """Tests for the optional (fail-open) source."""

    async def test_returns_history(self, billing_client: AsyncMock, history_source: AsyncMock):
        history_source.get_purchases_including_history.return_value = [{"purchaseToken": "h"}]
        adapter = PurchaseSourceAdapter(billing_client, history_source)

        purchases = await adapter.list_historical_purchases()

        assert purchases == [{"purchaseToken": "h"}]
        history_source.get_purchases_including_history.assert_awaited_once_with(
            include_suspended=True
        )

    async def test_capability_absent_returns_empty(self, billing_client: AsyncMock):
        """No history source injected: degrade to empty list."""
        adapter = PurchaseSourceAdapter(billing_client, None)

        assert await adapter.list_historical_purchases() == []

    async def test_query_error_returns_empty(
        self, billing_client: AsyncMock, history_source: AsyncMock
    ):
        """A raising history call degrades to empty list."""
        history_source.get_purchases_including_history.side_effect = RuntimeError("boom")
        adapter = PurchaseSourceAdapter(billing_client, history_source)

        assert await adapter.list_historical_purchases() == []
