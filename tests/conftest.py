"""
Pytest Configuration and Centralized Fixtures.

Provides reusable fakes for testing:
- Device billing client and historical purchase source
- Raw purchase payloads as the billing SDK reports them
- Subscriber store, checkpoint store, receipt importer
- Recording sleep so no test waits on real timers
"""

from collections.abc import Iterator, Mapping
from typing import Any
from unittest.mock import AsyncMock

import pytest

from entitlements.models.domain import MigrationSubject
from entitlements.observability.metrics import MigrationMetrics
from entitlements.services.checkpoint import InMemoryCheckpointStore
from entitlements.services.purchase_sources import PurchaseSourceAdapter

LEGACY_PRODUCT_ID = "premium_unlock"
MONTHLY_PRODUCT_ID = "monthly_showseek_sub"
YEARLY_PRODUCT_ID = "showseek_yearly_sub"
SUPPORTED_PRODUCTS = frozenset({MONTHLY_PRODUCT_ID, YEARLY_PRODUCT_ID})


def make_raw_purchase(
    token: str,
    state: str = "purchased",
    date: int = 1_700_000_000_000,
    product_id: str = LEGACY_PRODUCT_ID,
    transaction_id: str | None = None,
) -> dict[str, Any]:
    """Raw purchase in the billing SDK's camelCase shape."""
    return {
        "productId": product_id,
        "purchaseState": state,
        "purchaseToken": token,
        "transactionDate": date,
        "transactionId": transaction_id or f"GPA.{token}",
    }


@pytest.fixture
def raw_purchase():
    """Factory for SDK-shaped raw purchases."""
    return make_raw_purchase


# ============================================================================
# Billing Client Fixtures
# ============================================================================


@pytest.fixture
def billing_client() -> AsyncMock:
    """Billing client with a working connection and no purchases."""
    client = AsyncMock()
    client.init_connection = AsyncMock(return_value=True)
    client.end_connection = AsyncMock(return_value=True)
    client.get_available_purchases = AsyncMock(return_value=[])
    return client


@pytest.fixture
def history_source() -> AsyncMock:
    """Historical purchase source with no purchases."""
    source = AsyncMock()
    source.get_purchases_including_history = AsyncMock(return_value=[])
    return source


@pytest.fixture
def purchase_sources(billing_client: AsyncMock, history_source: AsyncMock) -> PurchaseSourceAdapter:
    return PurchaseSourceAdapter(billing_client, history_source)


@pytest.fixture
def migration_metrics() -> MigrationMetrics:
    """Metrics on a private registry so tests can read exact values."""
    return MigrationMetrics()


# ============================================================================
# Migration Fixtures
# ============================================================================


class FakeSubscriberStore:
    """Subscriber store backed by a list of (user_id, premium) pairs."""

    def __init__(self, users: list[tuple[str, Mapping[str, Any]]] | None = None) -> None:
        self.users = list(users or [])
        self.error: Exception | None = None
        self.fail_after = 0  # Users yielded before error is raised

    def iter_premium_users(self) -> Iterator[tuple[str, Mapping[str, Any]]]:
        for index, user in enumerate(self.users):
            if self.error is not None and index >= self.fail_after:
                raise self.error
            yield user
        if self.error is not None:
            raise self.error


def make_premium(
    token: str | None = "token-0000000001", product_id: str = MONTHLY_PRODUCT_ID
) -> dict[str, Any]:
    return {"isPremium": True, "productId": product_id, "purchaseToken": token}


class RecordingImporter:
    """Receipt importer that fails on demand per user."""

    def __init__(self, failures: dict[str, list[Exception]] | None = None) -> None:
        self.failures = {user: list(errors) for user, errors in (failures or {}).items()}
        self.calls: list[str] = []

    async def post_receipt(self, subject: MigrationSubject) -> None:
        self.calls.append(subject.user_id)
        pending = self.failures.get(subject.user_id)
        if pending:
            raise pending.pop(0)


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def premium():
    """Factory for premium sub-documents."""
    return make_premium


@pytest.fixture
def subscriber_store() -> FakeSubscriberStore:
    return FakeSubscriberStore(
        [
            ("user-a", make_premium("token-aaaaaaaaaa")),
            ("user-b", make_premium("token-bbbbbbbbbb", YEARLY_PRODUCT_ID)),
            ("user-c", make_premium("token-cccccccccc")),
        ]
    )


@pytest.fixture
def checkpoint_store() -> InMemoryCheckpointStore:
    return InMemoryCheckpointStore()


@pytest.fixture
def importer() -> RecordingImporter:
    return RecordingImporter()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def store_factory():
    """Build a FakeSubscriberStore from (user_id, premium) pairs."""
    return FakeSubscriberStore


@pytest.fixture
def importer_factory():
    """Build a RecordingImporter with per-user queued failures."""
    return RecordingImporter
