"""
Subscriber export from the authoritative subscriber store.

The export is all-or-nothing: a partial view of who is eligible would
silently exclude users from ever being migrated, so any store error aborts
the run.
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Protocol

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from structlog import get_logger

from entitlements.exceptions import SubscriberExportError
from entitlements.models.domain import MigrationSubject

logger = get_logger(__name__)


class SubscriberStore(Protocol):
    """Source of premium users as (user_id, premium fields) pairs in natural order."""

    def iter_premium_users(self) -> Iterable[tuple[str, Mapping[str, Any]]]:
        """Yield each premium user's ID and premium sub-document."""
        ...


class FirestoreSubscriberStore:
    """Reads users/{uid} documents with premium.isPremium == true."""

    def __init__(self, client: Any | None = None, collection: str = "users") -> None:
        self._client = client
        self.collection = collection

    @staticmethod
    def initialize_app(credentials_file: str | None = None) -> firebase_admin.App:
        """Get or initialize the Firebase Admin app."""
        try:
            return firebase_admin.get_app()
        except ValueError:
            pass

        if credentials_file:
            app = firebase_admin.initialize_app(credentials.Certificate(credentials_file))
        else:
            # Application default credentials (GCP environment)
            app = firebase_admin.initialize_app()
        logger.info("firebase_admin_initialized")
        return app

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = firestore.client(self.initialize_app())
        return self._client

    def iter_premium_users(self) -> Iterator[tuple[str, Mapping[str, Any]]]:
        query = self.client.collection(self.collection).where(
            filter=FieldFilter("premium.isPremium", "==", True)
        )
        for doc in query.stream():
            data = doc.to_dict() or {}
            yield doc.id, data.get("premium") or {}


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def export_active_subscribers(
    store: SubscriberStore,
    supported_product_ids: frozenset[str],
    limit: int | None = None,
) -> list[MigrationSubject]:
    """
    Export migration subjects in store order.

    Keeps users whose product is supported and whose purchase token is
    non-empty, stopping once limit subjects are collected.

    Raises:
        SubscriberExportError: If the store cannot be read completely
    """
    subjects: list[MigrationSubject] = []
    scanned = 0

    try:
        for user_id, premium in store.iter_premium_users():
            scanned += 1
            product_id = _as_text(premium.get("productId"))
            purchase_token = _as_text(premium.get("purchaseToken"))

            if product_id not in supported_product_ids:
                continue
            if not purchase_token:
                continue

            subjects.append(
                MigrationSubject(
                    user_id=user_id,
                    product_id=product_id,
                    purchase_token=purchase_token,
                )
            )

            if limit is not None and len(subjects) >= limit:
                break
    except Exception as exc:
        logger.error("subscriber_export_failed", scanned=scanned, error=str(exc))
        raise SubscriberExportError(str(exc)) from exc

    logger.info(
        "subscriber_export_completed",
        scanned=scanned,
        eligible=len(subjects),
        limit=limit,
    )
    return subjects
