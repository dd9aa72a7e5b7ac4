"""
Purchase record normalization.

Billing clients report purchases in their own shapes (camelCase mappings
from the device SDK, attribute objects from test doubles or wrappers).
Everything is mapped into PurchaseRecord before deduplication.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from entitlements.models.domain import PurchaseRecord, PurchaseState

RawPurchase = Mapping[str, Any] | Any


def _read_field(raw: RawPurchase, camel_name: str, snake_name: str) -> Any:
    if isinstance(raw, Mapping):
        value = raw.get(camel_name)
        if value is None:
            value = raw.get(snake_name)
        return value
    value = getattr(raw, camel_name, None)
    if value is None:
        value = getattr(raw, snake_name, None)
    return value


def normalize_purchase_state(value: Any) -> PurchaseState:
    """
    Map a platform state to PurchaseState.

    Never raises: anything unrecognized, including None, becomes UNKNOWN.
    """
    state = str(value if value is not None else "").strip().lower()
    if state == PurchaseState.PURCHASED.value:
        return PurchaseState.PURCHASED
    if state == PurchaseState.PENDING.value:
        return PurchaseState.PENDING
    return PurchaseState.UNKNOWN


def _coerce_transaction_date(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def normalize_purchase(raw: RawPurchase, product_id: str) -> PurchaseRecord | None:
    """
    Convert one raw purchase into a PurchaseRecord.

    Returns None for records of other products and for records without a
    usable purchase token.
    """
    if _read_field(raw, "productId", "product_id") != product_id:
        return None

    token = _read_field(raw, "purchaseToken", "purchase_token")
    if not isinstance(token, str) or not token:
        return None

    transaction_id = _read_field(raw, "transactionId", "transaction_id")

    return PurchaseRecord(
        product_id=product_id,
        purchase_token=token,
        purchase_state=normalize_purchase_state(
            _read_field(raw, "purchaseState", "purchase_state")
        ),
        transaction_date=_coerce_transaction_date(
            _read_field(raw, "transactionDate", "transaction_date")
        ),
        transaction_id=str(transaction_id) if transaction_id is not None else None,
    )


def normalize_purchases(raw_purchases: Iterable[RawPurchase], product_id: str) -> list[PurchaseRecord]:
    """Normalize a source's purchases, keeping only valid records for product_id."""
    records: list[PurchaseRecord] = []
    for raw in raw_purchases:
        record = normalize_purchase(raw, product_id)
        if record is not None:
            records.append(record)
    return records
