"""
Exception Classes - Strongly typed exception hierarchy.

NO DICTIONARIES - All exceptions have typed attributes.
"""


class EntitlementError(Exception):
    """Base exception for all entitlement reconciliation and migration errors."""

    pass


class LegacyValidationError(EntitlementError):
    """Raised when the backend does not confirm a legacy lifetime entitlement."""

    DEFAULT_MESSAGE = "Legacy lifetime validation did not return premium success."

    def __init__(self, message: str = DEFAULT_MESSAGE) -> None:
        self.message = message
        super().__init__(message)


class CallableInvocationError(EntitlementError):
    """Raised when a backend callable function returns an error payload or bad status."""

    def __init__(self, function_name: str, status_code: int | None, message: str) -> None:
        self.function_name = function_name
        self.status_code = status_code
        self.message = message
        super().__init__(f"Callable {function_name} failed ({status_code}): {message}")


class SubscriberExportError(EntitlementError):
    """Raised when the subscriber export cannot be completed."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Subscriber export failed: {message}")


class ReceiptImportError(EntitlementError):
    """Raised when the receipts API answers with a non-2xx status."""

    BODY_PREVIEW_LENGTH = 300

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"RevenueCat receipts API failed ({status_code}): "
            f"{body[: self.BODY_PREVIEW_LENGTH]}"
        )
