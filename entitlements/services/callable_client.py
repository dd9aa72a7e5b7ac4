"""
Firebase callable functions client.

Implements the callable HTTPS protocol: POST {"data": ...} to
{functions_url}/{name} with the user's ID token, and read either
{"result": ...} or {"error": {...}} from the response.
"""

from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from structlog import get_logger

from entitlements.config import ConfigurationError, settings
from entitlements.exceptions import CallableInvocationError

logger = get_logger(__name__)

# Returns the callable's result payload (the SDK's response.data)
CallableFunction = Callable[[dict[str, Any]], Awaitable[Any]]


class FirebaseCallableClient:
    """Calls backend callable functions over HTTPS."""

    def __init__(
        self,
        functions_url: str | None = None,
        id_token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        functions_url = functions_url or settings.firebase_functions_url
        if not functions_url:
            raise ConfigurationError("FIREBASE_FUNCTIONS_URL is required for callable functions")
        self.functions_url = functions_url.rstrip("/")
        self.id_token = id_token
        self.timeout_seconds = timeout_seconds or settings.http_timeout_seconds
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._http_client

    async def call(self, function_name: str, data: dict[str, Any]) -> Any:
        """
        Invoke a callable function and return its result payload.

        Raises:
            CallableInvocationError: If the function reports an error or the
                response is not a callable envelope
            httpx.HTTPError: On transport failure
        """
        headers = {"Content-Type": "application/json"}
        if self.id_token:
            headers["Authorization"] = f"Bearer {self.id_token}"

        response = await self.http_client.post(
            f"{self.functions_url}/{function_name}",
            json={"data": data},
            headers=headers,
        )

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            raise CallableInvocationError(
                function_name, response.status_code, "Response is not a JSON object"
            )

        if "error" in body or response.status_code >= 400:
            error = body.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else str(error)
            logger.error(
                "callable_invocation_failed",
                function=function_name,
                status=response.status_code,
                error=message,
            )
            raise CallableInvocationError(
                function_name, response.status_code, message or "Unknown error"
            )

        return body.get("result")

    def function(self, function_name: str) -> CallableFunction:
        """Bind a function name, mirroring the SDK's httpsCallable()."""

        async def invoke(data: dict[str, Any]) -> Any:
            return await self.call(function_name, data)

        return invoke

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
