"""
Authorized HTTP client bound to an App.

Every request carries a bearer token from the app's TokenManager. Failed
responses are mapped onto the error hierarchy so the retry decorator can
refresh the token on 401, back off on 429/5xx and fail fast otherwise.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import aiohttp

from cloudadmin.errors import PermanentError, error_for_status
from cloudadmin.logging.context import log_context
from cloudadmin.resilience.retry import DEFAULT_RETRY, RetryConfig, with_retry_async

if TYPE_CHECKING:
    from cloudadmin.app.app import App

logger = logging.getLogger(__name__)

SERVICE_NAME = "api-client"


@dataclass
class ApiResponse:
    """Response from an authorized API call."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class ApiClient:
    """
    Stateful service client issuing authorized requests for one App.

    Usage:
        client = get_api_client(app)
        response = await client.get("/v1/projects/demo")
    """

    def __init__(self, app: "App", retry: RetryConfig | None = None):
        options = app.options
        self.app_name = app.name
        self.base_url = options.api_endpoint
        self.timeout = options.http_timeout
        self._token_manager = app.token_manager
        self._retry = retry or DEFAULT_RETRY
        self._session: aiohttp.ClientSession | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def _resolve_url(self, url: str) -> str:
        if self.base_url and not url.startswith(("http://", "https://")):
            return f"{self.base_url.rstrip('/')}/{url.lstrip('/')}"
        return url

    async def _force_token_refresh(self) -> None:
        await self._token_manager.get_token(force_refresh=True)

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> ApiResponse:
        """
        Send an authorized request.

        Args:
            method: HTTP method
            url: Absolute URL, or a path relative to options.api_endpoint
            json: Optional JSON body
            params: Optional query parameters
            headers: Extra headers; Authorization is always set by the client

        Returns:
            ApiResponse with the decoded body (JSON when the server says so)

        Raises:
            AuthError, ThrottlingError, TransientError, PermanentError:
                once retries are exhausted or for non-retryable statuses
            AppError: INVALID_CREDENTIAL if no token can be obtained
        """
        if self._closed:
            raise PermanentError(
                f'API client for app "{self.app_name}" has been deleted',
                context={"app_name": self.app_name},
            )

        send = with_retry_async(
            config=self._retry,
            on_auth_error=self._force_token_refresh,
        )(self._send)

        with log_context(app_name=self.app_name, service=SERVICE_NAME):
            return await send(method, self._resolve_url(url), json, params, headers)

    async def _send(
        self,
        method: str,
        url: str,
        json_body: Any,
        params: dict[str, str] | None,
        headers: dict[str, str] | None,
    ) -> ApiResponse:
        token = await self._token_manager.get_token()
        session = await self._ensure_session()

        request_headers = dict(headers or {})
        request_headers["Authorization"] = f"Bearer {token.access_token}"

        start = time.perf_counter()
        async with session.request(
            method,
            url,
            json=json_body,
            params=params,
            headers=request_headers,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as response:
            text = await response.text()
            duration_ms = (time.perf_counter() - start) * 1000

            if response.status >= 400:
                logger.debug(
                    "API request failed",
                    extra={
                        "http_method": method,
                        "http_url": url,
                        "http_status": response.status,
                        "duration_ms": duration_ms,
                    },
                )
                raise error_for_status(
                    response.status,
                    text,
                    retry_after=_parse_retry_after(response.headers.get("Retry-After")),
                    context={"http_method": method, "http_url": url},
                )

            logger.debug(
                "API request complete",
                extra={
                    "http_method": method,
                    "http_url": url,
                    "http_status": response.status,
                    "duration_ms": duration_ms,
                },
            )

            body: Any = text
            if text and "json" in response.headers.get("Content-Type", ""):
                body = json.loads(text)
            return ApiResponse(response.status, dict(response.headers), body)

    async def get(self, url: str, **kwargs: Any) -> ApiResponse:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> ApiResponse:
        return await self.request("POST", url, **kwargs)

    async def delete_resource(self, url: str, **kwargs: Any) -> ApiResponse:
        return await self.request("DELETE", url, **kwargs)

    async def delete(self) -> None:
        """Close the HTTP session. Called by App.delete()."""
        self._closed = True
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        logger.debug("API client closed", extra={"app_name": self.app_name})


def get_api_client(app: "App | None" = None) -> ApiClient:
    """
    Return the ApiClient for app, creating it on first use.

    Args:
        app: App to bind to; the default app when None
    """
    if app is None:
        from cloudadmin.app.registry import get_default_registry

        app = get_default_registry().get_app()
    return app.get_or_init_service(SERVICE_NAME, ApiClient)


__all__ = ["ApiClient", "ApiResponse", "get_api_client", "SERVICE_NAME"]
